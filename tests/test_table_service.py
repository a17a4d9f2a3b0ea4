"""
Tests for result flattening, error reduction and draft persistence
"""

import pytest

from tablebuddy.models.table import CommitSnapshot, RowError
from tablebuddy.services.messages import is_record_id, persistence_error_from_result, reduce_errors
from tablebuddy.services.table_service import (
    create_row_error,
    create_table_error,
    fetch_table_cache,
    flatten_query_result,
    update_draft_values,
)
from tablebuddy.utils.errors import PersistenceFieldError, PersistenceGeneralError

from conftest import FakeQueryService, FakeRecordService


def test_flatten_nested_objects():
    rows = [{"Id": "c1", "Account": {"Name": "Acme", "Owner": {"Name": "Zed"}}}]
    flat = flatten_query_result(rows, "Contact")[0]
    assert flat["Account_Name"] == "Acme"
    assert flat["Account_Owner_Name"] == "Zed"
    assert flat["Account"] == {"Name": "Acme", "Owner": {"Name": "Zed"}}
    assert flat["Contact_Id"] == "c1"


def test_flatten_lists_by_index():
    rows = [{"Id": "a1", "Tags": ["x", {"Label": "y"}]}]
    flat = flatten_query_result(rows)[0]
    assert flat["Tags_0"] == "x"
    assert flat["Tags_1_Label"] == "y"
    assert "None_Id" not in flat


@pytest.mark.asyncio
async def test_fetch_table_cache_flattens_rows():
    cache = await fetch_table_cache(FakeQueryService(), "SELECT Id, Name, Account.Name FROM Contact")
    assert cache.object_name == "Contact"
    assert cache.rows[0]["Account_Name"] == "Acme"
    assert len(cache.columns) == 5


def test_reduce_errors_shapes():
    record_error = {
        "body": {
            "enhancedErrorType": "RecordError",
            "output": {"errors": [], "fieldErrors": {"Name": [{"message": "Name is required"}]}},
        }
    }
    assert reduce_errors(record_error) == ["Name is required"]
    assert reduce_errors({"body": [{"message": "a"}, {"message": "b"}]}) == ["a", "b"]
    assert reduce_errors({"body": {"pageErrors": [{"message": "locked"}]}}) == ["locked"]
    assert reduce_errors({"statusText": "Server Error"}) == ["Server Error"]
    assert reduce_errors([None, "", "plain"]) == ["plain"]


def test_reduce_persistence_errors():
    error = PersistenceFieldError(field_errors={"Name": ["Name is required"]}, page_errors=["Row locked"])
    assert reduce_errors(error) == ["Name is required", "Row locked"]
    assert reduce_errors(PersistenceGeneralError("Insufficient access")) == ["Insufficient access"]


def test_is_record_id():
    assert is_record_id("001000000000001AAA")
    assert is_record_id("001000000000001")
    assert not is_record_id("table-1")
    assert not is_record_id(None)


def test_create_row_error():
    row_error = create_row_error(PersistenceFieldError(field_errors={"Name": ["Name is required"]}))
    assert row_error.title == "1 error(s) on this row"
    assert row_error.messages == ["Name is required"]
    assert row_error.field_names == ["Name"]

    unknown = create_row_error(PersistenceGeneralError())
    assert unknown.messages == ["Unknown error"]


def test_create_table_error_sorts_prefixed_messages():
    row_errors = {
        "r3": RowError(title="1 error(s) on this row", messages=["Zip is invalid"]),
        "r1": RowError(title="1 error(s) on this row", messages=["Name is required"]),
    }
    summary = create_table_error(row_errors, {"r1": 4, "r3": 2})
    assert summary.title == "Found 2 error rows"
    assert summary.messages == ["Row 2: Zip is invalid", "Row 4: Name is required"]
    assert row_errors["r1"].row_number == 4


@pytest.mark.asyncio
async def test_update_draft_values_isolates_failures():
    service = FakeRecordService()
    service.failures["r2"] = PersistenceFieldError(field_errors={"Name": ["Name is required"]})
    snapshot = CommitSnapshot(
        record_inputs=[
            {"fields": {"Id": "r1", "Name": "Ann"}},
            {"fields": {"Id": "r2", "Name": ""}},
            {"fields": {"Id": "r3", "Title": "CEO"}},
        ],
        row_number_map={"r1": 1, "r2": 2, "r3": 3},
    )

    outcome = await update_draft_values(service, snapshot)

    assert outcome.successes == ["r1", "r3"]
    assert list(outcome.row_errors) == ["r2"]
    assert outcome.summary.messages == ["Row 2: Name is required"]
    assert service.updates == [("r1", {"Name": "Ann"}), ("r3", {"Title": "CEO"})]
    assert snapshot.record_inputs[0]["fields"]["Id"] == "r1"


def test_persistence_error_from_result():
    assert persistence_error_from_result({"id": "r1"}) is None
    assert persistence_error_from_result(None) is None
    assert persistence_error_from_result(True) is None

    field_error = persistence_error_from_result({"errorFields": ["Name"], "message": "Name is required"})
    assert isinstance(field_error, PersistenceFieldError)
    assert field_error.field_errors == {"Name": []}
    assert reduce_errors(field_error) == ["Name is required"]

    per_field = persistence_error_from_result({"errorFields": {"Email": "Bad email"}, "message": "Invalid"})
    assert per_field.field_errors == {"Email": ["Bad email"]}
    assert reduce_errors(per_field) == ["Bad email"]

    general = persistence_error_from_result({"message": "Record locked"})
    assert isinstance(general, PersistenceGeneralError)
    assert general.field_errors == {}


@pytest.mark.asyncio
async def test_update_draft_values_returned_error_payloads_fail_rows():
    service = FakeRecordService()
    service.error_payloads["r2"] = {"errorFields": ["Name"], "message": "Name is required"}
    service.error_payloads["r3"] = {"message": "Record locked"}
    snapshot = CommitSnapshot(
        record_inputs=[
            {"fields": {"Id": "r1", "Name": "Ann"}},
            {"fields": {"Id": "r2", "Name": ""}},
            {"fields": {"Id": "r3", "Title": "CEO"}},
        ],
        row_number_map={"r1": 1, "r2": 2, "r3": 3},
    )

    outcome = await update_draft_values(service, snapshot)

    assert outcome.successes == ["r1"]
    assert outcome.row_errors["r2"].messages == ["Name is required"]
    assert outcome.row_errors["r2"].field_names == ["Name"]
    assert outcome.row_errors["r3"].messages == ["Record locked"]
    assert outcome.row_errors["r3"].field_names == []
    assert outcome.summary.messages == ["Row 2: Name is required", "Row 3: Record locked"]
    assert service.updates == [("r1", {"Name": "Ann"})]
