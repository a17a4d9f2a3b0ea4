"""
Tests for draft reconciliation
"""

import pytest

from tablebuddy.engine.drafts import DraftReconciliationEngine
from tablebuddy.models.table import RowError, SaveOutcome, TableError


def _engine():
    published = []
    engine = DraftReconciliationEngine(publish=lambda key, value: published.append((key, value)))
    return engine, published


def _failure(message="Name is required"):
    return RowError(title="1 error(s) on this row", messages=[message], field_names=["Name"])


def test_edits_on_different_fields_merge():
    engine, _ = _engine()
    engine.apply_edit("r1", {"A": 1})
    engine.apply_edit("r1", {"B": 2})
    assert dict(engine.drafts["r1"]) == {"A": 1, "B": 2}


def test_later_edit_wins_per_field():
    engine, _ = _engine()
    engine.apply_edit("r1", {"A": 1})
    engine.apply_edit("r1", {"A": 2})
    assert dict(engine.drafts["r1"]) == {"A": 2}


def test_views_are_read_only():
    engine, _ = _engine()
    engine.apply_edit("r1", {"A": 1})
    with pytest.raises(TypeError):
        engine.drafts["r1"]["A"] = 5
    with pytest.raises(TypeError):
        engine.drafts["r2"] = {}


def test_apply_draft_values_uses_identity_key():
    engine, _ = _engine()
    engine.apply_draft_values([{"Id": "r1", "Name": "Ann"}, {"Name": "orphan"}])
    assert dict(engine.drafts) == {"r1": {"Name": "Ann"}}
    assert engine.draft_values == [{"Id": "r1", "Name": "Ann"}]


def test_discard_last_field_removes_row():
    engine, _ = _engine()
    engine.apply_edit("r1", {"A": 1, "B": 2})
    engine.discard_field("r1", "A")
    assert dict(engine.drafts["r1"]) == {"B": 2}
    engine.discard_field("r1", "B")
    assert "r1" not in engine.drafts
    assert not engine.has_drafts


def test_commit_snapshots_row_numbers():
    engine, _ = _engine()
    engine.apply_edit("r2", {"Name": "Bob"})
    engine.apply_edit("r9", {"Name": "Gone"})
    snapshot = engine.commit([{"Id": "r1"}, {"Id": "r2"}])
    assert snapshot.record_inputs == [
        {"fields": {"Id": "r2", "Name": "Bob"}},
        {"fields": {"Id": "r9", "Name": "Gone"}},
    ]
    assert snapshot.row_number_map == {"r2": 2, "r9": 0}
    assert engine.has_drafts


def test_reconcile_partial_failure():
    """N drafts, K fail: K rows keep drafts and errors, N-K await clearance"""
    engine, _ = _engine()
    for row_id in ("r1", "r2", "r3"):
        engine.apply_edit(row_id, {"Name": row_id})

    summary = TableError(title="Found 1 error rows", messages=["Row 2: Name is required"])
    engine.reconcile(SaveOutcome(successes=["r1", "r3"], row_errors={"r2": _failure()}, summary=summary))

    assert list(engine.drafts) == ["r2"]
    assert list(engine.errors) == ["r2"]
    assert engine.pending_clearance == ["r1", "r3"]
    assert engine.table_error == summary


def test_reconcile_all_succeeded_resets_errors():
    engine, _ = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.reconcile(SaveOutcome(row_errors={"r1": _failure()},
                                 summary=TableError(title="Found 1 error rows", messages=["Row 1: x"])))
    assert engine.table_error is not None

    engine.reconcile(SaveOutcome(successes=["r1"]))
    assert not engine.has_drafts
    assert dict(engine.errors) == {}
    assert engine.table_error is None


def test_error_for_discarded_row_is_dropped():
    engine, _ = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.apply_edit("r2", {"Name": "y"})
    engine.discard_field("r1", "Name")
    engine.reconcile(SaveOutcome(row_errors={"r1": _failure(), "r2": _failure()}))
    assert list(engine.errors) == ["r2"]


def test_flush_cleared_publishes_row_keys():
    engine, published = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.reconcile(SaveOutcome(successes=["r1"]))
    assert engine.flush_cleared() == ["r1"]
    assert published == [("setdraftvalue", {"rowKeysToNull": ["r1"]})]
    assert engine.pending_clearance == []
    assert engine.flush_cleared() == []


def test_edit_after_save_withdraws_clearance():
    engine, _ = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.reconcile(SaveOutcome(successes=["r1"]))
    engine.apply_edit("r1", {"Name": "y"})
    assert engine.pending_clearance == []
    assert dict(engine.drafts["r1"]) == {"Name": "y"}


def test_edits_made_during_save_stay_in_draft():
    engine, published = _engine()
    engine.apply_edit("r1", {"Name": "v1"})
    engine.apply_edit("r2", {"Name": "Bob"})
    snapshot = engine.commit([{"Id": "r1"}, {"Id": "r2"}])
    assert snapshot.patches == {"r1": {"Name": "v1"}, "r2": {"Name": "Bob"}}

    engine.apply_edit("r1", {"Title": "CTO"})
    engine.reconcile(SaveOutcome(successes=["r1", "r2"]), snapshot)

    assert dict(engine.drafts["r1"]) == {"Title": "CTO"}
    assert "r2" not in engine.drafts
    assert engine.pending_clearance == ["r2"]
    assert engine.flush_cleared() == ["r2"]
    assert published == [("setdraftvalue", {"rowKeysToNull": ["r2"]})]


def test_field_changed_again_during_save_is_kept():
    engine, _ = _engine()
    engine.apply_edit("r1", {"Name": "v1", "Title": "CTO"})
    snapshot = engine.commit([{"Id": "r1"}])

    engine.apply_edit("r1", {"Name": "v2"})
    engine.reconcile(SaveOutcome(successes=["r1"]), snapshot)

    assert dict(engine.drafts["r1"]) == {"Name": "v2"}
    assert engine.pending_clearance == []


def test_cancel_discards_and_publishes():
    engine, published = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.apply_edit("r2", {"Name": "y"})
    engine.reconcile(SaveOutcome(row_errors={"r2": _failure()}))

    assert engine.cancel() == ["r1", "r2"]
    assert not engine.has_drafts
    assert dict(engine.errors) == {}
    assert published == [
        ("setdraftvalue", {"rowKeysToNull": ["r1", "r2"]}),
        ("canceldraft", None),
    ]


def test_cancel_selected_rows():
    engine, _ = _engine()
    engine.apply_edit("r1", {"Name": "x"})
    engine.apply_edit("r2", {"Name": "y"})
    engine.cancel(["r1"])
    assert list(engine.drafts) == ["r2"]
