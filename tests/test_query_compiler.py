"""
Tests for query compilation and keyword normalization
"""

import pytest

from tablebuddy.engine.merge import format_merge_value
from tablebuddy.models.config import TableConfiguration
from tablebuddy.sql.compiler import compile_query, finalize, from_raw_query, normalize_keywords


def _config(fields, **query_settings):
    return TableConfiguration.from_dict({
        "objectName": "Account",
        "fields": fields,
        "querySettings": query_settings,
    })


def test_compile_prepends_identity_field():
    """Name-only field list compiles with Id prepended"""
    config = _config([{"fieldName": "Name", "visible": True}], limit=10)
    assert compile_query(config).built_query == "SELECT Id, Name FROM Account LIMIT 10"


@pytest.mark.parametrize(
    "fields",
    [
        [{"fieldName": "Name"}],
        [{"fieldName": "Id"}, {"fieldName": "Name"}],
        [{"fieldName": "Name"}, {"fieldName": "Id"}],
        [{"fieldName": "id"}, {"fieldName": "Name"}, {"fieldName": "ID"}],
    ],
)
def test_identity_field_appears_once(fields):
    """The identity field is never duplicated, wherever the caller put it"""
    query = compile_query(_config(fields)).built_query
    select_list = query[len("SELECT "):query.index(" FROM ")]
    assert [f.strip().lower() for f in select_list.split(",")].count("id") == 1


def test_field_order_follows_configuration():
    config = _config([
        {"fieldName": "Industry"},
        {"fieldName": "Name"},
        {"fieldName": "Hidden__c", "visible": False},
        {"fieldName": "Owner.Name"},
    ])
    assert compile_query(config).built_query == "SELECT Id, Industry, Name, Owner.Name FROM Account"


def test_where_and_limit():
    config = _config([{"fieldName": "Name"}], whereClause="Industry = 'Tech'", limit=25)
    descriptor = compile_query(config)
    assert descriptor.built_query == "SELECT Id, Name FROM Account WHERE Industry = 'Tech' LIMIT 25"
    assert descriptor.object_name == "Account"
    assert descriptor.resolved_query is None


def test_normalize_keywords_upper_cases_reserved_words():
    query = "select Name from Account where Type = 'Customer' limit 5"
    assert normalize_keywords(query) == "SELECT Name FROM Account WHERE Type = 'Customer' LIMIT 5"


def test_normalize_keywords_is_idempotent():
    """Normalizing a normalized query is a fixed point"""
    queries = [
        "select Name FROM Account Where Industry = 'from here' LiMiT 3",
        "SELECT Id FROM Contact",
        "select Name from Account where $record.Industry = $record.Industry",
    ]
    for query in queries:
        once = normalize_keywords(query)
        assert normalize_keywords(once) == once


def test_normalize_keywords_skips_string_literals():
    query = "select Name from Account where Description = 'select from where limit'"
    assert normalize_keywords(query) == (
        "SELECT Name FROM Account WHERE Description = 'select from where limit'"
    )


def test_normalize_keywords_leaves_identifiers_alone():
    query = "select Limit__c, Owner.From__c, Selection from Account"
    assert normalize_keywords(query) == "SELECT Limit__c, Owner.From__c, Selection FROM Account"


def test_from_raw_query_reads_object_name():
    descriptor = from_raw_query("  select Id, LastName from Contact where LastName = 'Smith' ")
    assert descriptor.built_query == "SELECT Id, LastName FROM Contact WHERE LastName = 'Smith'"
    assert descriptor.object_name == "Contact"


def test_finalize_keeps_built_query():
    descriptor = compile_query(_config([{"fieldName": "Name"}]))
    resolved = finalize(descriptor, "select Id, Name from Account where Name = 'x'")
    assert resolved.built_query == descriptor.built_query
    assert resolved.resolved_query == "SELECT Id, Name FROM Account WHERE Name = 'x'"
    assert resolved.executable_query == resolved.resolved_query


def test_normalize_keywords_after_trailing_backslash_literal():
    """An escaped backslash right before the closing quote still closes the literal"""
    query = "select Id from Document where Path = 'C:\\\\' limit 5"
    assert normalize_keywords(query) == "SELECT Id FROM Document WHERE Path = 'C:\\\\' LIMIT 5"


def test_normalize_keywords_escaped_quote_stays_inside_literal():
    query = "select Id from Account where Name = 'O\\'Brien from' limit 5"
    assert normalize_keywords(query) == "SELECT Id FROM Account WHERE Name = 'O\\'Brien from' LIMIT 5"


def test_finalize_after_substituted_backslash_value():
    descriptor = from_raw_query("select Id from Document")
    literal = format_merge_value("C:\\", "string")
    resolved = finalize(descriptor, f"select Id from Document where Path = {literal} limit 5")
    assert resolved.resolved_query == "SELECT Id FROM Document WHERE Path = 'C:\\\\' LIMIT 5"
