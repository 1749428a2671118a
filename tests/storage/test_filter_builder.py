import logging

import pytest

from legal_case_management.storage.arango_store import (
    ArangoStore,
    build_filter_clauses,
    build_sort_clause,
)


class FakeAQL:
    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def execute(self, query, bind_vars=None):
        self.calls.append((query, bind_vars))
        return iter(self.rows)


class FakeDB:
    def __init__(self, rows):
        self.aql = FakeAQL(rows)


def make_store(rows):
    # Skip __init__ to avoid a real connection
    store = ArangoStore.__new__(ArangoStore)
    store.db = FakeDB(rows)
    store.logger = logging.getLogger("test")
    return store


def test_equality_filter():
    clauses, bind_vars = build_filter_clauses({"status": "Active"})
    assert clauses == ["FILTER doc.@f0 == @v0"]
    assert bind_vars == {"f0": "status", "v0": "Active"}


def test_none_values_are_skipped():
    clauses, bind_vars = build_filter_clauses({"lawyer_id": None, "is_read": False})
    assert clauses == ["FILTER doc.@f1 == @v1"]
    assert bind_vars == {"f1": "is_read", "v1": False}


def test_id_addresses_document_key():
    clauses, bind_vars = build_filter_clauses({"id__ne": "abc"})
    assert clauses == ["FILTER doc.@f0 != @v0"]
    assert bind_vars["f0"] == "_key"


def test_comparison_operators():
    clauses, _ = build_filter_clauses(
        {"range_start__lte": 90, "range_end__gte": 30, "dpd_days__gt": 1, "dpd_days__lt": 200}
    )
    assert clauses == [
        "FILTER doc.@f0 <= @v0",
        "FILTER doc.@f1 >= @v1",
        "FILTER doc.@f2 > @v2",
        "FILTER doc.@f3 < @v3",
    ]


def test_null_operator():
    clauses, bind_vars = build_filter_clauses({"expires_at__null": False, "read_at__null": True})
    assert clauses == ["FILTER doc.@f0 != null", "FILTER doc.@f1 == null"]
    assert "v0" not in bind_vars

    clauses, _ = build_filter_clauses({"expires_at__null": None})
    assert clauses == []


def test_in_like_and_ieq_operators():
    clauses, bind_vars = build_filter_clauses(
        {"status__in": ("Open", "Escalated"), "borrower_name__like": "kumar", "email__ieq": "A@B.COM"}
    )
    assert clauses == [
        "FILTER doc.@f0 IN @v0",
        "FILTER CONTAINS(LOWER(doc.@f1), LOWER(@v1))",
        "FILTER LOWER(doc.@f2) == LOWER(@v2)",
    ]
    assert bind_vars["v0"] == ["Open", "Escalated"]


def test_contains_operator():
    clauses, bind_vars = build_filter_clauses({"template_ids__contains": "tpl-1"})
    assert clauses == ["FILTER @v0 IN doc.@f0"]
    assert bind_vars == {"f0": "template_ids", "v0": "tpl-1"}


def test_unsupported_operator_raises():
    with pytest.raises(ValueError):
        build_filter_clauses({"status__regex": ".*"})


def test_search_ors_fields():
    clauses, bind_vars = build_filter_clauses({}, (["state_code", "state_name"], "MAHA"))
    assert clauses == [
        "FILTER CONTAINS(LOWER(doc.@s0), @search_term) OR CONTAINS(LOWER(doc.@s1), @search_term)"
    ]
    assert bind_vars["search_term"] == "maha"

    clauses, _ = build_filter_clauses({}, (["state_code"], ""))
    assert clauses == []


def test_sort_clause():
    assert build_sort_clause([("created_at", "desc")]) == ("SORT doc.@o0 DESC", {"o0": "created_at"})
    assert build_sort_clause(None) == ("", {})
    with pytest.raises(ValueError):
        build_sort_clause([("created_at", "sideways")])


def test_find_builds_paged_query_and_strips_system_attributes():
    store = make_store([{"_key": "k1", "_id": "legal_cases/k1", "_rev": "_r", "case_id": "LC-20240101-0001"}])

    rows = store.find(
        "legal_cases", {"status": "Active"}, sort=[("created_at", "DESC")], offset=10, limit=5
    )

    assert rows == [{"case_id": "LC-20240101-0001", "id": "k1"}]
    query, bind_vars = store.db.aql.calls[0]
    assert query.splitlines() == [
        "FOR doc IN @@coll",
        "FILTER doc.@f0 == @v0",
        "SORT doc.@o0 DESC",
        "LIMIT @offset, @limit",
        "RETURN doc",
    ]
    assert bind_vars["@coll"] == "legal_cases"
    assert bind_vars["offset"] == 10
    assert bind_vars["limit"] == 5


def test_count_returns_first_result():
    store = make_store([3])
    assert store.count("lawyers", {"is_active": True}) == 3
    query, _ = store.db.aql.calls[0]
    assert "COLLECT WITH COUNT INTO total" in query
