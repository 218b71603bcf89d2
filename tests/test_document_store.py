"""
Tests for the document store port.

- InMemoryDocumentStore: get/put/delete, filters, ordering, pagination, increment
- Dotted path helpers
- PostgresDocumentStore: SQL generation and pooled execution (mocked psycopg2 pool)

Usage:
    pytest tests/test_document_store.py -v
"""

from unittest.mock import MagicMock

import pytest

from src.core.config import StoreConfig
from src.store import (
    DocumentNotFound,
    InMemoryDocumentStore,
    InvalidQuery,
    QueryFilter,
    create_store,
    get_path,
    set_path,
)
from src.store.postgres_store import (
    PostgresDocumentStore,
    build_filter_clause,
    build_increment_sql,
    build_query_sql,
)


def seed(store: InMemoryDocumentStore):
    docs = {
        "r1": {"businessId": "b1", "rating": 1, "tags": ["food"], "flagging": {"isFlagged": True}},
        "r2": {"businessId": "b1", "rating": 5, "tags": [], "flagging": {"isFlagged": False}},
        "r3": {"businessId": "b1", "rating": 3, "tags": ["staff", "food"], "flagging": {"isFlagged": True}},
        "r4": {"businessId": "b2", "rating": 2, "tags": ["staff"], "flagging": {"isFlagged": False}},
    }
    for doc_id, doc in docs.items():
        store.put("reviews", doc_id, doc)


# ============================================================================
# PATH HELPERS
# ============================================================================

class TestPathHelpers:

    def test_get_path_nested(self):
        assert get_path({"a": {"b": {"c": 3}}}, "a.b.c") == 3

    def test_get_path_missing_returns_default(self):
        assert get_path({"a": 1}, "a.b", "x") == "x"
        assert get_path({}, "a") is None

    def test_set_path_creates_intermediate(self):
        data = {"metadata": {"hasVideo": False}}
        set_path(data, "metadata.hasPhotos", True)
        set_path(data, "response.hasResponse", True)
        assert data == {
            "metadata": {"hasVideo": False, "hasPhotos": True},
            "response": {"hasResponse": True},
        }


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class TestInMemoryDocumentStore:

    def setup_method(self):
        self.store = InMemoryDocumentStore()
        seed(self.store)

    def test_get_missing_returns_none(self):
        assert self.store.get("reviews", "nope") is None
        assert self.store.get("other", "r1") is None

    def test_get_returns_copy(self):
        doc = self.store.get("reviews", "r1")
        doc["rating"] = 5
        assert self.store.get("reviews", "r1")["rating"] == 1

    def test_put_replaces(self):
        self.store.put("reviews", "r1", {"rating": 4})
        assert self.store.get("reviews", "r1") == {"rating": 4}

    def test_delete(self):
        assert self.store.delete("reviews", "r1") is True
        assert self.store.delete("reviews", "r1") is False
        assert self.store.count("reviews") == 3

    def test_equality_and_nested_filter(self):
        page = self.store.query(
            "reviews",
            [QueryFilter("businessId", "==", "b1"), QueryFilter("flagging.isFlagged", "==", True)],
            order_by="rating",
            direction="asc",
        )
        assert [d["id"] for d in page.documents] == ["r1", "r3"]

    def test_range_filters(self):
        page = self.store.query(
            "reviews",
            [QueryFilter("rating", ">=", 2), QueryFilter("rating", "<", 5)],
            order_by="rating",
            direction="asc",
        )
        assert [d["id"] for d in page.documents] == ["r4", "r3"]

    def test_in_and_array_contains(self):
        page = self.store.query("reviews", [QueryFilter("rating", "in", [1, 5])], order_by="rating")
        assert [d["id"] for d in page.documents] == ["r2", "r1"]

        page = self.store.query("reviews", [QueryFilter("tags", "array-contains", "staff")], order_by="rating")
        assert [d["id"] for d in page.documents] == ["r3", "r4"]

    def test_missing_field_never_matches(self):
        page = self.store.query("reviews", [QueryFilter("platform", "!=", "google")])
        assert page.documents == []

    def test_documents_include_id(self):
        page = self.store.query("reviews", [QueryFilter("businessId", "==", "b2")])
        assert page.documents == [{"id": "r4", **self.store.get("reviews", "r4")}]

    def test_pagination(self):
        first = self.store.query("reviews", order_by="rating", direction="desc", limit=2)
        assert [d["id"] for d in first.documents] == ["r2", "r3"]
        assert first.has_more is True
        assert first.last_id == "r3"

        second = self.store.query("reviews", order_by="rating", direction="desc", limit=2, start_after=first.last_id)
        assert [d["id"] for d in second.documents] == ["r4", "r1"]

        third = self.store.query("reviews", order_by="rating", direction="desc", limit=2, start_after=second.last_id)
        assert third.documents == []
        assert third.has_more is False
        assert third.last_id is None

    def test_missing_cursor_returns_empty_page(self):
        page = self.store.query("reviews", order_by="rating", direction="desc", limit=2, start_after="gone")
        assert page.documents == []
        assert page.has_more is False
        assert page.last_id is None

    def test_filtered_out_cursor_still_positions_page(self):
        # r4 belongs to b2 but still exists, so the page continues below rating 2
        page = self.store.query(
            "reviews", [QueryFilter("businessId", "==", "b1")],
            order_by="rating", direction="desc", start_after="r4",
        )
        assert [d["id"] for d in page.documents] == ["r1"]

    def test_missing_cursor_without_order_compares_ids(self):
        page = self.store.query("reviews", direction="asc", start_after="r25")
        assert [d["id"] for d in page.documents] == ["r3", "r4"]

    def test_increment_missing_field_starts_at_zero(self):
        doc = self.store.increment("reviews", "r1", "response.responseCount")
        assert doc["response"] == {"responseCount": 1}
        doc = self.store.increment("reviews", "r1", "response.responseCount", amount=2)
        assert doc["response"]["responseCount"] == 3
        assert self.store.get("reviews", "r1")["response"]["responseCount"] == 3

    def test_increment_writes_set_fields(self):
        doc = self.store.increment("reviews", "r2", "editCount", set_fields={"flagging.isFlagged": True, "note": "x"})
        assert doc["editCount"] == 1
        assert doc["flagging"]["isFlagged"] is True
        assert doc["note"] == "x"

    def test_increment_returns_copy(self):
        doc = self.store.increment("reviews", "r3", "editCount")
        doc["editCount"] = 99
        assert self.store.get("reviews", "r3")["editCount"] == 1

    def test_increment_unknown_document(self):
        with pytest.raises(DocumentNotFound):
            self.store.increment("reviews", "ghost", "editCount")
        assert self.store.get("reviews", "ghost") is None

    def test_ties_broken_by_id(self):
        store = InMemoryDocumentStore()
        for doc_id in ("b", "c", "a"):
            store.put("x", doc_id, {"score": 8})
        page = store.query("x", order_by="score", direction="asc")
        assert [d["id"] for d in page.documents] == ["a", "b", "c"]

    def test_order_field_missing_is_excluded(self):
        self.store.put("reviews", "r5", {"businessId": "b1"})
        page = self.store.query("reviews", [QueryFilter("businessId", "==", "b1")], order_by="rating")
        assert "r5" not in [d["id"] for d in page.documents]

    def test_invalid_operator(self):
        with pytest.raises(InvalidQuery):
            QueryFilter("rating", "~", 1)

    def test_invalid_direction(self):
        with pytest.raises(InvalidQuery):
            self.store.query("reviews", direction="sideways")

    def test_to_dict(self):
        page = self.store.query("reviews", [QueryFilter("businessId", "==", "b2")], limit=1)
        assert page.to_dict() == {"documents": page.documents, "lastDoc": "r4", "hasMore": True}


class TestCreateStore:

    def test_memory_backend(self):
        store = create_store(StoreConfig(backend="memory"))
        assert isinstance(store, InMemoryDocumentStore)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            StoreConfig(backend="firestore")


# ============================================================================
# POSTGRES STORE
# ============================================================================

class TestPostgresQueryBuilder:

    def test_equality_filter_uses_jsonb_path(self):
        sql, params = build_filter_clause(QueryFilter("flagging.isFlagged", "==", True))
        assert sql == "data #> %s = %s::jsonb"
        assert params == [["flagging", "isFlagged"], "true"]

    def test_in_filter(self):
        sql, params = build_filter_clause(QueryFilter("rating", "in", [1, 2]))
        assert sql == "data #> %s = ANY(%s::jsonb[])"
        assert params == [["rating"], ["1", "2"]]

    def test_array_contains_filter(self):
        sql, params = build_filter_clause(QueryFilter("tags", "array-contains", "food"))
        assert sql == "data #> %s @> %s::jsonb"
        assert params == [["tags"], '["food"]']

    def test_full_query(self):
        sql, params = build_query_sql(
            "reviews",
            [QueryFilter("businessId", "==", "b1"), QueryFilter("rating", "<=", 3)],
            order_by="priorityScore",
            direction="desc",
            limit=25,
        )
        assert sql.startswith("SELECT id, data FROM documents WHERE collection = %s")
        assert "data #> %s <= %s::jsonb" in sql
        assert sql.endswith("ORDER BY data #> %s DESC, id DESC LIMIT %s")
        assert params == [
            "reviews",
            ["businessId"], '"b1"',
            ["rating"], "3",
            ["priorityScore"],
            ["priorityScore"],
            25,
        ]

    def test_keyset_cursor(self):
        sql, params = build_query_sql("reviews", order_by="createdAt", direction="asc", limit=10, start_after="r9")
        assert "(data #> %s, id) > (SELECT data #> %s, id FROM documents WHERE collection = %s AND id = %s)" in sql
        assert "r9" in params

    def test_cursor_without_order_field(self):
        sql, params = build_query_sql("reviews", direction="desc", limit=5, start_after="r2")
        assert "id < %s" in sql
        assert sql.endswith("ORDER BY id DESC LIMIT %s")
        assert params == ["reviews", "r2", 5]

    def test_invalid_direction(self):
        with pytest.raises(InvalidQuery):
            build_query_sql("reviews", direction="up; DROP TABLE documents")

    def test_increment_sql(self):
        sql, params = build_increment_sql("reviews", "r1", "response.responseCount")
        assert sql == (
            "UPDATE documents SET data = "
            "jsonb_set(data, %s, to_jsonb(COALESCE((data #>> %s)::numeric, 0) + %s)), updated_at = NOW() "
            "WHERE collection = %s AND id = %s RETURNING data"
        )
        assert params == [["response", "responseCount"], ["response", "responseCount"], 1, "reviews", "r1"]

    def test_increment_sql_nests_set_fields(self):
        sql, params = build_increment_sql(
            "review_responses", "x1", "editCount", 1,
            {"responseText": "Thanks", "publishing.status": "pending"},
        )
        assert sql.startswith("UPDATE documents SET data = jsonb_set(jsonb_set(jsonb_set(data, %s, %s::jsonb), %s, %s::jsonb)")
        assert params[:4] == [["responseText"], '"Thanks"', ["publishing", "status"], '"pending"']
        assert params[4:] == [["editCount"], ["editCount"], 1, "review_responses", "x1"]


class TestPostgresDocumentStore:

    def setup_method(self):
        self.cursor = MagicMock()
        self.conn = MagicMock()
        self.conn.cursor.return_value.__enter__.return_value = self.cursor
        self.pool = MagicMock()
        self.pool.getconn.return_value = self.conn

        self.store = PostgresDocumentStore({"host": "localhost", "dbname": "test"})
        self.store._pool = self.pool

    def test_get(self):
        self.cursor.fetchone.return_value = ({"rating": 4},)
        assert self.store.get("reviews", "r1") == {"rating": 4}
        self.conn.commit.assert_called_once()
        self.pool.putconn.assert_called_once_with(self.conn)

    def test_get_missing(self):
        self.cursor.fetchone.return_value = None
        assert self.store.get("reviews", "r1") is None

    def test_query_builds_page(self):
        self.cursor.fetchall.return_value = [("r1", {"rating": 1}), ("r2", {"rating": 2})]
        page = self.store.query("reviews", order_by="rating", limit=2)
        assert page.documents == [{"id": "r1", "rating": 1}, {"id": "r2", "rating": 2}]
        assert page.last_id == "r2"
        assert page.has_more is True

    def test_increment_returns_updated_document(self):
        self.cursor.fetchone.return_value = ({"response": {"responseCount": 2}},)
        doc = self.store.increment("reviews", "r1", "response.responseCount")
        assert doc == {"response": {"responseCount": 2}}
        sql, params = self.cursor.execute.call_args[0]
        assert sql.startswith("UPDATE documents SET data = jsonb_set(")
        assert params[-2:] == ["reviews", "r1"]
        self.conn.commit.assert_called_once()

    def test_increment_unknown_document(self):
        self.cursor.fetchone.return_value = None
        with pytest.raises(DocumentNotFound):
            self.store.increment("reviews", "ghost", "editCount")
        self.pool.putconn.assert_called_once_with(self.conn)

    def test_error_rolls_back_and_returns_connection(self):
        import psycopg2
        from src.store import StoreUnavailable

        self.cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
        with pytest.raises(StoreUnavailable):
            self.store.put("reviews", "r1", {"rating": 1})
        self.conn.rollback.assert_called_once()
        self.pool.putconn.assert_called_once_with(self.conn)

    def test_close(self):
        self.store.close()
        self.pool.closeall.assert_called_once()
        assert self.store._pool is None
