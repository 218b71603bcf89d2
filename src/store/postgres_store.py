"""
PostgreSQL Document Store
=========================

DocumentStore adapter on a single JSONB table:

    documents(collection TEXT, id TEXT, data JSONB, PRIMARY KEY (collection, id))

Filters become jsonb path comparisons (`data #> '{flagging,isFlagged}' = 'true'`),
so values keep their JSON types. Uses a psycopg2 ThreadedConnectionPool.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import Json

from .document_store import (
    DocumentNotFound,
    DocumentStore,
    InvalidQuery,
    QueryFilter,
    QueryPage,
    StoreError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "documents"

SCHEMA_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        collection TEXT NOT NULL,
        id TEXT NOT NULL,
        data JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (collection, id)
    )
"""

_SQL_OPERATORS = {
    "==": "=",
    "!=": "<>",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


def _path(field: str) -> List[str]:
    return field.split(".")


def build_filter_clause(flt: QueryFilter) -> Tuple[str, List[Any]]:
    """Translate one QueryFilter into a SQL fragment and its params."""
    if flt.operator in _SQL_OPERATORS:
        return f"data #> %s {_SQL_OPERATORS[flt.operator]} %s::jsonb", [_path(flt.field), _dumps(flt.value)]
    if flt.operator == "in":
        return "data #> %s = ANY(%s::jsonb[])", [_path(flt.field), [_dumps(v) for v in flt.value]]
    if flt.operator == "array-contains":
        return "data #> %s @> %s::jsonb", [_path(flt.field), _dumps([flt.value])]
    raise InvalidQuery(f"Unsupported operator: {flt.operator}")


def build_query_sql(
    collection: str,
    filters: Sequence[QueryFilter] = (),
    order_by: Optional[str] = None,
    direction: str = "desc",
    limit: int = 25,
    start_after: Optional[str] = None,
) -> Tuple[str, List[Any]]:
    """
    Build the SELECT for DocumentStore.query.

    Keyset pagination on (order value, id): the cursor row is looked up by
    id inside the query, so callers only pass the last document id.
    """
    if direction not in ("asc", "desc"):
        raise InvalidQuery(f"Unsupported order direction: {direction}")

    clauses = ["collection = %s"]
    params: List[Any] = [collection]

    for flt in filters:
        clause, clause_params = build_filter_clause(flt)
        clauses.append(clause)
        params.extend(clause_params)

    cmp = "<" if direction == "desc" else ">"
    if order_by:
        clauses.append("data #> %s IS NOT NULL")
        params.append(_path(order_by))
        if start_after is not None:
            clauses.append(
                f"(data #> %s, id) {cmp} ("
                f"SELECT data #> %s, id FROM {TABLE_NAME} WHERE collection = %s AND id = %s)"
            )
            params.extend([_path(order_by), _path(order_by), collection, start_after])
        order_sql = f"ORDER BY data #> %s {direction.upper()}, id {direction.upper()}"
        order_params: List[Any] = [_path(order_by)]
    else:
        if start_after is not None:
            clauses.append(f"id {cmp} %s")
            params.append(start_after)
        order_sql = f"ORDER BY id {direction.upper()}"
        order_params = []

    sql = f"SELECT id, data FROM {TABLE_NAME} WHERE {' AND '.join(clauses)} {order_sql}"
    params.extend(order_params)
    if limit:
        sql += " LIMIT %s"
        params.append(limit)
    return sql, params


def build_increment_sql(
    collection: str,
    doc_id: str,
    path: str,
    amount: int = 1,
    set_fields: Optional[Dict[str, Any]] = None,
) -> Tuple[str, List[Any]]:
    """
    Build the single UPDATE behind DocumentStore.increment.

    jsonb_set only creates the last key of a path, so parent objects
    must already exist in the document.
    """
    expr = "data"
    params: List[Any] = []
    for field_path, value in (set_fields or {}).items():
        expr = f"jsonb_set({expr}, %s, %s::jsonb)"
        params.extend([_path(field_path), _dumps(value)])

    expr = f"jsonb_set({expr}, %s, to_jsonb(COALESCE((data #>> %s)::numeric, 0) + %s))"
    params.extend([_path(path), _path(path), amount])

    sql = (
        f"UPDATE {TABLE_NAME} SET data = {expr}, updated_at = NOW() "
        f"WHERE collection = %s AND id = %s RETURNING data"
    )
    params.extend([collection, doc_id])
    return sql, params


class PostgresDocumentStore(DocumentStore):
    """JSONB-backed DocumentStore using a threaded psycopg2 pool."""

    backend_name = "postgres"

    def __init__(self, connection_params: Dict[str, Any], min_conn: int = 2, max_conn: int = 10):
        self._params = connection_params
        self._min_conn = min_conn
        self._max_conn = max_conn
        self._pool = None

    def _get_pool(self):
        """Get or create the connection pool (lazy)."""
        if self._pool is not None:
            return self._pool
        try:
            self._pool = pg_pool.ThreadedConnectionPool(self._min_conn, self._max_conn, **self._params)
        except psycopg2.Error as e:
            raise StoreUnavailable(f"Failed to create DB pool: {e}") from e
        logger.info(
            f"DB pool created: {self._params.get('host')}:{self._params.get('port')}/{self._params.get('dbname')}"
        )
        return self._pool

    @contextmanager
    def _connection(self):
        """Pooled connection; commits on success, rolls back on error."""
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except psycopg2.OperationalError as e:
            conn.rollback()
            raise StoreUnavailable(str(e)) from e
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def ensure_schema(self) -> None:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
        logger.info(f"Ensured table {TABLE_NAME}")

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT data FROM {TABLE_NAME} WHERE collection = %s AND id = %s",
                    (collection, doc_id),
                )
                row = cur.fetchone()
        return row[0] if row else None

    def put(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    INSERT INTO {TABLE_NAME} (collection, id, data)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (collection, id) DO UPDATE SET
                        data = EXCLUDED.data,
                        updated_at = NOW()
                """, (collection, doc_id, Json(data, dumps=_dumps)))

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"DELETE FROM {TABLE_NAME} WHERE collection = %s AND id = %s",
                    (collection, doc_id),
                )
                return cur.rowcount > 0

    def increment(
        self,
        collection: str,
        doc_id: str,
        path: str,
        amount: int = 1,
        set_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        sql, params = build_increment_sql(collection, doc_id, path, amount, set_fields)
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
        if row is None:
            raise DocumentNotFound(f"{collection}/{doc_id}")
        return row[0]

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        direction: str = "desc",
        limit: int = 25,
        start_after: Optional[str] = None,
    ) -> QueryPage:
        sql, params = build_query_sql(collection, filters, order_by, direction, limit, start_after)
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()

        documents = [{"id": row[0], **row[1]} for row in rows]
        return QueryPage(
            documents=documents,
            last_id=rows[-1][0] if rows else None,
            has_more=bool(limit) and len(rows) == limit,
        )

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("DB pool closed")
