"""
Document Store Port
===================

Storage collaborator for the CRUD layer: collections of JSON-like
documents addressed by id, with simple filtered / ordered / paginated
queries. The triage engine never touches this module.

Adapters:
    InMemoryDocumentStore  — dict-backed, for tests and local runs
    PostgresDocumentStore  — JSONB table via psycopg2 (postgres_store.py)
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

SUPPORTED_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "array-contains")

_MISSING = object()


# ============================================================================
# ERRORS
# ============================================================================

class StoreError(Exception):
    """Base class for storage failures."""
    code = "STORE_ERROR"


class DocumentNotFound(StoreError):
    code = "NOT_FOUND"


class DocumentExists(StoreError):
    code = "ALREADY_EXISTS"


class StoreUnavailable(StoreError):
    code = "UNAVAILABLE"


class InvalidQuery(StoreError):
    code = "INVALID_ARGUMENT"


# ============================================================================
# QUERY MODELS
# ============================================================================

@dataclass(frozen=True)
class QueryFilter:
    """One `field operator value` clause. Field is a dotted path."""
    field: str
    operator: str
    value: Any

    def __post_init__(self):
        if self.operator not in SUPPORTED_OPERATORS:
            raise InvalidQuery(f"Unsupported operator: {self.operator}")


@dataclass
class QueryPage:
    """One page of query results."""
    documents: List[Dict[str, Any]] = field(default_factory=list)
    last_id: Optional[str] = None
    has_more: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": self.documents,
            "lastDoc": self.last_id,
            "hasMore": self.has_more,
        }


def get_path(data: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path ('flagging.isFlagged') from nested dicts."""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts as needed."""
    keys = path.split(".")
    current = data
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value


def matches_filter(document: Dict[str, Any], flt: QueryFilter) -> bool:
    """Evaluate a single filter against a document (missing field never matches)."""
    actual = get_path(document, flt.field, _MISSING)
    if actual is _MISSING:
        return False

    op, expected = flt.operator, flt.value
    try:
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == "in":
            return actual in expected
        if op == "array-contains":
            return isinstance(actual, list) and expected in actual
        if actual is None:
            return False
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        # Mixed types never compare, same as the hosted document stores
        return False
    return False


# ============================================================================
# PORT
# ============================================================================

class DocumentStore(ABC):
    """Abstract document store: get / put / delete / query."""

    backend_name = "abstract"

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document (without id) or None."""

    @abstractmethod
    def put(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or replace a document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        direction: str = "desc",
        limit: int = 25,
        start_after: Optional[str] = None,
    ) -> QueryPage:
        """
        Run a filtered, ordered, paginated query.

        Documents are returned with their `id` merged in. Ordering is by
        (order_by value, id); start_after is the id of the last document
        of the previous page.
        """

    @abstractmethod
    def increment(
        self,
        collection: str,
        doc_id: str,
        path: str,
        amount: int = 1,
        set_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Atomically add `amount` to the numeric field at `path` (missing counts
        as 0), writing the dotted `set_fields` in the same operation, and
        return the updated document. Raises DocumentNotFound.
        """

    def close(self) -> None:
        """Release resources held by the adapter."""


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed store. Deep-copies on the way in and out so callers can
    never mutate stored state by accident.
    """

    backend_name = "memory"

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def put(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(doc_id, None) is not None

    def increment(
        self,
        collection: str,
        doc_id: str,
        path: str,
        amount: int = 1,
        set_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                raise DocumentNotFound(f"{collection}/{doc_id}")
            for field_path, value in (set_fields or {}).items():
                set_path(doc, field_path, copy.deepcopy(value))
            set_path(doc, path, (get_path(doc, path) or 0) + amount)
            return copy.deepcopy(doc)

    def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[str] = None,
        direction: str = "desc",
        limit: int = 25,
        start_after: Optional[str] = None,
    ) -> QueryPage:
        if direction not in ("asc", "desc"):
            raise InvalidQuery(f"Unsupported order direction: {direction}")

        with self._lock:
            docs = self._collections.get(collection, {})
            items = [
                (doc_id, copy.deepcopy(doc))
                for doc_id, doc in docs.items()
                if all(matches_filter(doc, f) for f in filters)
            ]
            cursor = copy.deepcopy(docs.get(start_after)) if start_after is not None else None

        def position(doc_id: str, doc: Dict[str, Any]):
            if order_by:
                return (_sort_key(get_path(doc, order_by)), doc_id)
            return doc_id

        if order_by:
            # Documents missing the order field are dropped, like the hosted stores do
            items = [(i, d) for i, d in items if get_path(d, order_by, _MISSING) is not _MISSING]
        items.sort(key=lambda item: position(*item), reverse=(direction == "desc"))

        if start_after is not None:
            if order_by and (cursor is None or get_path(cursor, order_by, _MISSING) is _MISSING):
                # Keyset cursor cannot be resolved, so nothing sorts after it
                logger.warning(f"start_after cursor {start_after} not found in {collection}")
                items = []
            else:
                after = position(start_after, cursor or {})
                if direction == "desc":
                    items = [item for item in items if position(*item) < after]
                else:
                    items = [item for item in items if position(*item) > after]

        page = items[:limit] if limit else items
        documents = [{"id": doc_id, **doc} for doc_id, doc in page]
        return QueryPage(
            documents=documents,
            last_id=page[-1][0] if page else None,
            has_more=bool(limit) and len(page) == limit,
        )

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))


def _sort_key(value: Any):
    # None sorts first; bools/numbers/strings sort within their own group
    if value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    return (2, str(value))
