"""
Base CRUD Operations
====================

Generic create / read / update / delete over one collection of the
injected DocumentStore. Resource services (reviews, ...) subclass
BaseCRUD and add their own validation and defaults.

Storage failures surface as APIError (see errors.handle_store_error).
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Union

from ..store import DocumentStore, QueryFilter, StoreError, set_path
from .errors import APIError, handle_store_error, utc_now, validate_document_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25
COUNT_LIMIT = 1000

FilterSpec = Union[QueryFilter, Dict[str, Any]]


def to_query_filter(flt: FilterSpec) -> QueryFilter:
    """Accept QueryFilter or {'field', 'operator', 'value'} dicts."""
    if isinstance(flt, QueryFilter):
        return flt
    try:
        return QueryFilter(flt["field"], flt["operator"], flt["value"])
    except KeyError as e:
        raise APIError(f"Invalid filter, missing {e.args[0]}", "VALIDATION_ERROR", 400)


class BaseCRUD:
    """CRUD helpers bound to a single collection."""

    def __init__(self, store: DocumentStore, collection_name: str):
        self.store = store
        self.collection_name = collection_name

    # ------------------------------------------------------------------ create

    def create(self, data: Dict[str, Any], custom_id: Optional[str] = None) -> Dict[str, Any]:
        """Insert a document; generates an id unless custom_id is given."""
        now = utc_now()
        doc = {
            **data,
            "createdAt": data.get("createdAt") or now,
            "updatedAt": now,
        }

        if custom_id is not None:
            validate_document_id(custom_id)
            doc_id = custom_id
        else:
            doc_id = uuid.uuid4().hex

        try:
            self.store.put(self.collection_name, doc_id, doc)
        except StoreError as e:
            raise handle_store_error(e) from e

        logger.debug(f"Created {self.collection_name}/{doc_id}")
        return {"id": doc_id, **doc}

    # -------------------------------------------------------------------- read

    def get_by_id(self, doc_id: str) -> Dict[str, Any]:
        validate_document_id(doc_id)
        try:
            doc = self.store.get(self.collection_name, doc_id)
        except StoreError as e:
            raise handle_store_error(e) from e

        if doc is None:
            raise APIError("Document not found", "NOT_FOUND", 404)
        return {"id": doc_id, **doc}

    def get_all(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.get_where([], options)

    def get_where(
        self,
        filters: Iterable[FilterSpec],
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Filtered, ordered, paginated read.

        Options:
            order_by: field to sort on (default: createdAt)
            order_direction: 'asc' or 'desc' (default: desc)
            limit: page size (default: 25)
            start_after: id of the last document of the previous page

        Returns:
            {"documents": [...], "lastDoc": id | None, "hasMore": bool}
        """
        options = options or {}
        try:
            query_filters = [to_query_filter(f) for f in filters]
            page = self.store.query(
                self.collection_name,
                filters=query_filters,
                order_by=options.get("order_by") or "createdAt",
                direction=options.get("order_direction") or "desc",
                limit=options.get("limit") or DEFAULT_PAGE_SIZE,
                start_after=options.get("start_after"),
            )
        except StoreError as e:
            raise handle_store_error(e) from e
        return page.to_dict()

    def count(self, filters: Iterable[FilterSpec] = ()) -> int:
        """Count matching documents (capped at COUNT_LIMIT)."""
        result = self.get_where(filters, {"limit": COUNT_LIMIT})
        return len(result["documents"])

    # ------------------------------------------------------------------ update

    def update(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge fields into an existing document and return the result.

        Dotted keys ('metadata.hasPhotos') set nested fields; keys whose
        value is None are ignored.
        """
        current = self.get_by_id(doc_id)
        current.pop("id", None)

        for key, value in {**data, "updatedAt": utc_now()}.items():
            if value is None:
                continue
            set_path(current, key, value)

        try:
            self.store.put(self.collection_name, doc_id, current)
        except StoreError as e:
            raise handle_store_error(e) from e
        return {"id": doc_id, **current}

    def increment(
        self,
        doc_id: str,
        field: str,
        amount: int = 1,
        set_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Atomically add `amount` to a numeric (dotted) field, writing
        set_fields and updatedAt in the same store operation.

        update() is read-then-write (last write wins); counters go through here.
        """
        validate_document_id(doc_id)
        fields = {**(set_fields or {}), "updatedAt": utc_now()}
        try:
            doc = self.store.increment(self.collection_name, doc_id, field, amount, fields)
        except StoreError as e:
            raise handle_store_error(e) from e
        return {"id": doc_id, **doc}

    def soft_delete(self, doc_id: str) -> Dict[str, Any]:
        return self.update(doc_id, {"isActive": False, "deletedAt": utc_now()})

    # ------------------------------------------------------------------ delete

    def delete(self, doc_id: str) -> Dict[str, Any]:
        self.get_by_id(doc_id)
        try:
            self.store.delete(self.collection_name, doc_id)
        except StoreError as e:
            raise handle_store_error(e) from e
        return {"success": True, "id": doc_id}

    # ------------------------------------------------------------------- batch

    def batch_create(self, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.create(doc) for doc in documents]

    def batch_update(self, updates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """updates: [{'id': ..., 'data': {...}}, ...]"""
        return [self.update(u["id"], u["data"]) for u in updates]

    def batch_delete(self, ids: List[str]) -> List[Dict[str, Any]]:
        return [self.delete(doc_id) for doc_id in ids]
