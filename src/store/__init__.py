"""
ReviewDesk Document Store
=========================

Injected storage port for the CRUD layer.

Modules:
    document_store — DocumentStore ABC, query models, errors, in-memory adapter
    postgres_store — JSONB adapter over psycopg2 (imported lazily)
"""

import logging

from .document_store import (
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    InMemoryDocumentStore,
    InvalidQuery,
    QueryFilter,
    QueryPage,
    StoreError,
    StoreUnavailable,
    get_path,
    set_path,
)

logger = logging.getLogger(__name__)


def create_store(config=None) -> DocumentStore:
    """
    Build the document store selected by StoreConfig.backend.

    The postgres adapter is imported only when selected.
    """
    from ..core.config import StoreConfig

    config = config or StoreConfig()

    if config.backend == "postgres":
        from .postgres_store import PostgresDocumentStore

        store = PostgresDocumentStore(
            config.connection_params,
            min_conn=config.pool_min,
            max_conn=config.pool_max,
        )
        store.ensure_schema()
    else:
        store = InMemoryDocumentStore()

    logger.info(f"Document store ready: backend={store.backend_name}")
    return store
