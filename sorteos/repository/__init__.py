"""
Data access layer for Sorteos.

``get_store()`` returns the process-wide table store: the hosted Postgres
database by default, or the in-memory store when ``SORTEOS_STORE=memory``.
"""

from __future__ import annotations

import logging

from sorteos.config import settings
from sorteos.repository.store import Filter, MemoryStore, Row, TableStore, utc_now_iso

logger = logging.getLogger(__name__)

__all__ = [
    "Filter",
    "MemoryStore",
    "Row",
    "TableStore",
    "get_store",
    "set_store",
    "utc_now_iso",
]

# Singleton instance
_store: TableStore | None = None


def get_store() -> TableStore:
    """Get the global table store instance."""
    global _store
    if _store is None:
        if settings.store_backend == "memory":
            logger.info("Using in-memory table store")
            _store = MemoryStore()
        else:
            from sorteos.repository.postgres import PostgresStore

            _store = PostgresStore()
    return _store


def set_store(store: TableStore | None) -> None:
    """Replace the global store (tests and demo seeding)."""
    global _store
    _store = store
