"""
Table store interface and the in-memory implementation.

Services talk to the hosted database through a small table client:
select with filters / order / limit, count, insert and update returning the
affected rows, delete, and a transaction scope. ``MemoryStore`` keeps the same
contract in-process for tests and local demos.

Filters are ``(column, op, value)`` tuples. Supported ops:

- ``eq`` / ``neq`` / ``gt`` / ``gte`` / ``lt`` / ``lte``: comparisons
- ``in``: value is a sequence; an empty sequence matches nothing
- ``is``: ``None`` / ``True`` / ``False`` identity (SQL ``IS``)
- ``ilike``: case-insensitive substring match; wildcards in value are literal

Order is a column name, or ``-column`` for descending. Nulls sort last
ascending and first descending, as in Postgres.
"""

from __future__ import annotations

import copy
import logging
import re
import threading
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Filter = tuple[str, str, Any]

FILTER_OPS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "in", "is", "ilike"})

_TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}.*)?$")


def utc_now_iso() -> str:
    """Current UTC time in the ISO-8601 form stored in timestamp columns."""
    return datetime.now(timezone.utc).isoformat()


def parse_order(order_by: str | Sequence[str] | None) -> list[tuple[str, bool]]:
    """Turn ``"-created_at"`` style order specs into (column, descending) pairs."""
    if not order_by:
        return []
    specs = [order_by] if isinstance(order_by, str) else list(order_by)
    parsed = []
    for spec in specs:
        if spec.startswith("-"):
            parsed.append((spec[1:], True))
        else:
            parsed.append((spec, False))
    return parsed


def check_filters(filters: Sequence[Filter]) -> None:
    for column, op, _value in filters:
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter op {op!r} on column {column!r}")


class TableStore:
    """Base class for table stores."""

    backend = "base"

    def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        raise NotImplementedError

    def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        raise NotImplementedError

    def insert(self, table: str, rows: Row | Sequence[Row]) -> list[Row]:
        raise NotImplementedError

    def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> list[Row]:
        raise NotImplementedError

    def delete(self, table: str, *, filters: Sequence[Filter]) -> int:
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator[TableStore]:
        raise NotImplementedError
        yield self  # pragma: no cover

    def ping(self) -> bool:
        return True

    # Convenience helpers shared by both backends

    def get(self, table: str, row_id: str) -> Row | None:
        """Fetch a single row by id."""
        rows = self.select(table, filters=[("id", "eq", row_id)], limit=1)
        return rows[0] if rows else None

    def select_in(self, table: str, column: str, values: Sequence[Any]) -> list[Row]:
        """Fetch rows whose column is in values; used to embed related rows."""
        unique = list(dict.fromkeys(v for v in values if v is not None))
        if not unique:
            return []
        return self.select(table, filters=[(column, "in", unique)])

    def lock_row(self, table: str, row_id: str) -> Row | None:
        """
        Fetch a row and hold it against concurrent writers until the current
        ``transaction()`` ends.

        ``MemoryStore`` serializes whole transactions, so a plain read is enough
        there; ``PostgresStore`` uses ``SELECT ... FOR UPDATE``.
        """
        return self.get(table, row_id)

    def max_number(self, table: str, column: str, *, filters: Sequence[Filter] = ()) -> int | None:
        """Largest value of a digits-only text column, compared as integers."""
        numbers = [
            int(value)
            for value in (row.get(column) for row in self.select(table, filters=filters))
            if isinstance(value, str) and value.isascii() and value.isdigit()
        ]
        return max(numbers, default=None)


# =============================================================================
# In-memory backend
# =============================================================================


def _comparable(value: Any) -> Any:
    """Timestamps compare as datetimes so mixed offsets order correctly."""
    if isinstance(value, str) and _TIMESTAMP_PATTERN.match(value):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _matches(row: Row, filters: Sequence[Filter]) -> bool:
    for column, op, expected in filters:
        actual = row.get(column)
        if op == "eq":
            if actual is None or _comparable(actual) != _comparable(expected):
                return False
        elif op == "neq":
            # SQL semantics: NULL <> x is not true
            if actual is None or _comparable(actual) == _comparable(expected):
                return False
        elif op == "in":
            if actual is None or actual not in list(expected):
                return False
        elif op == "is":
            if actual is not expected and actual != expected:
                return False
        elif op == "ilike":
            if actual is None or str(expected).lower() not in str(actual).lower():
                return False
        else:
            if actual is None or expected is None:
                return False
            left, right = _comparable(actual), _comparable(expected)
            if op == "gt" and not left > right:
                return False
            if op == "gte" and not left >= right:
                return False
            if op == "lt" and not left < right:
                return False
            if op == "lte" and not left <= right:
                return False
    return True


def _sort_rows(rows: list[Row], order: list[tuple[str, bool]]) -> list[Row]:
    # Stable sorts applied from the last key to the first
    for column, descending in reversed(order):
        present = [r for r in rows if r.get(column) is not None]
        missing = [r for r in rows if r.get(column) is None]
        present.sort(key=lambda r: _comparable(r[column]), reverse=descending)
        rows = missing + present if descending else present + missing
    return rows


class MemoryStore(TableStore):
    """
    In-process table store.

    Rows are deep-copied in and out so callers never share state with the
    store. ``transaction()`` snapshots every table and restores the snapshot
    if the block raises.
    """

    backend = "memory"

    def __init__(self, tables: dict[str, list[Row]] | None = None) -> None:
        self._tables: dict[str, list[Row]] = {}
        self._lock = threading.RLock()
        self._depth = 0
        for table, rows in (tables or {}).items():
            self.insert(table, rows)

    def _table(self, table: str) -> list[Row]:
        return self._tables.setdefault(table, [])

    def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        check_filters(filters)
        with self._lock:
            rows = [r for r in self._table(table) if _matches(r, filters)]
            rows = _sort_rows(rows, parse_order(order_by))
            if limit is not None:
                rows = rows[:limit]
            return copy.deepcopy(rows)

    def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        check_filters(filters)
        with self._lock:
            return sum(1 for r in self._table(table) if _matches(r, filters))

    def insert(self, table: str, rows: Row | Sequence[Row]) -> list[Row]:
        batch = [rows] if isinstance(rows, dict) else list(rows)
        inserted = []
        with self._lock:
            for row in batch:
                stored = copy.deepcopy(row)
                stored.setdefault("id", str(uuid.uuid4()))
                stored.setdefault("created_at", utc_now_iso())
                if any(existing["id"] == stored["id"] for existing in self._table(table)):
                    raise ValueError(f"duplicate key value violates unique constraint on {table}.id")
                self._table(table).append(stored)
                inserted.append(copy.deepcopy(stored))
        return inserted

    def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> list[Row]:
        check_filters(filters)
        updated = []
        with self._lock:
            for row in self._table(table):
                if _matches(row, filters):
                    row.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table: str, *, filters: Sequence[Filter]) -> int:
        check_filters(filters)
        with self._lock:
            rows = self._table(table)
            kept = [r for r in rows if not _matches(r, filters)]
            removed = len(rows) - len(kept)
            self._tables[table] = kept
        return removed

    @contextmanager
    def transaction(self) -> Iterator[MemoryStore]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self._tables)
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._tables = snapshot
                logger.debug("MemoryStore: transaction rolled back")
                raise
            finally:
                self._depth = 0
