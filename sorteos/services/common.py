"""
Helpers shared by the page loaders and mutation handlers.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from sorteos.config import settings
from sorteos.exceptions import MissingRequiredFieldError, NotFoundError
from sorteos.repository.store import Row, TableStore

T = TypeVar("T")


def fetch_all(tasks: dict[str, Callable[[], Any]]) -> dict[str, Any]:
    """
    Run a page's independent fetches together and collect their results.

    The first failing fetch re-raises once every task has finished.
    """
    if len(tasks) <= 1:
        return {name: fn() for name, fn in tasks.items()}

    workers = min(settings.loader_workers, len(tasks))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {name: executor.submit(fn) for name, fn in tasks.items()}
        return {name: future.result() for name, future in futures.items()}


def embed(
    store: TableStore,
    rows: Sequence[Row],
    *,
    table: str,
    foreign_key: str,
    as_key: str,
    columns: Iterable[str] | None = None,
) -> list[Row]:
    """
    Attach the related row referenced by ``foreign_key`` under ``as_key``.

    Rows whose reference is null or dangling get None. When columns is given
    only those columns of the related row are kept.
    """
    related = store.select_in(table, "id", [r.get(foreign_key) for r in rows])
    keep = list(columns) if columns is not None else None
    by_id = {}
    for rel in related:
        by_id[rel["id"]] = {c: rel.get(c) for c in keep} if keep else rel
    result = []
    for row in rows:
        merged = dict(row)
        merged[as_key] = by_id.get(row.get(foreign_key))
        result.append(merged)
    return result


def require_row(store: TableStore, table: str, row_id: str, *, message: str, resource_type: str) -> Row:
    row = store.get(table, row_id)
    if row is None:
        raise NotFoundError(message, resource_type=resource_type, resource_id=row_id)
    return row


def require_text(form: dict[str, Any], field: str) -> str:
    value = str(form.get(field) or "").strip()
    if not value:
        raise MissingRequiredFieldError(field)
    return value


def first(rows: Sequence[T]) -> T | None:
    return rows[0] if rows else None
