"""
Table store backed by the hosted Postgres database.

Connects to Supabase PostgreSQL with psycopg. Each call opens a short-lived
autocommit connection; inside ``transaction()`` the calls of the current
thread share one connection that commits when the block exits cleanly.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg import OperationalError, sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from sorteos.config import settings
from sorteos.exceptions import DatabaseError
from sorteos.repository.store import Filter, Row, TableStore, check_filters, parse_order
from sorteos.security.sql import escape_like_pattern, validate_identifier

logger = logging.getLogger(__name__)

_COMPARISON_SQL = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


def _adapt(value: Any) -> Any:
    """JSON columns (config, metadata, benefits) are sent as jsonb."""
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


def build_where(filters: Sequence[Filter]) -> tuple[sql.Composable, list[Any]]:
    """
    Compose a WHERE clause from filter tuples.

    Returns:
        Tuple of (sql fragment, params); the fragment is empty without filters
    """
    check_filters(filters)
    clauses: list[sql.Composable] = []
    params: list[Any] = []
    for column, op, value in filters:
        ident = sql.Identifier(validate_identifier(column))
        if op in _COMPARISON_SQL:
            clauses.append(sql.SQL("{} {} %s").format(ident, sql.SQL(_COMPARISON_SQL[op])))
            params.append(value)
        elif op == "in":
            values = list(value)
            if not values:
                clauses.append(sql.SQL("FALSE"))
                continue
            clauses.append(sql.SQL("{} = ANY(%s)").format(ident))
            params.append(values)
        elif op == "is":
            keyword = {None: "NULL", True: "TRUE", False: "FALSE"}[value]
            clauses.append(sql.SQL("{} IS {}").format(ident, sql.SQL(keyword)))
        elif op == "ilike":
            clauses.append(sql.SQL("{} ILIKE %s ESCAPE '\\'").format(ident))
            params.append(f"%{escape_like_pattern(str(value))}%")

    if not clauses:
        return sql.SQL(""), params
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params


class PostgresStore(TableStore):
    """
    Table store for the hosted database.

    Errors from the driver surface as ``DatabaseError`` with the operation and
    table attached; there is no silent fallback to another backend.
    """

    backend = "postgres"

    def __init__(self, db_url: str | None = None, *, schema: str | None = None) -> None:
        self._db_url = db_url or settings.database_url
        self._schema = validate_identifier(schema or settings.db_schema)
        self._local = threading.local()

    def _qualified(self, table: str) -> sql.Composable:
        return sql.Identifier(self._schema, validate_identifier(table))

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(
            self._db_url,
            row_factory=dict_row,
            connect_timeout=settings.db_connect_timeout,
        )

    @contextmanager
    def _cursor(self, operation: str, table: str) -> Iterator[psycopg.Cursor]:
        conn = getattr(self._local, "conn", None)
        try:
            if conn is not None:
                with conn.cursor() as cur:
                    yield cur
                return
            with self._connect() as own_conn:
                own_conn.autocommit = True
                with own_conn.cursor() as cur:
                    yield cur
        except psycopg.Error as e:
            logger.error("PostgresStore: %s on %s failed: %s", operation, table, e)
            raise DatabaseError(str(e) or "Database operation failed", operation=operation, table=table) from e

    def ping(self) -> bool:
        """Test the database connection."""
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
            return True
        except (OperationalError, OSError) as e:
            logger.warning("PostgresStore: DB connection failed: %s", e)
            return False

    def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        where, params = build_where(filters)
        query = sql.SQL("SELECT * FROM {}").format(self._qualified(table)) + where

        order = parse_order(order_by)
        if order:
            query += sql.SQL(" ORDER BY ") + sql.SQL(", ").join(
                sql.SQL("{} {}").format(
                    sql.Identifier(validate_identifier(column)),
                    sql.SQL("DESC" if descending else "ASC"),
                )
                for column, descending in order
            )
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(int(limit))

        with self._cursor("select", table) as cur:
            cur.execute(query, params)
            return list(cur.fetchall())

    def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        where, params = build_where(filters)
        query = sql.SQL("SELECT COUNT(*) AS count FROM {}").format(self._qualified(table)) + where
        with self._cursor("count", table) as cur:
            cur.execute(query, params)
            row = cur.fetchone()
            return int(row["count"]) if row else 0

    def insert(self, table: str, rows: Row | Sequence[Row]) -> list[Row]:
        batch = [rows] if isinstance(rows, dict) else list(rows)
        inserted: list[Row] = []
        with self._cursor("insert", table) as cur:
            for row in batch:
                columns = list(row.keys())
                query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
                    self._qualified(table),
                    sql.SQL(", ").join(sql.Identifier(validate_identifier(c)) for c in columns),
                    sql.SQL(", ").join(sql.Placeholder() for _ in columns),
                )
                cur.execute(query, [_adapt(row[c]) for c in columns])
                inserted.extend(cur.fetchall())
        return inserted

    def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("update without filters is not allowed")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(validate_identifier(column))) for column in values
        )
        where, where_params = build_where(filters)
        query = (
            sql.SQL("UPDATE {} SET ").format(self._qualified(table))
            + assignments
            + where
            + sql.SQL(" RETURNING *")
        )
        params = [_adapt(v) for v in values.values()] + where_params
        with self._cursor("update", table) as cur:
            cur.execute(query, params)
            return list(cur.fetchall())

    def delete(self, table: str, *, filters: Sequence[Filter]) -> int:
        if not filters:
            raise ValueError("delete without filters is not allowed")
        where, params = build_where(filters)
        query = sql.SQL("DELETE FROM {}").format(self._qualified(table)) + where
        with self._cursor("delete", table) as cur:
            cur.execute(query, params)
            return cur.rowcount

    def lock_row(self, table: str, row_id: str) -> Row | None:
        if getattr(self._local, "conn", None) is None:
            raise ValueError("lock_row needs an open transaction")
        where, params = build_where([("id", "eq", row_id)])
        query = sql.SQL("SELECT * FROM {}").format(self._qualified(table)) + where + sql.SQL(" FOR UPDATE")
        with self._cursor("lock", table) as cur:
            cur.execute(query, params)
            return cur.fetchone()

    def max_number(self, table: str, column: str, *, filters: Sequence[Filter] = ()) -> int | None:
        text = sql.SQL("{}::text").format(sql.Identifier(validate_identifier(column)))
        where, params = build_where(filters)
        query = (
            sql.SQL("SELECT MAX(CASE WHEN {0} ~ '^[0-9]+$' THEN {0}::numeric END) AS value FROM {1}").format(
                text, self._qualified(table)
            )
            + where
        )
        with self._cursor("max", table) as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        value = row["value"] if row else None
        return int(value) if value is not None else None

    @contextmanager
    def transaction(self) -> Iterator[PostgresStore]:
        if getattr(self._local, "conn", None) is not None:
            yield self
            return

        try:
            conn = self._connect()
        except psycopg.Error as e:
            raise DatabaseError(str(e), operation="transaction") from e

        self._local.conn = conn
        try:
            with conn:
                with conn.transaction():
                    yield self
        finally:
            self._local.conn = None
