"""
Tests for WHERE clause composition in the Postgres store.

Only the composed statements and bound parameters are checked; no database
connection is opened.
"""

from decimal import Decimal
from unittest import mock

import pytest

from sorteos.repository.postgres import PostgresStore, build_where


class TestBuildWhere:
    def test_no_filters(self):
        _fragment, params = build_where([])
        assert params == []

    def test_comparison_params_in_order(self):
        _fragment, params = build_where([("status", "eq", "active"), ("total_winners", "gte", 2)])
        assert params == ["active", 2]

    def test_in_sends_list(self):
        _fragment, params = build_where([("id", "in", ("a", "b"))])
        assert params == [["a", "b"]]

    def test_empty_in_has_no_param(self):
        _fragment, params = build_where([("id", "in", [])])
        assert params == []

    def test_is_has_no_param(self):
        _fragment, params = build_where([("end_date", "is", None), ("is_visible", "is", True)])
        assert params == []

    def test_ilike_escapes_wildcards(self):
        _fragment, params = build_where([("title", "ilike", "100%_off")])
        assert params == ["%100\\%\\_off%"]

    def test_invalid_identifier(self):
        with pytest.raises(ValueError):
            build_where([("status; DROP TABLE raffles", "eq", "x")])

    def test_unknown_op(self):
        with pytest.raises(ValueError):
            build_where([("status", "regex", ".*")])


class TestPostgresStoreGuards:
    def test_invalid_schema_rejected(self):
        with pytest.raises(ValueError):
            PostgresStore("postgresql://localhost/db", schema="public; drop")

    def test_update_requires_filters(self):
        store = PostgresStore("postgresql://localhost/db")
        with pytest.raises(ValueError):
            store.update("raffles", {"status": "closed"}, filters=[])

    def test_delete_requires_filters(self):
        store = PostgresStore("postgresql://localhost/db")
        with pytest.raises(ValueError):
            store.delete("raffles", filters=[])


def store_with_cursor(fetched):
    """A store inside a fake transaction whose cursor returns ``fetched``."""
    store = PostgresStore("postgresql://localhost/db")
    cursor = mock.MagicMock()
    cursor.fetchone.return_value = fetched
    conn = mock.MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    store._local.conn = conn
    return store, cursor


class TestRowLocking:
    def test_lock_row_selects_for_update(self):
        store, cursor = store_with_cursor({"id": "raffle-1", "status": "active"})
        assert store.lock_row("raffles", "raffle-1") == {"id": "raffle-1", "status": "active"}

        query, params = cursor.execute.call_args.args
        assert "FOR UPDATE" in repr(query)
        assert params == ["raffle-1"]

    def test_lock_row_needs_transaction(self):
        store = PostgresStore("postgresql://localhost/db")
        with pytest.raises(ValueError):
            store.lock_row("raffles", "raffle-1")


class TestMaxNumber:
    def test_numeric_max(self):
        store, cursor = store_with_cursor({"value": Decimal("1000000")})
        assert store.max_number("raffle_entries", "ticket_number", filters=[("raffle_id", "eq", "r-1")]) == 1000000

        query, params = cursor.execute.call_args.args
        assert "::numeric" in repr(query)
        assert params == ["r-1"]

    def test_no_rows(self):
        store, _cursor = store_with_cursor({"value": None})
        assert store.max_number("raffle_entries", "ticket_number") is None
