"""
Tests for structured logging (sorteos.logging_config).

Covers:
- JSON formatter fields
- Request-scoped context
- Performance tracking and event helpers
"""

import json
import logging
import sys
from unittest import mock

import pytest

from sorteos import logging_config
from sorteos.logging_config import (
    ConsoleFormatter,
    LogContext,
    LogContextManager,
    PerformanceTracker,
    StructuredFormatter,
    log_error,
    log_event,
)


def make_record(message="hola", **extra):
    record = logging.LogRecord(
        name="sorteos.test",
        level=logging.INFO,
        pathname="/app/sorteos/services/raffles.py",
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
        func="save_raffle",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def clear_context():
    LogContext.clear()
    yield
    LogContext.clear()


class TestStructuredFormatter:
    """Tests for the JSON formatter."""

    def test_base_fields(self):
        formatter = StructuredFormatter(service_name="sorteos-api", environment="test")
        entry = json.loads(formatter.format(make_record()))

        assert entry["message"] == "hola"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "sorteos.test"
        assert entry["service"] == "sorteos-api"
        assert entry["environment"] == "test"
        assert entry["file"] == "raffles.py"
        assert entry["line"] == 42
        assert entry["function"] == "save_raffle"
        assert entry["timestamp"].endswith("Z")

    def test_extra_fields_included(self):
        entry = json.loads(StructuredFormatter().format(make_record(raffle_id="raffle-1")))
        assert entry["raffle_id"] == "raffle-1"

    def test_extra_fields_can_be_disabled(self):
        formatter = StructuredFormatter(include_extra_fields=False)
        entry = json.loads(formatter.format(make_record(raffle_id="raffle-1")))
        assert "raffle_id" not in entry

    def test_secrets_and_cedula_masked(self):
        record = make_record(access_token="eyJ.abc", id_number="1710034065", raffle_id="raffle-1")
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["access_token"] == "***"
        assert entry["id_number"] == "***"
        assert entry["raffle_id"] == "raffle-1"

    def test_context_fields(self):
        LogContext.set_request_id("req-1")
        LogContext.set_user_id("user-1")
        entry = json.loads(StructuredFormatter().format(make_record()))
        assert entry["request_id"] == "req-1"
        assert entry["user_id"] == "user-1"
        assert "endpoint" not in entry

    def test_exception_info(self):
        try:
            raise ValueError("malo")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "malo"

    def test_unicode_kept(self):
        output = StructuredFormatter().format(make_record("Sorteo creado: Cédula"))
        assert "Cédula" in output


class TestConsoleFormatter:
    def test_includes_request_id(self):
        LogContext.set_request_id("req-7")
        output = ConsoleFormatter().format(make_record("listo"))
        assert "[req-7]" in output
        assert "sorteos.test: listo" in output


class TestLogContextManager:
    def test_sets_and_clears(self):
        with LogContextManager(user_id="user-1", endpoint="admin/sorteos") as ctx:
            assert LogContext.get_user_id() == "user-1"
            assert LogContext.get_endpoint() == "admin/sorteos"
            assert LogContext.get_request_id() == ctx.request_id
        assert LogContext.get_all() == {"request_id": None, "user_id": None, "endpoint": None}

    def test_explicit_request_id(self):
        with LogContextManager(request_id="req-3"):
            assert LogContext.get_request_id() == "req-3"


class TestPerformanceTracker:
    def test_logs_completion(self):
        logger = mock.Mock()
        with mock.patch.object(logging_config, "get_logger", return_value=logger):
            with PerformanceTracker("load_raffles_page", page=1):
                pass

        logger.info.assert_called_once()
        args, kwargs = logger.info.call_args
        assert args[0] == "load_raffles_page_completed"
        assert kwargs["extra"]["page"] == 1
        assert kwargs["extra"]["duration_ms"] >= 0

    def test_logs_failure_and_propagates(self):
        logger = mock.Mock()
        with mock.patch.object(logging_config, "get_logger", return_value=logger):
            with pytest.raises(RuntimeError):
                with PerformanceTracker("draw"):
                    raise RuntimeError("sin entradas")

        args, kwargs = logger.warning.call_args
        assert args[0] == "draw_failed"
        assert kwargs["extra"]["error"] == "sin entradas"


class TestEventHelpers:
    def test_log_event_level(self):
        logger = mock.Mock()
        with mock.patch.object(logging_config, "get_logger", return_value=logger):
            log_event("raffle_deleted", raffle_id="r-1")
            log_event("alert_skipped", level="WARNING", event_id="e-1")

        logger.info.assert_called_once_with("raffle_deleted", extra={"raffle_id": "r-1"})
        logger.warning.assert_called_once_with("alert_skipped", extra={"event_id": "e-1"})

    def test_log_error_adds_exception_fields(self):
        logger = mock.Mock()
        with mock.patch.object(logging_config, "get_logger", return_value=logger):
            log_error("ticket_failed", ValueError("sin cupo"), transaction_id="tx-1")

        args, kwargs = logger.error.call_args
        assert args[0] == "ticket_failed"
        assert kwargs["exc_info"] is True
        assert kwargs["extra"] == {
            "transaction_id": "tx-1",
            "error_type": "ValueError",
            "error_message": "sin cupo",
        }
