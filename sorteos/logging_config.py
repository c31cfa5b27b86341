"""
Sorteos - Structured Logging Configuration
==========================================
JSON logs for the API and the admin UI, with request context attached.

Features:
- One JSON object per line, or a short colored line while developing
- Request-scoped context (request_id, user_id, endpoint)
- Session secrets and personal ids are masked before they reach a log line
- Durations for page loaders and mutations

Usage:
    from sorteos.logging_config import get_logger, log_event

    logger = get_logger(__name__)
    logger.info("Raffle created", extra={"raffle_id": raffle_id})

    # Or use the helper
    log_event("raffle_deleted", raffle_id=raffle_id)
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
import time
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from sorteos.config import settings


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Extra fields never written as-is
MASKED_FIELDS = frozenset({"access_token", "refresh_token", "password", "id_number", "authorization"})
MASK = "***"

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("urllib3", "watchdog", "httpx", "uvicorn.access")

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


# =============================================================================
# Request context
# =============================================================================


class LogContext:
    """
    Per-thread ids attached to every record.

    The API middleware and the Streamlit page dispatcher both set it so that
    every record emitted while serving a request carries the same ids.
    """

    FIELDS = ("request_id", "user_id", "endpoint")

    _local = threading.local()

    @classmethod
    def _set(cls, name: str, value: str | None) -> None:
        setattr(cls._local, name, value)

    @classmethod
    def _get(cls, name: str) -> str | None:
        return getattr(cls._local, name, None)

    @classmethod
    def set_request_id(cls, request_id: str | None) -> None:
        cls._set("request_id", request_id)

    @classmethod
    def get_request_id(cls) -> str | None:
        return cls._get("request_id")

    @classmethod
    def set_user_id(cls, user_id: str | None) -> None:
        cls._set("user_id", user_id)

    @classmethod
    def get_user_id(cls) -> str | None:
        return cls._get("user_id")

    @classmethod
    def set_endpoint(cls, endpoint: str | None) -> None:
        cls._set("endpoint", endpoint)

    @classmethod
    def get_endpoint(cls) -> str | None:
        return cls._get("endpoint")

    @classmethod
    def clear(cls) -> None:
        for name in cls.FIELDS:
            cls._set(name, None)

    @classmethod
    def get_all(cls) -> dict[str, Any]:
        return {name: cls._get(name) for name in cls.FIELDS}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        fields[key] = MASK if key.lower() in MASKED_FIELDS and value else value
    return fields


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Fields: timestamp, level, logger, message, service, environment, the
    source location, the request context, any ``extra`` fields and, when
    present, the exception with its traceback.
    """

    def __init__(
        self,
        *,
        service_name: str = "sorteos",
        environment: str = "production",
        include_extra_fields: bool = True,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
        }
        if record.pathname:
            entry.update(file=Path(record.pathname).name, line=record.lineno, function=record.funcName)

        entry.update({key: value for key, value in LogContext.get_all().items() if value is not None})
        if self.include_extra_fields:
            entry.update(_extra_fields(record))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Short colored lines for local runs: level, time, request id, logger, message and extras."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S")
        line = (
            f"{color}{record.levelname:<8}{self.RESET} {clock} "
            f"[{LogContext.get_request_id() or '-'}] {record.name}: {record.getMessage()}"
        )
        extras = _extra_fields(record)
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


# =============================================================================
# Setup
# =============================================================================


def _convert_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _use_json(log_format: str | None) -> bool:
    chosen = (log_format or os.environ.get("LOG_FORMAT", "")).lower()
    if chosen in ("json", "console"):
        return chosen == "json"
    return not settings.debug_mode


_configured = False


def configure_logging(
    *,
    level: str | int | None = None,
    service_name: str = "sorteos",
    environment: str = "production",
    log_format: str | None = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level; defaults to ``LOG_LEVEL`` (INFO)
        service_name: Value of the ``service`` field
        environment: Value of the ``environment`` field
        log_format: "json" or "console"; defaults to ``LOG_FORMAT``, then JSON unless debugging
    """
    global _configured

    resolved = _convert_level(level if level is not None else os.environ.get("LOG_LEVEL", "INFO"))
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    if _use_json(log_format):
        handler.setFormatter(StructuredFormatter(service_name=service_name, environment=environment))
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()
    root.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """A named logger; the root logger is configured on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


# =============================================================================
# Helpers
# =============================================================================


def log_event(
    event_name: str,
    level: str | LogLevel = LogLevel.INFO,
    **extra_fields: Any,
) -> None:
    """
    Log a named domain event with its fields.

    Example:
        log_event("live_event_alert_toggled", event_id=event_id, show_as_alert=True)
    """
    logger = get_logger("sorteos.event")
    name = level.value if isinstance(level, LogLevel) else str(level)
    getattr(logger, name.lower(), logger.info)(event_name, extra=extra_fields)


def log_error(
    event_name: str,
    exc: Exception | None = None,
    **extra_fields: Any,
) -> None:
    """Log a failed operation; with ``exc`` its type and message are added."""
    logger = get_logger("sorteos.error")
    if exc is not None:
        extra_fields.setdefault("error_type", type(exc).__name__)
        extra_fields.setdefault("error_message", str(exc))
    logger.error(event_name, exc_info=exc is not None, extra=extra_fields)


class LogContextManager:
    """
    Set the request context for a block and clear it afterwards.

    Example:
        with LogContextManager(user_id=user.id, endpoint="ui/raffles"):
            render_raffles_page(user)
    """

    def __init__(
        self,
        *,
        request_id: str | None = None,
        user_id: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        self.request_id = request_id or str(uuid.uuid4())
        self.user_id = user_id
        self.endpoint = endpoint

    def __enter__(self) -> LogContextManager:
        LogContext.set_request_id(self.request_id)
        LogContext.set_user_id(self.user_id)
        LogContext.set_endpoint(self.endpoint)
        return self

    def __exit__(self, *args: Any) -> None:
        LogContext.clear()


class PerformanceTracker:
    """
    Log how long a block took as ``<operation>_completed`` or ``<operation>_failed``.

    Example:
        with PerformanceTracker("load_raffles_page"):
            rows = store.select("raffles")
    """

    def __init__(self, operation: str, **extra_fields: Any) -> None:
        self.operation = operation
        self.extra = extra_fields
        self._start: float | None = None

    def __enter__(self) -> PerformanceTracker:
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self._start is None:
            return
        self.extra["duration_ms"] = round((time.perf_counter() - self._start) * 1000, 2)
        logger = get_logger("sorteos.performance")
        if exc_type is not None:
            self.extra["error"] = str(exc)
            logger.warning(f"{self.operation}_failed", extra=self.extra)
        else:
            logger.info(f"{self.operation}_completed", extra=self.extra)
