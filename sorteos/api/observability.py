"""
Request tracking for the API.

Every request gets an id (or keeps the caller's ``X-Request-ID``) that is
set on the log context, echoed in the response headers and attached to
structured errors.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from sorteos.api.middleware import get_client_ip
from sorteos.exceptions import SorteosError, handle_exception
from sorteos.logging_config import LogContext, get_logger

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

logger = get_logger(__name__)

SENSITIVE_PARAMS = frozenset({"token", "code", "password", "secret", "access_token", "apikey"})


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


def sanitize_query(query: str) -> str:
    """Redact sensitive query parameter values for logging."""
    sanitized = []
    for part in query.split("&"):
        if "=" in part:
            key, _ = part.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized.append(f"{key}=***REDACTED***")
                continue
        sanitized.append(part)
    return "&".join(sanitized)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Request id, timing and structured request logs.

    Log format:
        {"message": "request_completed", "request_id": "...", "method": "GET",
         "path": "/v1/admin/raffles", "status_code": 200, "duration_ms": 12.3}
    """

    def __init__(self, app: ASGIApp, *, slow_request_threshold_ms: float = 1000.0) -> None:
        super().__init__(app)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or generate_request_id()
        client_ip = get_client_ip(request)

        _request_id_ctx.set(request_id)
        LogContext.set_request_id(request_id)
        LogContext.set_user_id(None)
        LogContext.set_endpoint(str(request.url.path))

        request_meta: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
        }
        if request.url.query:
            request_meta["query_params"] = sanitize_query(str(request.url.query))
        logger.info("request_started", extra=request_meta)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            error_meta: dict[str, Any] = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "duration_ms": round(duration_ms, 2),
            }
            if isinstance(exc, SorteosError):
                exc.request_id = request_id
                error_meta["error_code"] = exc.error_code
                exc.log()
            else:
                error_meta["error_detail"] = handle_exception(exc, request_id=request_id).get("detail")
                logger.error("request_failed", extra=error_meta, exc_info=True)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response_meta: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }
        if hasattr(request.state, "result_count"):
            response_meta["result_count"] = request.state.result_count

        if duration_ms >= self.slow_request_threshold_ms:
            response_meta["slow_request"] = True
            logger.warning("request_completed_slow", extra=response_meta)
        else:
            logger.info("request_completed", extra=response_meta)
        return response
