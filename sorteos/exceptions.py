"""
Centralized exception hierarchy for Sorteos.

Provides specific exception types for the error scenarios of the admin and
participant views, so the API can map them to status codes and the UI can
show a readable message.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Base Exception
# =============================================================================


class SorteosError(RuntimeError):
    """
    Base exception for all Sorteos errors.

    Attributes:
        message: Human-readable error message (shown to the user).
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Unique identifier for the request (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or self._default_error_code()
        self.request_id = request_id or self._generate_request_id()

    def _default_error_code(self) -> str:
        """Generate default error code from class name."""
        return f"sorteos_{self.__class__.__name__.lower()}"

    def _generate_request_id(self) -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.request_id:
            result["request_id"] = self.request_id
        return result

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log the exception with structured data."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": self.__class__.__name__,
            },
        )


# =============================================================================
# Input Validation Errors
# =============================================================================


class ValidationError(SorteosError):
    """
    Raised when form or query input is invalid.

    HTTP Status: 400 Bad Request
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(
            message,
            detail=detail,
            error_code="validation_error",
            request_id=request_id,
        )


class MissingRequiredFieldError(ValidationError):
    """Raised when a required form field is empty."""

    def __init__(
        self,
        field_name: str,
        *,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            f"El campo '{field_name}' es requerido",
            field=field_name,
            request_id=request_id,
        )


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(SorteosError):
    """
    Raised when a requested row does not exist.

    HTTP Status: 404 Not Found
    """

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        detail = None
        if resource_type and resource_id:
            detail = f"{resource_type} with ID {resource_id!r} not found"
        super().__init__(
            message,
            detail=detail,
            error_code="not_found",
            request_id=request_id,
        )


class RaffleNotFoundError(NotFoundError):
    """Raised when a raffle is not found."""

    def __init__(self, raffle_id: str, *, request_id: str | None = None) -> None:
        super().__init__(
            "Sorteo no encontrado",
            resource_type="Raffle",
            resource_id=raffle_id,
            request_id=request_id,
        )
        self.raffle_id = raffle_id


class TransactionNotFoundError(NotFoundError):
    """Raised when a payment transaction is not found."""

    def __init__(self, transaction_id: str, *, request_id: str | None = None) -> None:
        super().__init__(
            "Transacción no encontrada",
            resource_type="PaymentTransaction",
            resource_id=transaction_id,
            request_id=request_id,
        )
        self.transaction_id = transaction_id


# =============================================================================
# Auth Errors
# =============================================================================


class AuthenticationError(SorteosError):
    """
    Raised when there is no valid session.

    HTTP Status: 401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Usuario no autenticado",
        *,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            detail=detail,
            error_code="not_authenticated",
            request_id=request_id,
        )


class PermissionDeniedError(SorteosError):
    """
    Raised when the user's role is below the one required.

    HTTP Status: 403 Forbidden
    """

    def __init__(
        self,
        required_role: str,
        *,
        user_role: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.required_role = required_role
        self.user_role = user_role
        super().__init__(
            f"Acceso denegado. Se requiere rol: {required_role}",
            detail=f"Current role: {user_role}" if user_role else None,
            error_code="permission_denied",
            request_id=request_id,
        )


# =============================================================================
# State Errors
# =============================================================================


class InvalidStateError(SorteosError):
    """
    Raised when a row is not in a state that allows the requested action.

    HTTP Status: 409 Conflict
    """

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.current_state = current_state
        super().__init__(
            message,
            detail=f"Current state: {current_state}" if current_state else None,
            error_code="invalid_state",
            request_id=request_id,
        )


# =============================================================================
# External Service Errors
# =============================================================================


class ExternalServiceError(SorteosError):
    """
    Raised when the hosted auth service fails or is unreachable.

    HTTP Status: 502 Bad Gateway
    """

    def __init__(
        self,
        service: str,
        message: str | None = None,
        *,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        detail = f"Status code: {status_code}" if status_code else None
        super().__init__(
            message or f"{service} request failed",
            detail=detail,
            error_code="external_service_error",
            request_id=request_id,
        )


# =============================================================================
# Data Store Errors
# =============================================================================


class DataStoreError(SorteosError):
    """
    Raised when a data store operation fails.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        table: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.table = table
        detail_parts = []
        if operation:
            detail_parts.append(f"Operation: {operation}")
        if table:
            detail_parts.append(f"Table: {table}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code="data_store_error",
            request_id=request_id,
        )


class DatabaseError(DataStoreError):
    """Raised when the hosted database rejects or fails a statement."""

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        operation: str | None = None,
        table: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            table=table,
            request_id=request_id,
        )


# =============================================================================
# HTTP Exception Helpers
# =============================================================================


def exception_to_http_status(exc: SorteosError) -> int:
    """
    Map exception to appropriate HTTP status code.

    Args:
        exc: The exception to map.

    Returns:
        HTTP status code.
    """
    status_map = {
        ValidationError: 400,
        AuthenticationError: 401,
        PermissionDeniedError: 403,
        NotFoundError: 404,
        InvalidStateError: 409,
        ExternalServiceError: 502,
        DataStoreError: 500,
    }

    for exc_class, status in status_map.items():
        if isinstance(exc, exc_class):
            return status
    return 500


def handle_exception(exc: Exception, request_id: str | None = None) -> dict[str, Any]:
    """
    Convert any exception to standardized error response.

    Args:
        exc: The exception to handle.
        request_id: Request ID for tracing.

    Returns:
        Dictionary with error details.
    """
    if isinstance(exc, SorteosError):
        exc.request_id = request_id or exc.request_id
        return exc.to_dict()

    if isinstance(exc, ValueError):
        return ValidationError(str(exc), request_id=request_id).to_dict()
    if isinstance(exc, KeyError):
        return MissingRequiredFieldError(str(exc).strip("'"), request_id=request_id).to_dict()

    logger.error(
        "Unhandled exception",
        extra={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "request_id": request_id,
        },
        exc_info=True,
    )
    return SorteosError(
        "Ocurrió un error inesperado",
        request_id=request_id,
    ).to_dict()
