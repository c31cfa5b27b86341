"""
Security module for Sorteos.

Provides form input validation and SQL escaping helpers.
"""

from sorteos.security.sql import escape_like_pattern, validate_identifier
from sorteos.security.validators import (
    cedula_error,
    is_valid_cedula,
    validate_cedula,
    validate_http_url,
)

__all__ = [
    "cedula_error",
    "is_valid_cedula",
    "validate_cedula",
    "validate_http_url",
    "escape_like_pattern",
    "validate_identifier",
]
