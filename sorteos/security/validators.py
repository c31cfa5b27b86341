"""
Input validation for form fields.

Covers the fields the admin and participant forms accept from users:
Ecuadorian national id numbers and outbound URLs (stream, image,
receipt, checkout).
"""

import re
from urllib.parse import urlparse

from sorteos.exceptions import ValidationError

_DIGITS_PATTERN = re.compile(r"^\d+$")
_CEDULA_PATTERN = re.compile(r"^\d{10}$")

_CEDULA_COEFFICIENTS = (2, 1, 2, 1, 2, 1, 2, 1, 2)
_MAX_PROVINCE_CODE = 24


def is_valid_cedula(cedula: str) -> bool:
    """
    Check an Ecuadorian cédula with the modulo 10 algorithm.

    A valid number has exactly 10 digits, a province code between 01 and 24,
    a third digit below 6 (natural persons) and a matching check digit.
    """
    if not isinstance(cedula, str) or not _CEDULA_PATTERN.match(cedula):
        return False

    province_code = int(cedula[:2])
    if province_code < 1 or province_code > _MAX_PROVINCE_CODE:
        return False

    if int(cedula[2]) >= 6:
        return False

    total = 0
    for digit, coefficient in zip(cedula[:9], _CEDULA_COEFFICIENTS):
        product = int(digit) * coefficient
        if product >= 10:
            product -= 9
        total += product

    modulo = total % 10
    expected = 0 if modulo == 0 else 10 - modulo
    return int(cedula[9]) == expected


def cedula_error(cedula: str | None) -> str | None:
    """
    Return the user-facing message for an invalid cédula, or None if valid.
    """
    if not cedula:
        return "La cédula es requerida."
    if not _DIGITS_PATTERN.match(cedula):
        return "La cédula solo debe contener números."
    if len(cedula) != 10:
        return "La cédula debe tener exactamente 10 dígitos."

    province_code = int(cedula[:2])
    if province_code < 1 or province_code > _MAX_PROVINCE_CODE:
        return "El código de provincia de la cédula no es válido."
    if int(cedula[2]) >= 6:
        return "La cédula ingresada no corresponde a una persona natural."
    if not is_valid_cedula(cedula):
        return "La cédula ingresada no es válida. Verifica los dígitos."
    return None


def validate_cedula(cedula: str | None, *, field: str = "id_number") -> str:
    """
    Validate a cédula and return it stripped.

    Raises:
        ValidationError: With the user-facing message if it is invalid
    """
    value = (cedula or "").strip()
    message = cedula_error(value)
    if message:
        raise ValidationError(message, field=field)
    return value


def validate_http_url(url: str | None, *, field: str = "url", required: bool = False) -> str | None:
    """
    Validate an optional http(s) URL entered in a form.

    Empty values become None unless the field is required.

    Raises:
        ValidationError: If the URL is malformed or uses another scheme
    """
    value = (url or "").strip()
    if not value:
        if required:
            raise ValidationError(f"El campo '{field}' es requerido", field=field)
        return None

    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValidationError("La URL debe comenzar con http:// o https://", field=field)
    if not parsed.netloc:
        raise ValidationError("La URL no es válida", field=field)
    # Credentials embedded in the URL are never expected here
    if "@" in parsed.netloc:
        raise ValidationError("La URL no es válida", field=field, detail="credentials in netloc")
    return value

