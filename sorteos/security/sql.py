"""
SQL helpers for the Postgres table store.

Table and column names are interpolated as identifiers, so they must be
plain names; search text goes into ILIKE patterns, so its wildcards are
escaped.
"""

import re

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

LIKE_ESCAPE = "\\"


def escape_like_pattern(pattern: str, escape_char: str = LIKE_ESCAPE) -> str:
    """
    Make ``%`` and ``_`` in user text match literally inside LIKE / ILIKE.

    >>> escape_like_pattern("100%")
    '100\\\\%'
    """
    if not isinstance(pattern, str):
        raise TypeError(f"Pattern must be a string, got {type(pattern).__name__}")
    # The escape character itself goes first so the later escapes stay single
    for char in (escape_char, "%", "_"):
        pattern = pattern.replace(char, escape_char + char)
    return pattern


def validate_identifier(name: str) -> str:
    """
    Return name if it is a plain SQL identifier (letters, digits, underscores).

    Raises:
        ValueError: For anything else
    """
    if not isinstance(name, str) or not _IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name
