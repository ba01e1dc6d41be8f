"""
Value canonicalization used by the match keys and the field differ.

Every helper here is total (never raises) and idempotent, so a normalized
value can be fed back through the same helper without changing.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any

_NON_DIGITS = re.compile(r"\D+")
_TRUE_TOKENS = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_TOKENS = frozenset({"0", "false", "f", "no", "n", "off"})


def normalize(value: Any) -> str | None:
    """
    Canonicalize a scalar into a comparison-safe string.

    - ``None`` and blank strings become ``None``
    - strings are trimmed, case preserved
    - booleans become ``"true"`` / ``"false"``
    - numbers become plain decimal text (``5``, ``5.0`` and ``"5"`` agree)
    - dates and datetimes become ``YYYY-MM-DD``
    """

    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return format(value.normalize(), "f")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return str(value).strip() or None


def normalize_bool(value: Any) -> str | None:
    """Canonicalize boolean encodings (1/0, yes/no, true/false) to ``true``/``false``."""

    if isinstance(value, bool):
        return "true" if value else "false"
    token = normalize(value)
    if token is None:
        return None
    lowered = token.lower()
    if lowered in _TRUE_TOKENS:
        return "true"
    if lowered in _FALSE_TOKENS:
        return "false"
    return token


def normalize_folded(value: Any) -> str | None:
    token = normalize(value)
    return token.casefold() if token is not None else None


def digits_only(value: Any) -> str | None:
    token = normalize(value)
    if token is None:
        return None
    digits = _NON_DIGITS.sub("", token)
    return digits or None


def normalize_integer(value: Any) -> str | None:
    """Canonicalize an identifier that the template types as an integer."""

    token = normalize(value)
    if token is None:
        return None
    try:
        number = Decimal(token)
        if number != number.to_integral_value():
            return None
        return str(int(number))
    except (ArithmeticError, ValueError):
        return None
