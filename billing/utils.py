"""
Input parsing helpers shared by the store, the import pipeline and the views.

Empty input means "not given" (None). Input that is present but cannot be parsed
raises ValidationError with a message naming the field, so it can be flashed inline.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from flask import url_for

from .exceptions import ValidationError

TRUE_VALUES = {"1", "true", "yes", "y", "on", "t"}
FALSE_VALUES = {"0", "false", "no", "n", "off", "f"}

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_text(value) -> str | None:
    """Strip text; empty becomes None."""
    raw = _clean(value)
    return raw or None


def parse_decimal(value, field: str = "value") -> Decimal | None:
    """Parse decimal from user input (accepts comma or dot)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    raw = _clean(value).replace(",", ".")
    if raw == "":
        return None
    try:
        parsed = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a number.")
    return parsed


def parse_int(value, field: str = "value") -> int | None:
    """Parse optional int. Whole-number floats from spreadsheets (e.g. 3.0) are accepted."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number.")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be a whole number.")
    raw = _clean(value)
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        as_decimal = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a whole number.")
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        raise ValidationError(f"{field} must be a whole number.")
    return int(as_decimal)


def parse_bool(value, field: str = "value") -> bool | None:
    """Parse checkbox / spreadsheet booleans."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    raw = _clean(value).lower()
    if raw == "":
        return None
    if raw in TRUE_VALUES:
        return True
    if raw in FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be yes/no.")


def parse_date(value, field: str = "date") -> date | None:
    """Parse ISO (yyyy-mm-dd) or dd/mm/yyyy dates. Spreadsheet datetimes are accepted as-is."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = _clean(value)
    if raw == "":
        return None
    # ISO timestamps ("2024-05-01T00:00:00")
    candidate = raw.split("T")[0].split(" ")[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"{field} must be a date (yyyy-mm-dd).")


def safe_next_url(raw_next: str | None, fallback_endpoint: str) -> str:
    """
    Return a safe local next URL.

    Only relative URLs starting with "/" are allowed; anything else falls back
    to the given endpoint.
    """
    if not raw_next:
        return url_for(fallback_endpoint)

    parsed = urlparse(raw_next)
    if parsed.scheme or parsed.netloc or not raw_next.startswith("/"):
        return url_for(fallback_endpoint)

    return raw_next
