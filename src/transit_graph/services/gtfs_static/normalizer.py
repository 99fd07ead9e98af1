"""GTFS record normalizer and field decoders."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any

_GTFS_DATE_RE = re.compile(r"^\d{8}$")

# GTFS accessibility enums: 0/empty = no information, 1 = yes, 2 = no
TRISTATE_YES = "1"
TRISTATE_NO = "2"


class DateParseError(Exception):
    """Raised when a GTFS date string is not a valid YYYYMMDD date."""


class NormalizationError(Exception):
    """Raised when a row cannot be normalized."""


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``record`` without empty-string fields.

    Downstream mapping treats an absent field and an empty one the same way,
    so dropping them keeps optional handling to a single ``.get``.
    """
    return {key: value for key, value in record.items() if value != ""}


def decode_tristate(value: str | None) -> bool | None:
    """Decode a GTFS flag that allows "unknown".

    Examples:
        ""  -> None
        "1" -> True
        "2" -> False
        "0" -> None
    """
    if value == TRISTATE_YES:
        return True
    if value == TRISTATE_NO:
        return False
    return None


def decode_bool(value: str | None) -> bool:
    """Decode a strict GTFS boolean: ``"1"`` is true, anything else false."""
    return value == "1"


def parse_gtfs_date(value: str) -> str:
    """Parse a GTFS date (YYYYMMDD) and return it as an ISO date.

    Examples:
        "20240115" -> "2024-01-15"

    Raises:
        DateParseError: If the value is not 8 digits or not a real date.
    """
    value = value.strip()
    if not _GTFS_DATE_RE.match(value):
        msg = f"Invalid GTFS date format: {value!r} (expected YYYYMMDD)"
        raise DateParseError(msg)
    try:
        return datetime.strptime(value, "%Y%m%d").date().isoformat()
    except ValueError as exc:
        msg = f"Invalid calendar date: {value!r}"
        raise DateParseError(msg) from exc


def parse_int(value: str | None, field: str) -> int | None:
    """Parse an optional integer field.

    Returns None when the field is absent.

    Raises:
        NormalizationError: If a value is present but not an integer.
    """
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise NormalizationError(f"Invalid integer for {field}: {value!r}") from exc


def parse_float(value: str | None, field: str) -> float | None:
    """Parse an optional decimal field.

    Raises:
        NormalizationError: If a value is present but not a finite number.
    """
    if value is None:
        return None
    try:
        result = float(value)
    except ValueError as exc:
        raise NormalizationError(f"Invalid number for {field}: {value!r}") from exc
    if not math.isfinite(result):
        raise NormalizationError(f"Invalid number for {field}: {value!r}")
    return result


def normalize_color(value: str | None) -> str | None:
    """Return a GTFS color (``FF0000``) as a CSS hex color (``#FF0000``)."""
    if value is None:
        return None
    if value.startswith("#"):
        return value
    return f"#{value}"


def require(record: dict[str, Any], field: str, table: str) -> str:
    """Return a mandatory field or raise if it was absent (or empty)."""
    value = record.get(field)
    if value is None:
        raise NormalizationError(f"Missing {field} in {table}")
    return str(value)
