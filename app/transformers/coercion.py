"""
app/transformers/coercion.py

Value-level coercion and type tests shared by the profiler, the record
transformer and the validator.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%d %b %Y",
    "%d %B %Y",
)

MIN_CALENDAR_YEAR = 1900
MAX_CALENDAR_YEAR = 2100

NULL_TOKENS: frozenset[str] = frozenset({"", "null", "undefined"})

_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_CURRENCY_RE = re.compile(
    r"^(?:-\s*[$€£¥]?|[$€£¥]\s*-?|\(\s*[$€£¥]?)?\s*(?:\d[\d,]*(?:\.\d*)?|\.\d+)\s*\)?$"
)
_CURRENCY_SYMBOLS_RE = re.compile(r"[$€£¥,\s]")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() == ""


def is_null_token(value: Any) -> bool:
    """
    True for values the importer treats as "no value": blanks, "null", "undefined".
    """

    if value is None:
        return True
    return str(value).strip().lower() in NULL_TOKENS


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _parse_calendar(raw: str) -> date | None:
    if "-" in raw or "T" in raw:
        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            return datetime.fromisoformat(normalized).date()
        except ValueError:
            pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(value: Any) -> date | None:
    """
    Parse a calendar date, returning None when the value is not a date.

    Generic parsing only accepts years in [1900, 2100); an explicit
    MM/DD/YYYY match is then tried without the year window.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if is_blank(value):
        return None

    raw = str(value).strip()
    parsed = _parse_calendar(raw)
    if parsed is not None and MIN_CALENDAR_YEAR <= parsed.year < MAX_CALENDAR_YEAR:
        return parsed

    match = _US_DATE_RE.match(raw)
    if match:
        month, day, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def is_date_like(value: Any) -> bool:
    return parse_date(value) is not None


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def is_currency_like(value: Any) -> bool:
    """
    Optional currency symbol plus digits, thousands commas and a decimal point.
    """

    if is_blank(value):
        return False
    return bool(_CURRENCY_RE.match(str(value).strip()))


def is_number_like(value: Any) -> bool:
    """
    True when the whole value parses as a finite number.
    """

    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if is_blank(value):
        return False
    try:
        return math.isfinite(float(str(value).strip()))
    except ValueError:
        return False


def parse_number(value: Any) -> float | None:
    """
    Parse a numeric or currency string.

    Currency symbols, thousands separators and whitespace are stripped and
    accounting parentheses read as a negative sign. Returns None for blanks,
    null tokens and anything that still is not a finite number.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if is_null_token(value):
        return None

    cleaned = _CURRENCY_SYMBOLS_RE.sub("", str(value).strip())
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = f"-{cleaned[1:-1]}"
    if not cleaned or cleaned in {"-", "."}:
        return None

    try:
        parsed = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return float(parsed)
