"""Date detection and normalization.

Two input shapes show up in statement exports:

- spreadsheet serial numbers (days since the 1900 epoch, including the
  historical 1900-02-29 that never existed), and
- free-form strings in ISO, ``YYYY/MM/DD`` or ``a/b/yyyy`` shapes, where the
  order of day and month is not stated by the file.

Everything here is pure. ``serial_to_canonical`` never raises and
``parse_ambiguous_string`` returns ``None`` for text it cannot read.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

# Inclusive bounds for values treated as serial dates (1968-06-12 .. 2173-10-14).
SERIAL_DATE_RANGE: tuple[int, int] = (25_000, 100_000)

# Two-digit years below the pivot are 20xx, the rest 19xx.
TWO_DIGIT_YEAR_PIVOT = 70

MIN_YEAR = 1900
MAX_YEAR = 2100


class DatePolicy(StrEnum):
    """How to read ``a/b/yyyy`` when both ``a`` and ``b`` are <= 12."""

    MONTH_FIRST = "month_first"
    DAY_FIRST = "day_first"


AMBIGUOUS_DATE_POLICY = DatePolicy.MONTH_FIRST


class DateStyle(StrEnum):
    US = "us"
    EU = "eu"
    ISO = "iso"


# Serial 1 is 1900-01-01. Serials from 61 on are shifted by the phantom leap day.
_EPOCH_BEFORE_LEAP_BUG = date(1899, 12, 31)
_EPOCH_AFTER_LEAP_BUG = date(1899, 12, 30)
_LEAP_BUG_SERIAL = 60

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_YMD_RE = re.compile(r"^(\d{4})[/.](\d{1,2})[/.](\d{1,2})$")
_TRIPLE_RE = re.compile(r"^(\d{1,2})([/.\-])(\d{1,2})\2(\d{4}|\d{2})$")
_SERIAL_TEXT_RE = re.compile(r"^\d+(?:\.0+)?$")


def _as_serial_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str) and _SERIAL_TEXT_RE.match(value.strip()):
        return float(value.strip())
    return None


def is_serial_date(value: Any) -> bool:
    """Return True for integral numbers inside :data:`SERIAL_DATE_RANGE`.

    Digit-only strings (as produced by delimited decoding) count as numbers.
    """

    n = _as_serial_number(value)
    if n is None or not math.isfinite(n) or not n.is_integer():
        return False
    lo, hi = SERIAL_DATE_RANGE
    return lo <= n <= hi


def serial_to_canonical(serial: Any) -> str:
    """Convert a spreadsheet serial to ``YYYY-MM-DD``.

    Fractions (time of day) are discarded. On any failure the value's text
    form is returned unchanged.
    """

    try:
        days = math.floor(float(serial))
        epoch = _EPOCH_BEFORE_LEAP_BUG if days <= _LEAP_BUG_SERIAL else _EPOCH_AFTER_LEAP_BUG
        return (epoch + timedelta(days=days)).isoformat()
    except (TypeError, ValueError, OverflowError):
        return str(serial)


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        year += 2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900
    return year


def _build(year: int, month: int, day: int) -> date | None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_ambiguous_string(
    text: str, *, policy: DatePolicy = AMBIGUOUS_DATE_POLICY
) -> date | None:
    """Parse a date string whose field order may be unknown.

    Tried in order: ISO (a trailing time part is ignored), ``YYYY/MM/DD``, then
    ``a/b/yyyy`` with ``/``, ``.`` or ``-`` separators. In the last shape a
    component above 12 is the day; when both are <= 12 ``policy`` decides.
    """

    if not isinstance(text, str):
        return None
    s = text.strip()
    if not s:
        return None

    m = _ISO_RE.match(s) or _YMD_RE.match(s)
    if m:
        return _build(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _TRIPLE_RE.match(s)
    if not m:
        return None
    a, b, year = int(m.group(1)), int(m.group(3)), _expand_year(m.group(4))
    if a > 12 and b > 12:
        return None
    if a > 12:
        day, month = a, b
    elif b > 12:
        month, day = a, b
    elif policy is DatePolicy.MONTH_FIRST:
        month, day = a, b
    else:
        day, month = a, b
    return _build(year, month, day)


def is_date_string(text: Any) -> bool:
    return isinstance(text, str) and parse_ambiguous_string(text) is not None


def normalize_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for a serial, a date object or a readable date string."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_serial_date(value):
        return serial_to_canonical(value)
    if isinstance(value, str):
        parsed = parse_ambiguous_string(value)
        return parsed.isoformat() if parsed else None
    return None


def format_canonical(value: date | str, style: DateStyle = DateStyle.ISO) -> str:
    """Render a date (or canonical ``YYYY-MM-DD`` string) in ``style``."""

    d = date.fromisoformat(value) if isinstance(value, str) else value
    if style is DateStyle.US:
        return f"{d.month:02d}/{d.day:02d}/{d.year:04d}"
    if style is DateStyle.EU:
        return f"{d.day:02d}/{d.month:02d}/{d.year:04d}"
    return d.isoformat()


__all__ = [
    "AMBIGUOUS_DATE_POLICY",
    "DatePolicy",
    "DateStyle",
    "SERIAL_DATE_RANGE",
    "TWO_DIGIT_YEAR_PIVOT",
    "format_canonical",
    "is_date_string",
    "is_serial_date",
    "normalize_date",
    "parse_ambiguous_string",
    "serial_to_canonical",
]
