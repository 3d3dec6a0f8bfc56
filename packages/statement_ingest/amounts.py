"""Monetary cell parsing shared by inference, signatures and materialization."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

CURRENCY_SYMBOLS = "$€£₪¥₹₽"

_STRIP_RE = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}\\s]")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:,\d{3})*|\d*)(?:\.\d+)?$")


def parse_amount(value: Any) -> Decimal | None:
    """Parse a cell as a decimal amount.

    Handles currency symbols, thousands commas, a leading sign and accounting
    parentheses (``(12.50)`` is ``-12.50``). Returns ``None`` for anything
    else, including booleans and blank cells.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value)) if math.isfinite(value) else None

    text = _STRIP_RE.sub("", str(value))
    negative = False
    if len(text) > 2 and text.startswith("(") and text.endswith(")"):
        negative, text = True, text[1:-1]
    if not text or not _NUMBER_RE.match(text) or not any(c.isdigit() for c in text):
        return None
    try:
        amount = Decimal(text.replace(",", ""))
    except InvalidOperation:
        return None
    return -amount if negative else amount


def has_decimal_point(value: Any) -> bool:
    if isinstance(value, float):
        return not value.is_integer()
    return isinstance(value, str) and "." in value and parse_amount(value) is not None


__all__ = ["CURRENCY_SYMBOLS", "has_decimal_point", "parse_amount"]
