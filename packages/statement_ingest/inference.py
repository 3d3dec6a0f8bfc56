"""Guess a column mapping from header text and sampled values.

Per column, first match wins:

1. header keywords (multilingual), checked in the order date, expense,
   income, description;
2. up to :data:`MAX_SAMPLES` non-empty data cells: date strings, then serial
   numbers, then amounts (decimal or integral, sign majority picks Income or
   Expenses), then text;
3. Description.

Exclusive tags are claimed by the first column that earns them. A later
column that would repeat one falls through to sampling; if sampling also
lands on a claimed tag, an amount column takes the other amount tag when it
is free and Ignore otherwise, and a date column gets Ignore.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .amounts import has_decimal_point, parse_amount
from .dates import is_date_string, is_serial_date
from .errors import AmbiguousMappingError, ValidationError
from .logging_setup import get_logger
from .models import EXCLUSIVE_TAGS, Cell, HeaderMapping, RawTable, Tag

_logger = get_logger("statement_ingest.inference")

MAX_SAMPLES = 5

HEADER_KEYWORDS: tuple[tuple[Tag, tuple[str, ...]], ...] = (
    (Tag.DATE, ("date", "day", "time", "תאריך", "день", "fecha", "datum")),
    (
        Tag.EXPENSES,
        ("expense", "debit", "cost", "payment", "out", "withdrawal", "חובה", "gasto", "ausgabe"),
    ),
    (
        Tag.INCOME,
        ("income", "credit", "deposit", "revenue", "in", "זכות", "ingreso", "einkommen"),
    ),
    (
        Tag.DESCRIPTION,
        ("desc", "note", "memo", "text", "detail", "payee", "תאור", "פרטים", "descrip"),
    ),
)

# Keywords this short only match a whole word ("in" must not match "Maintenance").
_WHOLE_WORD_MAX = 3

_TOKEN_SPLIT_RE = re.compile(r"[^\w]+|_")
_LETTERS_RE = re.compile(r"[^\W\d_]{2,}")

_COMPLEMENT = {Tag.INCOME: Tag.EXPENSES, Tag.EXPENSES: Tag.INCOME}


def header_tag(text: Cell) -> Tag | None:
    """Return the tag whose keyword appears in a header cell, if any."""

    folded = str(text).casefold().strip()
    if not folded:
        return None
    tokens = {t for t in _TOKEN_SPLIT_RE.split(folded) if t}
    for tag, keywords in HEADER_KEYWORDS:
        for kw in keywords:
            if len(kw) <= _WHOLE_WORD_MAX:
                if kw in tokens:
                    return tag
            elif kw in folded:
                return tag
    return None


def _signed_majority(amounts: Sequence) -> Tag:
    negatives = sum(1 for a in amounts if a < 0)
    return Tag.EXPENSES if negatives > len(amounts) - negatives else Tag.INCOME


def sample_tag(values: Sequence[Cell]) -> Tag | None:
    """Classify sampled cells; ``None`` when there is nothing to sample."""

    samples = [v for v in values if v is not None and str(v).strip() != ""][:MAX_SAMPLES]
    if not samples:
        return None
    majority = len(samples) // 2 + 1

    if sum(1 for v in samples if is_date_string(v)) >= majority:
        return Tag.DATE
    if sum(1 for v in samples if is_serial_date(v)) >= majority:
        return Tag.DATE

    amounts = [parse_amount(v) for v in samples]
    if all(a is not None for a in amounts):
        if all(a >= 0 for a in amounts):
            return Tag.INCOME
        decimal = any(has_decimal_point(v) for v in samples)
        if all(a < 0 or (decimal and a == 0) for a in amounts):
            return Tag.EXPENSES
        return _signed_majority(amounts)

    if any(_LETTERS_RE.search(str(v)) for v in samples):
        return Tag.DESCRIPTION
    return None


def _resolve_claimed(tag: Tag, claimed: set[Tag]) -> Tag:
    if tag not in claimed:
        return tag
    other = _COMPLEMENT.get(tag)
    if other is not None and other not in claimed:
        return other
    return Tag.IGNORE


def suggest(table: RawTable, *, header_index: int = 0) -> HeaderMapping:
    """Propose one tag per column of ``table``; never repeats an exclusive tag."""

    header = table.rows[header_index] if len(table) > header_index else ()
    width = table.column_count
    claimed: set[Tag] = set()
    tags: list[Tag] = []

    for col in range(width):
        label = header[col] if col < len(header) else ""
        tag = header_tag(label)
        source = "header"
        if tag is not None and tag in EXCLUSIVE_TAGS and tag in claimed:
            tag = None
        if tag is None:
            source = "sample"
            sampled = sample_tag(table.column_values(col, start=header_index + 1))
            tag = _resolve_claimed(sampled, claimed) if sampled else Tag.DESCRIPTION
        if tag in EXCLUSIVE_TAGS:
            claimed.add(tag)
        tags.append(tag)
        _logger.debug("inference:column index=%d label=%r tag=%s via=%s", col, label, tag, source)

    return HeaderMapping(tags=tuple(tags))


def validate_mapping(mapping: HeaderMapping, column_count: int | None = None) -> HeaderMapping:
    """Reject mappings that repeat an exclusive tag or do not fit the table.

    Raises :class:`AmbiguousMappingError` on exclusivity conflicts and
    :class:`ValidationError` when ``column_count`` is given and differs.
    """

    if column_count is not None and len(mapping) != column_count:
        raise ValidationError(
            f"mapping has {len(mapping)} column(s) but the table has {column_count}"
        )
    conflicts = mapping.conflicts()
    if conflicts:
        raise AmbiguousMappingError(conflicts)
    return mapping


__all__ = [
    "HEADER_KEYWORDS",
    "MAX_SAMPLES",
    "header_tag",
    "sample_tag",
    "suggest",
    "validate_mapping",
]
