"""Turn a decoded table plus its confirmed mapping into canonical transactions."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from .amounts import parse_amount
from .config import DEFAULT_CURRENCY, normalize_currency
from .dates import normalize_date
from .errors import ValidationError
from .logging_setup import get_logger
from .models import Cell, HeaderMapping, RawTable, Tag, Transaction
from .signatures import rolling_hash

_logger = get_logger("statement_ingest.materialize")

ID_PREFIX = "tx_"
_ID_FIELD_SEP = "\x1f"


def _blank(cell: Cell) -> bool:
    return str(cell).strip() == ""


def _cell(row: Sequence[Cell], col: int) -> Cell:
    return row[col] if col < len(row) else ""


def row_id_candidate(file_name: str, row: Sequence[Cell]) -> str:
    """Deterministic id for a row: same file name and cells give the same id."""

    payload = _ID_FIELD_SEP.join([file_name, *(str(c) for c in row)])
    return ID_PREFIX + rolling_hash(payload)


def ensure_unique_ids(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Suffix repeated ids with ``_<n>`` (smallest free ``n``), keeping order."""

    seen: set[str] = set()
    out: list[Transaction] = []
    for tx in transactions:
        tx_id = tx.id
        if not tx_id or tx_id in seen:
            base = tx_id or row_id_candidate(tx.file_name, [tx.source_row])
            n = 1
            while f"{base}_{n}" in seen:
                n += 1
            tx_id = f"{base}_{n}"
            tx = dataclasses.replace(tx, id=tx_id)
        seen.add(tx_id)
        out.append(tx)
    return out


def _amount(row: Sequence[Cell], cols: tuple[int, ...], *, source_row: int, tag: Tag):
    for col in cols:
        value = _cell(row, col)
        if _blank(value):
            continue
        amount = parse_amount(value)
        if amount is None:
            _logger.debug(
                "materialize:bad_amount row=%d col=%d tag=%s value=%r", source_row, col, tag, value
            )
        return amount
    return None


def materialize(
    table: RawTable,
    mapping: HeaderMapping,
    data_row_index: int = 1,
    *,
    file_name: str = "",
    currency: str = DEFAULT_CURRENCY,
) -> list[Transaction]:
    """Build one :class:`Transaction` per non-empty row from ``data_row_index`` on.

    Ignore columns are dropped; the Date column goes through
    :func:`~statement_ingest.dates.normalize_date` (unreadable dates keep the
    source text); several Description columns are joined with a space.
    ``source_row`` is the 1-based row index in ``table``.
    """

    if not 0 <= data_row_index <= len(table):
        raise ValidationError(
            f"data row index {data_row_index} is outside the table (0..{len(table)})"
        )
    code = normalize_currency(currency)
    date_cols = mapping.columns_for(Tag.DATE)
    desc_cols = mapping.columns_for(Tag.DESCRIPTION)
    income_cols = mapping.columns_for(Tag.INCOME)
    expense_cols = mapping.columns_for(Tag.EXPENSES)

    out: list[Transaction] = []
    for r in range(data_row_index, len(table)):
        row = table.rows[r]
        if all(_blank(c) for c in row):
            continue
        source_row = r + 1

        date_value: str | None = None
        if date_cols:
            raw = _cell(row, date_cols[0])
            date_value = normalize_date(raw) or (str(raw).strip() or None)

        parts = [str(_cell(row, c)).strip() for c in desc_cols]
        description = " ".join(p for p in parts if p) or None

        out.append(
            Transaction(
                id=row_id_candidate(file_name, row),
                date=date_value,
                description=description,
                category=None,
                income=_amount(row, income_cols, source_row=source_row, tag=Tag.INCOME),
                expenses=_amount(row, expense_cols, source_row=source_row, tag=Tag.EXPENSES),
                currency=code,
                file_name=file_name,
                source_row=source_row,
            )
        )

    _logger.debug("materialize:done file=%s rows=%d", file_name, len(out))
    return ensure_unique_ids(out)


__all__ = ["ID_PREFIX", "ensure_unique_ids", "materialize", "row_id_candidate"]
