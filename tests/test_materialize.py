from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.errors import ValidationError
from statement_ingest.materialize import (
    ID_PREFIX,
    ensure_unique_ids,
    materialize,
    row_id_candidate,
)
from statement_ingest.models import HeaderMapping, RawTable, Tag, Transaction

D, I, E, S, X = Tag.DATE, Tag.INCOME, Tag.EXPENSES, Tag.DESCRIPTION, Tag.IGNORE


@pytest.fixture()
def table() -> RawTable:
    return RawTable.from_rows(
        [
            ["Date", "Description", "Memo", "Amount", "Balance"],
            ["2024-01-15", "Coffee", "Cafe", "4.50", "100"],
            ["", "", "", "", ""],
            ["45000", "Rent", "", "(1,200.00)", "90"],
            ["garbage", "Bad", "", "abc", "80"],
        ]
    )


def test_materialize_builds_canonical_rows(table):
    txs = materialize(
        table, HeaderMapping.of([D, S, S, E, X]), 1, file_name="bank.csv", currency="eur"
    )

    assert [t.source_row for t in txs] == [2, 4, 5]
    first, second, third = txs
    assert first.date == "2024-01-15"
    assert first.description == "Coffee Cafe"
    assert first.expenses == Decimal("4.50")
    assert first.income is None
    assert first.category is None
    assert first.currency == "EUR"
    assert first.file_name == "bank.csv"

    assert second.date == "2023-03-15"
    assert second.description == "Rent"
    assert second.expenses == Decimal("-1200.00")

    # Unreadable values keep the source date text and drop the amount.
    assert third.date == "garbage"
    assert third.expenses is None


def test_materialize_ids_are_prefixed_unique_and_stable(table):
    mapping = HeaderMapping.of([D, S, S, E, X])
    a = materialize(table, mapping, file_name="bank.csv")
    b = materialize(table, mapping, file_name="bank.csv")
    ids = [t.id for t in a]
    assert all(i.startswith(ID_PREFIX) for i in ids)
    assert len(set(ids)) == len(ids)
    assert ids == [t.id for t in b]
    assert ids != [t.id for t in materialize(table, mapping, file_name="other.csv")]


def test_identical_rows_get_suffixed_ids():
    table = RawTable.from_rows([["Date", "Amount"], ["2024-01-01", "5"], ["2024-01-01", "5"]])
    txs = materialize(table, HeaderMapping.of([D, I]), file_name="f.csv")
    base = row_id_candidate("f.csv", ("2024-01-01", "5"))
    assert [t.id for t in txs] == [base, f"{base}_1"]


def test_data_row_index_bounds(table):
    mapping = HeaderMapping.of([D, S, S, E, X])
    assert materialize(table, mapping, len(table)) == []
    assert len(materialize(table, mapping, 0)) == 4
    with pytest.raises(ValidationError):
        materialize(table, mapping, len(table) + 1)
    with pytest.raises(ValidationError):
        materialize(table, mapping, -1)


def test_unsupported_currency_is_rejected(table):
    with pytest.raises(ValidationError):
        materialize(table, HeaderMapping.of([D, S, S, E, X]), currency="XYZ")


def test_to_record_shape(table):
    (tx, *_) = materialize(table, HeaderMapping.of([D, S, S, E, X]), file_name="bank.csv")
    assert tx.to_record() == {
        "id": tx.id,
        "date": "2024-01-15",
        "description": "Coffee Cafe",
        "category": None,
        "income": None,
        "expenses": "4.50",
        "currency": "USD",
        "fileName": "bank.csv",
        "sourceRow": 2,
    }


def _tx(tx_id: str, row: int) -> Transaction:
    return Transaction(
        id=tx_id,
        date=None,
        description=None,
        category=None,
        income=None,
        expenses=None,
        currency="USD",
        file_name="f.csv",
        source_row=row,
    )


def test_ensure_unique_ids_uses_smallest_free_suffix():
    out = ensure_unique_ids([_tx("a", 1), _tx("a_1", 2), _tx("a", 3), _tx("a", 4)])
    assert [t.id for t in out] == ["a", "a_1", "a_2", "a_3"]
    assert [t.source_row for t in out] == [1, 2, 3, 4]
