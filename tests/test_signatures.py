from __future__ import annotations

import re

import pytest

from statement_ingest.models import FileKind, HeaderMapping, RawTable, Tag
from statement_ingest.signatures import (
    MAPPING_PREFIX,
    SIGNATURE_ERROR,
    STRUCTURE_PREFIX,
    column_type,
    file_signature,
    mapping_signature,
    rolling_hash,
    structure_signature,
)

D, I, E, S, X = Tag.DATE, Tag.INCOME, Tag.EXPENSES, Tag.DESCRIPTION, Tag.IGNORE


def test_rolling_hash_is_fixed_width_base36():
    assert rolling_hash("") == "0000000"
    assert rolling_hash("a") == "000002p"
    token = rolling_hash("delimited|3|date|description|amount" * 20)
    assert re.fullmatch(r"[0-9a-z]{7}", token)


def test_structure_signature_is_deterministic():
    header = ["Date", "Description", "Amount"]
    first = structure_signature(FileKind.DELIMITED, header)
    assert first == structure_signature(FileKind.DELIMITED, list(header))
    assert first.startswith(STRUCTURE_PREFIX)


def test_structure_signature_normalizes_header_text():
    a = structure_signature("delimited", ["Date", " AMOUNT ($) "])
    b = structure_signature("delimited", ["date", "amount"])
    assert a == b


def test_structure_signature_depends_on_kind_and_width():
    header = ["Date", "Amount"]
    assert structure_signature(FileKind.DELIMITED, header) != structure_signature(
        FileKind.SPREADSHEET, header
    )
    assert structure_signature(FileKind.DELIMITED, header) != structure_signature(
        FileKind.DELIMITED, [*header, ""]
    )


def test_markup_structure_uses_value_types_not_tag_names():
    a = structure_signature(FileKind.MARKUP, ["Dt", "Amt"], [["2024-01-01", "5.00"]])
    b = structure_signature(FileKind.MARKUP, ["Date", "Value"], [["2024-02-01", "-7.25"]])
    c = structure_signature(FileKind.MARKUP, ["Date", "Value"], [["Coffee", "-7.25"]])
    assert a == b
    assert a != c


def test_mapping_signature_groups_files_with_different_headers():
    mapping = HeaderMapping.of([D, S, E])
    table_a = RawTable.from_rows([["X", "Y", "Z"], ["2024-01-01", "Coffee", "4.50"]])
    table_b = RawTable.from_rows([["P", "Q", "R"], ["2024-01-02", "Tea", "3.00"]])
    sig_a = file_signature(FileKind.DELIMITED, table_a, mapping)
    sig_b = file_signature(FileKind.DELIMITED, table_b, mapping)
    assert sig_a.structure_sig != sig_b.structure_sig
    assert sig_a.mapping_sig == sig_b.mapping_sig
    assert sig_a.mapping_sig.startswith(MAPPING_PREFIX)


def test_mapping_signature_ignores_ignore_columns():
    assert mapping_signature(FileKind.DELIMITED, [D, X, E]) == mapping_signature(
        FileKind.DELIMITED, [D, E]
    )
    assert mapping_signature(FileKind.DELIMITED, [D, E]) != mapping_signature(
        FileKind.DELIMITED, [E, D]
    )


def test_file_signature_without_mapping_has_empty_mapping_part():
    table = RawTable.from_rows([["a", "b"], ["1", "2"]])
    assert file_signature(FileKind.DELIMITED, table).mapping_sig == ""


@pytest.mark.parametrize(
    "call",
    [
        lambda: structure_signature("no-such-kind", ["a"]),
        lambda: structure_signature(FileKind.DELIMITED, None),
        lambda: mapping_signature(FileKind.DELIMITED, ["Date", "Nonsense"]),
        lambda: file_signature(FileKind.DELIMITED, RawTable.from_rows([])).structure_sig,
    ],
)
def test_signature_failures_return_sentinel(call):
    assert call() == SIGNATURE_ERROR


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        (["2024-01-01", "01/02/2024"], "date"),
        (["1.50", "-2", "$3"], "number"),
        (["Coffee", "Tea"], "text"),
        (["2024-01-01", "Coffee"], "text"),
        (["", ""], "unknown"),
    ],
)
def test_column_type(values, expected):
    assert column_type(values) == expected
