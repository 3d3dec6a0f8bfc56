from __future__ import annotations

import pytest

from statement_ingest.errors import AmbiguousMappingError, ValidationError
from statement_ingest.inference import header_tag, sample_tag, suggest, validate_mapping
from statement_ingest.models import HeaderMapping, RawTable, Tag

D, I, E, S, X = Tag.DATE, Tag.INCOME, Tag.EXPENSES, Tag.DESCRIPTION, Tag.IGNORE


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Transaction Date", D),
        ("תאריך", D),
        ("Debit", E),
        ("Withdrawal Amount", E),
        ("Credit", I),
        ("Amount In", I),
        ("Description", S),
        ("Payee", S),
        ("Maintenance", None),
        ("Balance", None),
        ("", None),
    ],
)
def test_header_tag(text, expected):
    assert header_tag(text) == expected


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        (["2024-01-01", "2024-01-02", ""], D),
        ([45000, 45001], D),
        (["-4.50", "-3.00", "2.00"], E),
        (["4.50", "-3.00", "2.00"], I),
        (["10", "20"], I),
        (["-10", "-20"], E),
        (["0.00", "-1.00"], E),
        (["0", "-1"], I),
        (["Coffee", "Tea"], S),
        (["#", "@@"], None),
        (["", "  "], None),
    ],
)
def test_sample_tag(values, expected):
    assert sample_tag(values) == expected


def test_suggest_uses_headers_then_samples():
    table = RawTable.from_rows(
        [
            ["Date", "Description", "Amount"],
            ["2024-01-01", "Coffee", "-4.50"],
            ["2024-01-02", "Bread", "-2.00"],
            ["2024-01-03", "Salary", "1000.00"],
        ]
    )
    assert suggest(table).tags == (D, S, E)


def test_suggest_never_repeats_an_exclusive_tag():
    table = RawTable.from_rows(
        [
            ["Date", "Posted Date", "Debit", "Credit"],
            ["2024-01-01", "2024-01-02", "5.00", ""],
            ["2024-01-03", "2024-01-04", "", "7.00"],
        ]
    )
    mapping = suggest(table)
    assert mapping.tags == (D, X, E, I)
    assert mapping.conflicts() == {}


def test_suggest_gives_second_amount_column_the_other_amount_tag():
    table = RawTable.from_rows([["A", "B"], ["-1.00", "-2.00"], ["-3.00", "-4.00"]])
    assert suggest(table).tags == (E, I)


def test_suggest_defaults_to_description_without_evidence():
    table = RawTable.from_rows([["Foo", "Bar"], ["", ""], ["", ""]])
    assert suggest(table).tags == (S, S)


def test_suggest_covers_ragged_columns():
    table = RawTable.from_rows([["Date"], ["2024-01-01", "Coffee"]])
    assert suggest(table).tags == (D, S)


def test_validate_mapping_accepts_repeated_description():
    mapping = HeaderMapping.of([D, S, S, E])
    assert validate_mapping(mapping, 4) is mapping


def test_validate_mapping_reports_conflicting_columns():
    with pytest.raises(AmbiguousMappingError) as exc:
        validate_mapping(HeaderMapping.of([D, S, D, E, E]))
    assert exc.value.conflicts == {D: (0, 2), E: (3, 4)}
    assert "Date -> columns 0, 2" in str(exc.value)


def test_validate_mapping_checks_width():
    with pytest.raises(ValidationError):
        validate_mapping(HeaderMapping.of([D, S]), 3)
