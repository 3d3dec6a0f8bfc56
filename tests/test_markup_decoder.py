from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from statement_ingest.errors import ParseError
from statement_ingest.ingest import decode, decode_markup
from statement_ingest.ingest.markup import extract_leaf_pairs, regex_leaf_pairs


def test_flat_document_decodes_to_tag_text_pairs():
    table = decode("<root><a>1</a><b>2</b></root>", "tiny.xml")
    assert ("a", "1") in table.rows
    assert ("b", "2") in table.rows


def test_conventional_row_tag_uses_children_as_columns():
    doc = """
    <statement>
      <transaction><date>2024-01-05</date><amount>-4.50</amount><memo>Coffee</memo></transaction>
      <transaction><date>2024-01-06</date><amount>1200.00</amount><memo>Salary</memo></transaction>
    </statement>
    """
    table = decode(doc, "bank.xml")
    assert table.rows == (
        ("date", "amount", "memo"),
        ("2024-01-05", "-4.50", "Coffee"),
        ("2024-01-06", "1200.00", "Salary"),
    )


def test_row_tag_match_is_case_insensitive():
    doc = "<Export><Row><Dt>2024-01-01</Dt></Row><Row><Dt>2024-01-02</Dt></Row></Export>"
    assert decode_markup(doc).rows == (("Dt",), ("2024-01-01",), ("2024-01-02",))


def test_row_unit_inferred_from_tag_frequency():
    doc = (
        "<Stmt><Acct>42</Acct>"
        "<Txn><Dt>2024-01-01</Dt><Amt>5.00</Amt></Txn>"
        "<Txn><Dt>2024-01-02</Dt><Amt>7.00</Amt></Txn>"
        "</Stmt>"
    )
    table = decode_markup(doc)
    assert table.rows[0] == ("Dt", "Amt")
    assert len(table) == 3


def test_attribute_only_rows_use_attribute_names():
    doc = (
        '<rows><row date="2024-01-01" amount="5"/>'
        '<row date="2024-01-02" amount="7"/></rows>'
    )
    assert decode_markup(doc).rows == (
        ("date", "amount"),
        ("2024-01-01", "5"),
        ("2024-01-02", "7"),
    )


def test_sparse_rows_align_on_union_of_child_names():
    doc = "<data><record><a>1</a></record><record><a>2</a><b>x</b></record></data>"
    assert decode_markup(doc).rows == (("a", "b"), ("1", ""), ("2", "x"))


def test_namespaces_are_dropped():
    doc = (
        '<x:root xmlns:x="urn:bank"><x:row><x:d>1</x:d></x:row>'
        "<x:row><x:d>2</x:d></x:row></x:root>"
    )
    assert decode_markup(doc).rows == (("d",), ("1",), ("2",))


def test_malformed_document_falls_back_to_regex_pairs():
    table = decode_markup("<root><a>1</a><b>2</b>")
    assert table.rows == (("a", "1"), ("b", "2"))


def test_unrecoverable_markup_raises_parse_error_with_cause():
    with pytest.raises(ParseError) as excinfo:
        decode_markup("<<< not markup")
    assert isinstance(excinfo.value.__cause__, ET.ParseError)


def test_leaf_extractors_agree_on_well_formed_input():
    doc = (
        '<statement xmlns:ns="urn:x"><acct>123</acct>'
        '<owner name="x">Ann &amp; Bob</owner>'
        "<meta><ts>2024-01-01</ts><ns:tag>v</ns:tag></meta></statement>"
    )
    structural = extract_leaf_pairs(ET.fromstring(doc))
    assert structural == regex_leaf_pairs(doc)
    assert structural == [
        ["acct", "123"],
        ["owner", "Ann & Bob"],
        ["ts", "2024-01-01"],
        ["tag", "v"],
    ]
