"""Markup (XML) strategy.

Row selection on a well-formed document:

1. the first conventional row tag present (``row``, ``entry``,
   ``transaction``, ``record``, ``item``; case-insensitive);
2. otherwise the most frequent element name occurring more than once and fewer
   than :data:`MARKUP_ROW_TAG_CEILING` times (elements with children first);
3. otherwise every leaf element becomes a ``[tag, text]`` row.

Row elements contribute their children as columns (union of child names in
first-appearance order) or, when childless, their attributes. Namespaces are
dropped from all names.

Malformed documents fall back to a regex extractor that yields the same
``[tag, text]`` rows as step 3.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections import Counter
from xml.sax.saxutils import unescape

from ..errors import ParseError
from ..logging_setup import get_logger
from ..models import RawTable

_logger = get_logger("statement_ingest.ingest.markup")

ROW_TAG_CANDIDATES: tuple[str, ...] = ("row", "entry", "transaction", "record", "item")
MARKUP_ROW_TAG_CEILING = 100_000

_LEAF_RE = re.compile(r"<([A-Za-z_][A-Za-z0-9_\-:.]*)[^>]*>([^<]+)</\1>")


def _local(tag: str) -> str:
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    return tag.rsplit(":", 1)[-1]


def _text(value: str | None) -> str:
    return " ".join((value or "").split())


def extract_leaf_pairs(root: ET.Element) -> list[list[str]]:
    """``[tag, text]`` for every childless element with non-blank text, in document order."""

    out: list[list[str]] = []
    for el in root.iter():
        if not isinstance(el.tag, str) or len(el):
            continue
        text = _text(el.text)
        if text:
            out.append([_local(el.tag), text])
    return out


def regex_leaf_pairs(text: str) -> list[list[str]]:
    out: list[list[str]] = []
    for m in _LEAF_RE.finditer(text):
        value = _text(unescape(m.group(2)))
        if value:
            out.append([_local(m.group(1)), value])
    return out


def _find_row_units(root: ET.Element) -> list[ET.Element]:
    elements = [el for el in root.iter() if el is not root and isinstance(el.tag, str)]
    by_name: dict[str, list[ET.Element]] = {}
    for el in elements:
        by_name.setdefault(_local(el.tag).lower(), []).append(el)

    for cand in ROW_TAG_CANDIDATES:
        if cand in by_name:
            return by_name[cand]

    counts = Counter(_local(el.tag).lower() for el in elements)
    order = {name: i for i, name in enumerate(counts)}
    eligible = [n for n, c in counts.items() if 1 < c < MARKUP_ROW_TAG_CEILING]
    if not eligible:
        return []

    def rank(name: str) -> tuple[bool, int, int]:
        has_children = any(len(el) for el in by_name[name])
        return (has_children, counts[name], -order[name])

    best = max(eligible, key=rank)
    _logger.debug("markup:row_tag inferred=%s count=%d", best, counts[best])
    return by_name[best]


def _rows_from_units(units: list[ET.Element]) -> list[list[str]]:
    columns: dict[str, None] = {}
    records: list[dict[str, str]] = []
    use_children = any(len(u) for u in units)
    use_attrs = not use_children and any(u.attrib for u in units)

    for unit in units:
        record: dict[str, str] = {}
        if use_children:
            for child in unit:
                if not isinstance(child.tag, str):
                    continue
                name = _local(child.tag)
                columns.setdefault(name, None)
                record.setdefault(name, _text("".join(child.itertext())))
        elif use_attrs:
            for key, value in unit.attrib.items():
                name = _local(key)
                columns.setdefault(name, None)
                record[name] = _text(value)
        else:
            name = _local(unit.tag)
            columns.setdefault(name, None)
            record[name] = _text(unit.text)
        records.append(record)

    header = list(columns)
    return [header, *([r.get(c, "") for c in header] for r in records)]


def decode_markup(text: str) -> RawTable:
    try:
        root = ET.fromstring(text.lstrip("\ufeff"))
    except ET.ParseError as exc:
        pairs = regex_leaf_pairs(text)
        if not pairs:
            raise ParseError(f"malformed markup: {exc}") from exc
        _logger.info("markup:regex_fallback reason=%s pairs=%d", exc, len(pairs))
        return RawTable.from_rows(pairs)

    units = _find_row_units(root)
    if units:
        return RawTable.from_rows(_rows_from_units(units))
    return RawTable.from_rows(extract_leaf_pairs(root))


__all__ = [
    "MARKUP_ROW_TAG_CEILING",
    "ROW_TAG_CANDIDATES",
    "decode_markup",
    "extract_leaf_pairs",
    "regex_leaf_pairs",
]
