"""Delimited-text strategy (CSV, TSV, semicolon or pipe separated).

Quoting rules, applied per line:

- a bare ``"`` toggles quoting and is not kept;
- ``\\"`` is a literal quote anywhere, ``""`` is one inside quotes;
- fields are trimmed and trailing empty fields are dropped.

Empty lines produce no row. Fields are never split across lines.
"""

from __future__ import annotations

import re

from ..models import RawTable

DELIMITER_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","

_LINE_SPLIT_RE = re.compile(r"\r\n|\n|\r")
_QUOTE = '"'


def parse_row(line: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """Split one line into trimmed fields."""

    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    i, n = 0, len(line)
    while i < n:
        ch = line[i]
        nxt = line[i + 1] if i + 1 < n else ""
        if nxt == _QUOTE and (ch == "\\" or (ch == _QUOTE and in_quotes)):
            buf.append(_QUOTE)
            i += 2
            continue
        if ch == _QUOTE:
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf).strip())

    while fields and not fields[-1]:
        fields.pop()
    return fields


def _count_outside_quotes(line: str, ch: str) -> int:
    count = 0
    in_quotes = False
    for c in line:
        if c == _QUOTE:
            in_quotes = not in_quotes
        elif c == ch and not in_quotes:
            count += 1
    return count


def detect_delimiter(text: str) -> str:
    """Pick the most frequent candidate on the first non-empty line (comma wins ties)."""

    first = next((ln for ln in _LINE_SPLIT_RE.split(text) if ln.strip()), "")
    best, best_count = DEFAULT_DELIMITER, 0
    for cand in DELIMITER_CANDIDATES:
        c = _count_outside_quotes(first, cand)
        if c > best_count:
            best, best_count = cand, c
    return best


def decode_delimited(text: str, *, delimiter: str | None = None) -> RawTable:
    text = text.lstrip("\ufeff")
    sep = delimiter or detect_delimiter(text)
    rows = []
    for line in _LINE_SPLIT_RE.split(text):
        row = parse_row(line, sep)
        if row:
            rows.append(row)
    return RawTable.from_rows(rows)


__all__ = ["DELIMITER_CANDIDATES", "decode_delimited", "detect_delimiter", "parse_row"]
