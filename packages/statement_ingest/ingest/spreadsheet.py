"""Spreadsheet strategy: first worksheet of an ``.xlsx``/``.xlsm`` (openpyxl) or ``.xls`` (xlrd).

Cell normalization:

- date-formatted cells become ``YYYY-MM-DD`` strings;
- integral floats become ``int``;
- text has its whitespace collapsed;
- blanks become ``""``; trailing blanks and blank rows are dropped.
"""

from __future__ import annotations

import io
from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Any

import openpyxl
import xlrd

from ..dates import serial_to_canonical
from ..errors import ParseError
from ..logging_setup import get_logger
from ..models import Cell, RawTable

_logger = get_logger("statement_ingest.ingest.spreadsheet")

XLSX_EXTENSIONS = frozenset({"xlsx", "xlsm"})
XLS_EXTENSIONS = frozenset({"xls"})

# Days between the 1900 and 1904 date systems.
_DATEMODE_1904_OFFSET = 1462


def normalize_cell(value: Any) -> Cell:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, int):
        return value
    return " ".join(str(value).split())


def _clean_rows(rows: Iterable[Iterable[Cell]]) -> list[list[Cell]]:
    out: list[list[Cell]] = []
    for row in rows:
        cells = list(row)
        while cells and cells[-1] == "":
            cells.pop()
        if cells:
            out.append(cells)
    return out


def _read_xlsx(content: bytes) -> list[list[Cell]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:  # noqa: BLE001
        raise ParseError(f"unreadable workbook: {exc}") from exc
    try:
        ws = wb.worksheets[0]
        return _clean_rows(
            (normalize_cell(v) for v in row) for row in ws.iter_rows(values_only=True)
        )
    except Exception as exc:  # noqa: BLE001
        raise ParseError(f"unreadable worksheet: {exc}") from exc
    finally:
        wb.close()


def _rows_from_xls_sheet(sheet: Any, datemode: int) -> list[list[Cell]]:
    """Normalize an xlrd sheet; date cells go through :func:`serial_to_canonical`."""

    offset = _DATEMODE_1904_OFFSET if datemode == 1 else 0
    rows: list[list[Cell]] = []
    for r in range(sheet.nrows):
        cells: list[Cell] = []
        for cell in sheet.row(r):
            if cell.ctype == xlrd.XL_CELL_DATE:
                cells.append(serial_to_canonical(cell.value + offset))
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                cells.append(normalize_cell(bool(cell.value)))
            elif cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
                cells.append("")
            else:
                cells.append(normalize_cell(cell.value))
        rows.append(cells)
    return _clean_rows(rows)


def _read_xls(content: bytes) -> list[list[Cell]]:
    try:
        book = xlrd.open_workbook(file_contents=content)
        sheet = book.sheet_by_index(0)
        return _rows_from_xls_sheet(sheet, book.datemode)
    except Exception as exc:  # noqa: BLE001
        raise ParseError(f"unreadable workbook: {exc}") from exc


def decode_spreadsheet(content: bytes | str, *, extension: str = "xlsx") -> RawTable:
    if isinstance(content, str):
        raise ParseError("spreadsheet content must be bytes, got text")
    ext = extension.lower().lstrip(".")
    rows = _read_xls(content) if ext in XLS_EXTENSIONS else _read_xlsx(content)
    _logger.debug("spreadsheet:read ext=%s rows=%d", ext, len(rows))
    return RawTable.from_rows(rows)


__all__ = ["XLSX_EXTENSIONS", "XLS_EXTENSIONS", "decode_spreadsheet", "normalize_cell"]
