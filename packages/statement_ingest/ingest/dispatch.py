"""Extension-based dispatch to the format strategies.

``decode(content, format_hint)`` is the single entry point every caller uses;
the kind is resolved once here and never re-inspected downstream.
"""

from __future__ import annotations

from pathlib import PurePath

from ..errors import UnsupportedFormatError, ValidationError
from ..logging_setup import get_logger
from ..models import FileKind, RawTable, SourceFile
from .delimited import decode_delimited
from .markup import decode_markup
from .spreadsheet import XLS_EXTENSIONS, XLSX_EXTENSIONS, decode_spreadsheet

_logger = get_logger("statement_ingest.ingest.dispatch")

EXTENSION_KINDS: dict[str, FileKind] = {
    "csv": FileKind.DELIMITED,
    "tsv": FileKind.DELIMITED,
    "txt": FileKind.DELIMITED,
    "xml": FileKind.MARKUP,
    **{ext: FileKind.SPREADSHEET for ext in XLSX_EXTENSIONS | XLS_EXTENSIONS},
}

# Minimum rows for a usable table: one header plus one data row.
MIN_ROWS = 2

_TEXT_ENCODINGS = ("utf-8-sig", "cp1252")


def _split_hint(hint: str | FileKind) -> tuple[str | None, FileKind | None]:
    if isinstance(hint, FileKind):
        return None, hint
    text = (hint or "").strip()
    if text.lower() in {k.value for k in FileKind}:
        return None, FileKind(text.lower())
    ext = PurePath(text).suffix.lstrip(".") if "." in text else text
    ext = ext.lower()
    return ext, EXTENSION_KINDS.get(ext)


def resolve_kind(hint: str | FileKind) -> FileKind:
    """Map a file name, bare extension or ``FileKind`` to a ``FileKind``."""

    ext, kind = _split_hint(hint)
    if kind is None:
        raise UnsupportedFormatError(ext or str(hint))
    return kind


def to_text(content: str | bytes) -> str:
    """Decode bytes as UTF-8 (BOM stripped), then Windows-1252, then Latin-1."""

    if isinstance(content, str):
        return content
    for encoding in _TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def decode(content: str | bytes, format_hint: str | FileKind) -> RawTable:
    """Decode ``content`` into a :class:`RawTable`.

    Raises ``UnsupportedFormatError`` for unknown kinds, ``ParseError`` when
    the format library rejects the content and ``ValidationError`` when fewer
    than a header row and one data row come out.
    """

    ext, kind = _split_hint(format_hint)
    if kind is None:
        raise UnsupportedFormatError(ext or str(format_hint))

    if kind is FileKind.DELIMITED:
        table = decode_delimited(to_text(content), delimiter="\t" if ext == "tsv" else None)
    elif kind is FileKind.MARKUP:
        table = decode_markup(to_text(content))
    else:
        table = decode_spreadsheet(content, extension=ext or "xlsx")

    if len(table) < MIN_ROWS:
        raise ValidationError(
            f"expected a header row and at least one data row, got {len(table)} row(s)"
        )
    _logger.debug(
        "decode:done kind=%s rows=%d cols=%d", kind.value, len(table), table.column_count
    )
    return table


def decode_source(source: SourceFile) -> RawTable:
    return decode(source.content, source.name)


__all__ = ["EXTENSION_KINDS", "MIN_ROWS", "decode", "decode_source", "resolve_kind", "to_text"]
