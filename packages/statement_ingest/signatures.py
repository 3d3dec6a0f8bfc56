"""Structure and mapping fingerprints.

Tokens come from a 32-bit ``h = h * 31 + ord(c)`` rolling hash rendered in
base 36. It is deterministic and cheap, and not collision resistant: a
collision can only make a file reuse another file's remembered mapping, which
the user sees and can correct in preview.

Nothing here raises. Internal failures are logged and produce
:data:`SIGNATURE_ERROR` so preview can continue.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .amounts import parse_amount
from .dates import is_date_string
from .logging_setup import get_logger
from .models import Cell, FileKind, FileSignature, HeaderMapping, RawTable, Tag

_logger = get_logger("statement_ingest.signatures")

SIGNATURE_ERROR = "sig_error"
STRUCTURE_PREFIX = "st_"
MAPPING_PREFIX = "mp_"

TOKEN_WIDTH = 7
TYPE_SAMPLE_ROWS = 5

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_ALPHABET[r])
    return "".join(reversed(digits))


def rolling_hash(text: str) -> str:
    """Fixed-width token for ``text`` (absolute value of the signed 32-bit hash)."""

    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return _base36(abs(h)).rjust(TOKEN_WIDTH, "0")


def normalize_header_cell(cell: Cell) -> str:
    return "".join(ch for ch in str(cell).casefold() if ch.isalnum())


def column_type(values: Iterable[Cell]) -> str:
    """Classify sampled cells as ``date``, ``number``, ``text`` or ``unknown`` (no samples)."""

    kinds = []
    for v in values:
        if v == "" or v is None:
            continue
        if is_date_string(v):
            kinds.append("date")
        elif parse_amount(v) is not None:
            kinds.append("number")
        else:
            kinds.append("text")
    if not kinds:
        return "unknown"
    first = kinds[0]
    return first if all(k == first for k in kinds) else "text"


def structure_signature(
    kind: FileKind | str,
    header_row: Sequence[Cell],
    data_rows: Sequence[Sequence[Cell]] = (),
) -> str:
    """Fingerprint the shape of a table.

    Markup headers are element names chosen by each exporter, so for markup the
    per-column value types of the first few data rows replace the header text.
    """

    try:
        k = FileKind(kind)
        width = len(header_row)
        if k is FileKind.MARKUP:
            sample = data_rows[:TYPE_SAMPLE_ROWS]
            parts = [column_type(row[i] for row in sample if i < len(row)) for i in range(width)]
        else:
            parts = [normalize_header_cell(c) for c in header_row]
        return STRUCTURE_PREFIX + rolling_hash(f"{k.value}|{width}|{'|'.join(parts)}")
    except Exception:  # noqa: BLE001
        _logger.warning("signature:structure_failed kind=%r", kind, exc_info=True)
        return SIGNATURE_ERROR


def table_structure_signature(kind: FileKind | str, table: RawTable, header_index: int = 0) -> str:
    try:
        header = table.rows[header_index]
    except (IndexError, TypeError):
        _logger.warning("signature:no_header kind=%r index=%r", kind, header_index)
        return SIGNATURE_ERROR
    return structure_signature(kind, header, table.rows[header_index + 1 :])


def mapping_signature(kind: FileKind | str, mapping: HeaderMapping | Iterable[Tag | str]) -> str:
    """Fingerprint a confirmed mapping; Ignore columns do not count."""

    try:
        k = FileKind(kind)
        m = mapping if isinstance(mapping, HeaderMapping) else HeaderMapping.of(mapping)
        kept = [t.value for t in m if t is not Tag.IGNORE]
        return MAPPING_PREFIX + rolling_hash(f"{k.value}|{'|'.join(kept)}")
    except Exception:  # noqa: BLE001
        _logger.warning("signature:mapping_failed kind=%r", kind, exc_info=True)
        return SIGNATURE_ERROR


def file_signature(
    kind: FileKind | str,
    table: RawTable,
    mapping: HeaderMapping | None = None,
    *,
    header_index: int = 0,
) -> FileSignature:
    structure = table_structure_signature(kind, table, header_index)
    return FileSignature(structure, mapping_signature(kind, mapping) if mapping is not None else "")


__all__ = [
    "MAPPING_PREFIX",
    "SIGNATURE_ERROR",
    "STRUCTURE_PREFIX",
    "column_type",
    "file_signature",
    "mapping_signature",
    "normalize_header_cell",
    "rolling_hash",
    "structure_signature",
    "table_structure_signature",
]
