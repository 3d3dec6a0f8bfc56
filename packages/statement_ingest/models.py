"""Data models for ``statement_ingest``.

The pipeline passes a handful of immutable values between stages:

- :class:`SourceFile`: the uploaded handle (name + raw text or bytes).
- :class:`RawTable`: the canonical grid produced by every decoder. Row 0 is a
  header by convention only; nothing here interprets it.
- :class:`HeaderMapping`: one :class:`Tag` per column.
- :class:`FileSignature`: the structure/mapping fingerprint pair.
- :class:`Transaction`: one canonical record materialized from a data row.
- :class:`MergedFileRecord`: a confirmed import, the unit of deduplication.

``MappingRecord`` is the pydantic model for values kept in the mapping store.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A decoded cell: text, or a number kept as the source library produced it.
type Cell = str | int | float


class FileKind(StrEnum):
    DELIMITED = "delimited"
    MARKUP = "markup"
    SPREADSHEET = "spreadsheet"


class Tag(StrEnum):
    """Semantic role of a column."""

    DATE = "Date"
    INCOME = "Income"
    EXPENSES = "Expenses"
    DESCRIPTION = "Description"
    IGNORE = "Ignore"


# At most one column per table may carry each of these.
EXCLUSIVE_TAGS: frozenset[Tag] = frozenset({Tag.DATE, Tag.INCOME, Tag.EXPENSES})

# Labels a human (or an older stored mapping) may use for "not mapped".
_IGNORE_LABELS = frozenset({"", "-", "\u2013", "\u2014", "ignore", "none", "skip"})


# ---------------------------------------------------------------------------
# Input handle and decoded table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceFile:
    """An uploaded file: its name (for dispatch) and raw content."""

    name: str
    content: str | bytes

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()

    @classmethod
    def from_path(cls, path: str | Path) -> SourceFile:
        p = Path(path)
        return cls(name=p.name, content=p.read_bytes())


def _is_rtl_text(value: str) -> bool:
    return any(unicodedata.bidirectional(ch) in ("R", "AL") for ch in value)


@dataclass(frozen=True, slots=True)
class RawTable:
    """Immutable two-dimensional grid of cells.

    ``rtl_cells`` lists ``(row, column)`` coordinates of text cells containing
    right-to-left script. The cell content itself is never altered.
    """

    rows: tuple[tuple[Cell, ...], ...]
    rtl_cells: frozenset[tuple[int, int]] = frozenset()

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[Cell]]) -> RawTable:
        frozen = tuple(tuple(r) for r in rows)
        rtl = frozenset(
            (r, c)
            for r, row in enumerate(frozen)
            for c, cell in enumerate(row)
            if isinstance(cell, str) and _is_rtl_text(cell)
        )
        return cls(rows=frozen, rtl_cells=rtl)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self.rows)

    @property
    def header(self) -> tuple[Cell, ...]:
        return self.rows[0] if self.rows else ()

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def data_rows(self, start: int = 1) -> tuple[tuple[Cell, ...], ...]:
        return self.rows[start:]

    def column_values(self, index: int, *, start: int = 1) -> list[Cell]:
        """Return the cells of column ``index`` from row ``start`` on (ragged rows skipped)."""

        return [row[index] for row in self.rows[start:] if index < len(row)]


# ---------------------------------------------------------------------------
# Mapping and signatures
# ---------------------------------------------------------------------------


def _coerce_tag(label: Tag | str | None) -> Tag:
    if isinstance(label, Tag):
        return label
    text = (label or "").strip()
    if text.lower() in _IGNORE_LABELS:
        return Tag.IGNORE
    for tag in Tag:
        if tag.value.lower() == text.lower():
            return tag
    raise ValueError(f"unknown column tag: {label!r}")


@dataclass(frozen=True, slots=True)
class HeaderMapping:
    """One tag per column.

    Construction does not enforce exclusivity: a human edit may produce a
    conflicting mapping, which :func:`statement_ingest.inference.validate_mapping`
    rejects before persistence.
    """

    tags: tuple[Tag, ...]

    @classmethod
    def of(cls, labels: Iterable[Tag | str | None]) -> HeaderMapping:
        return cls(tags=tuple(_coerce_tag(x) for x in labels))

    @classmethod
    def parse(cls, text: str) -> HeaderMapping:
        """Parse a comma-separated label list such as ``"Date,Description,-"``."""

        return cls.of(part for part in text.split(","))

    def __len__(self) -> int:
        return len(self.tags)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.tags)

    def __getitem__(self, index: int) -> Tag:
        return self.tags[index]

    def labels(self) -> list[str]:
        return [t.value for t in self.tags]

    def columns_for(self, tag: Tag) -> tuple[int, ...]:
        return tuple(i for i, t in enumerate(self.tags) if t is tag)

    def conflicts(self) -> dict[Tag, tuple[int, ...]]:
        """Exclusive tags claimed by more than one column, with their indices."""

        out: dict[Tag, tuple[int, ...]] = {}
        for tag in (Tag.DATE, Tag.INCOME, Tag.EXPENSES):
            cols = self.columns_for(tag)
            if len(cols) > 1:
                out[tag] = cols
        return out


class FileSignature(NamedTuple):
    """Opaque fingerprint pair; ``mapping_sig`` is empty until a mapping is confirmed."""

    structure_sig: str
    mapping_sig: str = ""


# ---------------------------------------------------------------------------
# Canonical output and import state
# ---------------------------------------------------------------------------


def _fmt_amount(value: Decimal | None) -> str | None:
    return None if value is None else f"{value:.2f}"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A canonical transaction.

    ``date`` is ``YYYY-MM-DD`` when the source value could be normalized and
    the source text otherwise. ``source_row`` is the 1-based index of the row
    in the decoded table.
    """

    id: str
    date: str | None
    description: str | None
    category: str | None
    income: Decimal | None
    expenses: Decimal | None
    currency: str
    file_name: str
    source_row: int

    def to_record(self) -> dict[str, Any]:
        """Return the downstream record shape (camelCase keys, amounts as strings)."""

        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "category": self.category,
            "income": _fmt_amount(self.income),
            "expenses": _fmt_amount(self.expenses),
            "currency": self.currency,
            "fileName": self.file_name,
            "sourceRow": self.source_row,
        }


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class MergedFileRecord:
    """A confirmed import.

    Only ``selected`` (and, through the coordinator, ``mapping``/``signature``)
    change after creation; the table itself is immutable.
    """

    file_name: str
    mapping: HeaderMapping
    raw_table: RawTable
    data_row_index: int
    signature: FileSignature
    selected: bool = True
    currency: str = "USD"
    kind: FileKind | None = None
    added_at: datetime = field(default_factory=_utcnow)


class MappingRecord(BaseModel):
    """Value persisted in the mapping store, keyed by structure signature.

    Serialized with camelCase aliases (``structureSig``, ``mappingSig``,
    ``createdAt``...). Extra keys written by other tools are preserved.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, str_strip_whitespace=True)

    mapping: list[Tag]
    structure_sig: str = Field(alias="structureSig")
    mapping_sig: str = Field(alias="mappingSig")
    created_at: datetime = Field(alias="createdAt", default_factory=_utcnow)
    data_row_index: int | None = Field(default=None, alias="dataRowIndex", ge=0)
    currency: str | None = None
    file_names: list[str] = Field(default_factory=list, alias="fileNames")

    @field_validator("mapping", mode="before")
    @classmethod
    def _coerce_labels(cls, v: Any) -> Any:
        if isinstance(v, list | tuple):
            return [_coerce_tag(x) for x in v]
        return v

    @field_validator("mapping")
    @classmethod
    def _non_empty(cls, v: list[Tag]) -> list[Tag]:
        if not v:
            raise ValueError("mapping must contain at least one column")
        return v

    def header_mapping(self) -> HeaderMapping:
        return HeaderMapping(tags=tuple(self.mapping))

    def to_store_value(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "Cell",
    "EXCLUSIVE_TAGS",
    "FileKind",
    "FileSignature",
    "HeaderMapping",
    "MappingRecord",
    "MergedFileRecord",
    "RawTable",
    "SourceFile",
    "Tag",
    "Transaction",
]
