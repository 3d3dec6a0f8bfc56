"""Error taxonomy for the ingestion pipeline.

Every failure raised by this package derives from :class:`IngestError` so that
entrypoints (the CLI, a host application) can surface a single user-facing
message per upload without catching unrelated exceptions.

- ``ValidationError``: the decoded table is structurally too small, or a
  caller-supplied value (currency, data row index) is out of range.
- ``UnsupportedFormatError``: the file kind cannot be resolved from its name.
- ``ParseError``: a format library rejected the content (malformed markup,
  unreadable workbook, undecodable bytes). The library exception is chained
  as ``__cause__``.
- ``AmbiguousMappingError``: two or more columns claim the same exclusive tag
  after a human edit. Persistence must be blocked until it is resolved.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import Tag


class IngestError(Exception):
    """Base class for all ingestion failures."""


class ValidationError(IngestError):
    """Raised when input is structurally insufficient (too few rows/columns)."""


class UnsupportedFormatError(IngestError):
    """Raised when a file kind cannot be resolved from the supplied hint."""

    def __init__(self, hint: str) -> None:
        super().__init__(f"unsupported file type: {hint!r}")
        self.hint = hint

    def __reduce__(self):
        return (type(self), (self.hint,))


class ParseError(IngestError):
    """Raised when a format-specific library fails to decode the content."""


class AmbiguousMappingError(IngestError):
    """Raised when an exclusive tag is assigned to more than one column.

    ``conflicts`` maps each offending tag to the column indices claiming it.
    """

    def __init__(self, conflicts: Mapping[Tag, tuple[int, ...]]) -> None:
        details = "; ".join(
            f"{tag.value} -> columns {', '.join(str(i) for i in cols)}"
            for tag, cols in conflicts.items()
        )
        super().__init__(f"ambiguous header mapping: {details}")
        self.conflicts = dict(conflicts)

    def __reduce__(self):
        return (type(self), (self.conflicts,))


__all__ = [
    "IngestError",
    "ValidationError",
    "UnsupportedFormatError",
    "ParseError",
    "AmbiguousMappingError",
]
