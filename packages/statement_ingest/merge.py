"""Ownership of confirmed imports and the derived transaction set.

``MergeCoordinator`` keeps :class:`MergedFileRecord` values in upload order
and rebuilds the canonical transaction list after every mutation. The list is
a derived view: it is never edited in place, only replaced.

Re-adding a record whose signature pair is already present is a silent no-op,
so re-uploading the same file never duplicates transactions.
"""

from __future__ import annotations

from .errors import ValidationError
from .inference import validate_mapping
from .ingest.dispatch import resolve_kind
from .logging_setup import get_logger
from .materialize import ensure_unique_ids, materialize
from .models import FileSignature, HeaderMapping, MergedFileRecord, Transaction
from .signatures import mapping_signature

_logger = get_logger("statement_ingest.merge")


class MergeCoordinator:
    def __init__(self) -> None:
        self._records: list[MergedFileRecord] = []
        self._transactions: tuple[Transaction, ...] = ()

    @property
    def records(self) -> tuple[MergedFileRecord, ...]:
        return tuple(self._records)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._transactions

    def __len__(self) -> int:
        return len(self._records)

    def _record(self, index: int) -> MergedFileRecord:
        if not 0 <= index < len(self._records):
            raise ValidationError(f"no imported file at index {index}")
        return self._records[index]

    def add_or_skip(self, candidate: MergedFileRecord) -> bool:
        """Append ``candidate`` unless a record with the same signature exists.

        Returns True when the record was added.
        """

        for existing in self._records:
            if existing.signature == candidate.signature:
                _logger.info(
                    "merge:skip file=%s duplicate_of=%s structure_sig=%s",
                    candidate.file_name,
                    existing.file_name,
                    candidate.signature.structure_sig,
                )
                return False
        self._records.append(candidate)
        _logger.info(
            "merge:add file=%s records=%d", candidate.file_name, len(self._records)
        )
        self.rebuild()
        return True

    def remove(self, index: int) -> MergedFileRecord:
        record = self._record(index)
        del self._records[index]
        self.rebuild()
        return record

    def set_selected(self, index: int, selected: bool) -> None:
        self._record(index).selected = selected
        self.rebuild()

    def update_mapping(self, index: int, mapping: HeaderMapping) -> FileSignature:
        """Replace a record's mapping after validating it; returns the new signature."""

        record = self._record(index)
        validate_mapping(mapping, record.raw_table.column_count)
        kind = record.kind or resolve_kind(record.file_name)
        signature = FileSignature(record.signature.structure_sig, mapping_signature(kind, mapping))
        for other in self._records:
            if other is not record and other.signature == signature:
                raise ValidationError(
                    f"{record.file_name} would duplicate {other.file_name} with this mapping"
                )
        record.mapping = mapping
        record.signature = signature
        self.rebuild()
        return record.signature

    def records_for_mapping(self, mapping_sig: str) -> list[MergedFileRecord]:
        return [r for r in self._records if r.signature.mapping_sig == mapping_sig]

    def remove_mapping(self, mapping_sig: str) -> int:
        """Drop every record confirmed with ``mapping_sig``; returns how many went."""

        before = len(self._records)
        self._records = [r for r in self._records if r.signature.mapping_sig != mapping_sig]
        removed = before - len(self._records)
        if removed:
            self.rebuild()
        return removed

    def rebuild(self) -> tuple[Transaction, ...]:
        flat: list[Transaction] = []
        for record in self._records:
            if not record.selected:
                continue
            flat.extend(
                materialize(
                    record.raw_table,
                    record.mapping,
                    record.data_row_index,
                    file_name=record.file_name,
                    currency=record.currency,
                )
            )
        self._transactions = tuple(ensure_unique_ids(flat))
        _logger.debug(
            "merge:rebuild records=%d transactions=%d",
            len(self._records),
            len(self._transactions),
        )
        return self._transactions


__all__ = ["MergeCoordinator"]
