"""Mapping persistence: the key-value contract and the registry built on it.

Any object with ``get``/``set``/``delete`` by string key satisfies
:class:`MappingStore`. Two implementations ship here:

- :class:`InMemoryMappingStore` for a single session (and tests);
- :class:`SqlMappingStore`, which keeps JSON values in the
  ``si_mapping_records`` table through ``db.client`` sessions.

:class:`MappingRegistry` is what the pipeline talks to. Keys are structure
signatures; values follow the :class:`~statement_ingest.models.MappingRecord`
shape. A stored value that no longer validates is logged and treated as a
miss, so a corrupt record never blocks an upload.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Protocol

from db.client import get_engine, session_scope
from db.models import Base, SiMappingRecord
from pydantic import ValidationError as PydanticValidationError

from .inference import validate_mapping
from .logging_setup import get_logger
from .models import HeaderMapping, MappingRecord
from .signatures import SIGNATURE_ERROR

_logger = get_logger("statement_ingest.store")


class MappingStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Mapping[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryMappingStore:
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Mapping[str, Any]) -> None:
        self._data[key] = copy.deepcopy(dict(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class SqlMappingStore:
    """Mapping store backed by the workspace database."""

    def __init__(self, database_url: str | None = None) -> None:
        self._url = database_url

    def create_schema(self) -> None:
        Base.metadata.create_all(
            bind=get_engine(database_url=self._url), tables=[SiMappingRecord.__table__]
        )

    def get(self, key: str) -> Any | None:
        with session_scope(database_url=self._url) as session:
            row = session.get(SiMappingRecord, key)
            return copy.deepcopy(row.value) if row is not None else None

    def set(self, key: str, value: Mapping[str, Any]) -> None:
        with session_scope(database_url=self._url) as session:
            row = session.get(SiMappingRecord, key)
            if row is None:
                session.add(SiMappingRecord(key=key, value=dict(value)))
            else:
                row.value = dict(value)

    def delete(self, key: str) -> None:
        with session_scope(database_url=self._url) as session:
            row = session.get(SiMappingRecord, key)
            if row is not None:
                session.delete(row)


class MappingRegistry:
    """Remember confirmed mappings by structure signature."""

    def __init__(self, store: MappingStore) -> None:
        self.store = store

    def lookup_record(self, structure_sig: str) -> MappingRecord | None:
        if not structure_sig or structure_sig == SIGNATURE_ERROR:
            return None
        raw = self.store.get(structure_sig)
        if raw is None:
            _logger.debug("store:miss key=%s", structure_sig)
            return None
        try:
            record = MappingRecord.model_validate(raw)
        except PydanticValidationError:
            _logger.warning("store:corrupt_record key=%s", structure_sig, exc_info=True)
            return None
        _logger.debug("store:hit key=%s mapping_sig=%s", structure_sig, record.mapping_sig)
        return record

    def lookup(self, structure_sig: str) -> HeaderMapping | None:
        record = self.lookup_record(structure_sig)
        return record.header_mapping() if record is not None else None

    def remember(
        self,
        structure_sig: str,
        mapping: HeaderMapping,
        *,
        mapping_sig: str,
        data_row_index: int | None = None,
        currency: str | None = None,
        file_name: str | None = None,
    ) -> MappingRecord | None:
        """Validate and persist ``mapping`` under ``structure_sig``.

        Returns the stored record, or ``None`` when the structure signature is
        the error sentinel (nothing is written then). Raises
        ``AmbiguousMappingError`` for mappings that repeat an exclusive tag.
        """

        validate_mapping(mapping)
        if not structure_sig or structure_sig == SIGNATURE_ERROR:
            _logger.warning("store:skip_remember reason=no_signature mapping_sig=%s", mapping_sig)
            return None

        existing = self.lookup_record(structure_sig)
        file_names = list(existing.file_names) if existing else []
        if file_name and file_name not in file_names:
            file_names.append(file_name)

        fields: dict[str, Any] = {
            "mapping": list(mapping.tags),
            "structure_sig": structure_sig,
            "mapping_sig": mapping_sig,
            "data_row_index": data_row_index,
            "currency": currency,
            "file_names": file_names,
        }
        if existing is not None:
            fields["created_at"] = existing.created_at
        record = MappingRecord(**fields)
        self.store.set(structure_sig, record.to_store_value())
        _logger.info(
            "store:remember key=%s mapping_sig=%s files=%d",
            structure_sig,
            mapping_sig,
            len(file_names),
        )
        return record

    def forget(self, structure_sig: str) -> None:
        self.store.delete(structure_sig)
        _logger.info("store:forget key=%s", structure_sig)


__all__ = ["InMemoryMappingStore", "MappingRegistry", "MappingStore", "SqlMappingStore"]
