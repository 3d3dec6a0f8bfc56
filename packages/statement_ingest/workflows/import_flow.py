"""Import pipeline: decode, fingerprint, look up or suggest a mapping, confirm, merge.

The state of one upload between preview and confirmation is an explicit
:class:`ImportSession` value passed from step to step; nothing is kept at
module level.

Typical use::

    session = preview(source, registry=registry)
    # a human reviews session.raw_table / session.mapping here
    record, added = confirm(session, coordinator, registry=registry)

:func:`import_file` runs both steps without the human in between, using the
remembered mapping when the structure is known and the suggestion otherwise.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..config import Settings, normalize_currency
from ..errors import ValidationError
from ..inference import suggest, validate_mapping
from ..ingest.decoders import Decoder, SyncDecoder
from ..ingest.dispatch import resolve_kind
from ..logging_setup import get_logger
from ..merge import MergeCoordinator
from ..models import FileKind, FileSignature, HeaderMapping, MergedFileRecord, RawTable, SourceFile
from ..pmap import p_map
from ..signatures import mapping_signature, table_structure_signature
from ..store import MappingRegistry

_logger = get_logger("statement_ingest.workflows.import_flow")

DEFAULT_DATA_ROW_INDEX = 1


@dataclass(frozen=True, slots=True)
class ImportSession:
    source_name: str
    kind: FileKind
    raw_table: RawTable
    signature: FileSignature
    suggested_mapping: HeaderMapping
    known_mapping: HeaderMapping | None = None
    data_row_index: int = DEFAULT_DATA_ROW_INDEX
    currency: str | None = None

    @property
    def is_known(self) -> bool:
        return self.known_mapping is not None

    @property
    def mapping(self) -> HeaderMapping:
        """The mapping a confirmation uses when the caller supplies none."""

        return self.known_mapping if self.known_mapping is not None else self.suggested_mapping


def preview(
    source: SourceFile,
    *,
    registry: MappingRegistry | None = None,
    decoder: Decoder | None = None,
    table: RawTable | None = None,
) -> ImportSession:
    """Decode ``source`` (unless ``table`` is given) and prepare it for confirmation."""

    kind = resolve_kind(source.name)
    if table is None:
        table = (decoder or SyncDecoder()).decode(source.content, source.name)

    structure_sig = table_structure_signature(kind, table)
    suggested = suggest(table)

    known: HeaderMapping | None = None
    data_row_index = DEFAULT_DATA_ROW_INDEX
    currency: str | None = None
    record = registry.lookup_record(structure_sig) if registry is not None else None
    if record is not None:
        remembered = record.header_mapping()
        if len(remembered) == table.column_count:
            known = remembered
            if record.data_row_index is not None and record.data_row_index < len(table):
                data_row_index = record.data_row_index
            currency = record.currency
        else:
            _logger.warning(
                "import:stale_mapping file=%s key=%s stored_cols=%d table_cols=%d",
                source.name,
                structure_sig,
                len(remembered),
                table.column_count,
            )

    _logger.info(
        "import:preview file=%s kind=%s rows=%d known=%s",
        source.name,
        kind.value,
        len(table),
        known is not None,
    )
    return ImportSession(
        source_name=source.name,
        kind=kind,
        raw_table=table,
        signature=FileSignature(structure_sig),
        suggested_mapping=suggested,
        known_mapping=known,
        data_row_index=data_row_index,
        currency=currency,
    )


def confirm(
    session: ImportSession,
    coordinator: MergeCoordinator,
    *,
    mapping: HeaderMapping | None = None,
    data_row_index: int | None = None,
    currency: str | None = None,
    registry: MappingRegistry | None = None,
    settings: Settings | None = None,
) -> tuple[MergedFileRecord, bool]:
    """Validate the chosen mapping, remember it, and merge the file.

    Returns the record and whether it was added (False for a duplicate).
    ``AmbiguousMappingError`` blocks both persistence and merging.
    """

    settings = settings or Settings()
    chosen = mapping if mapping is not None else session.mapping
    validate_mapping(chosen, session.raw_table.column_count)

    index = session.data_row_index if data_row_index is None else data_row_index
    if not 0 <= index < len(session.raw_table):
        raise ValidationError(
            f"data row index {index} is outside the table (0..{len(session.raw_table) - 1})"
        )
    code = normalize_currency(currency or session.currency, default=settings.default_currency)

    signature = FileSignature(
        session.signature.structure_sig, mapping_signature(session.kind, chosen)
    )
    if registry is not None:
        registry.remember(
            signature.structure_sig,
            chosen,
            mapping_sig=signature.mapping_sig,
            data_row_index=index,
            currency=code,
            file_name=session.source_name,
        )

    record = MergedFileRecord(
        file_name=session.source_name,
        mapping=chosen,
        raw_table=session.raw_table,
        data_row_index=index,
        signature=signature,
        currency=code,
        kind=session.kind,
    )
    added = coordinator.add_or_skip(record)
    return record, added


def import_file(
    source: SourceFile,
    coordinator: MergeCoordinator,
    *,
    registry: MappingRegistry | None = None,
    decoder: Decoder | None = None,
    settings: Settings | None = None,
    mapping: HeaderMapping | None = None,
    data_row_index: int | None = None,
    currency: str | None = None,
) -> tuple[ImportSession, bool]:
    session = preview(source, registry=registry, decoder=decoder)
    _, added = confirm(
        session,
        coordinator,
        mapping=mapping,
        data_row_index=data_row_index,
        currency=currency,
        registry=registry,
        settings=settings,
    )
    return session, added


def decode_many(
    sources: Sequence[SourceFile],
    *,
    decoder: Decoder | None = None,
    settings: Settings | None = None,
) -> list[RawTable]:
    """Decode several uploads concurrently; results follow ``sources`` order.

    The first failure aborts the batch and propagates unchanged.
    """

    settings = settings or Settings()
    dec = decoder or SyncDecoder()
    concurrency = max(1, min(settings.max_workers, len(sources) or 1))
    return p_map(sources, lambda s: dec.decode(s.content, s.name), concurrency=concurrency)


__all__ = [
    "DEFAULT_DATA_ROW_INDEX",
    "ImportSession",
    "confirm",
    "decode_many",
    "import_file",
    "preview",
]
