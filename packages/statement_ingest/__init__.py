"""Public interface for the ``statement_ingest`` package.

Symbol re-exports only; the pipeline stages live in their own modules:
``ingest`` (decoding), ``dates``, ``signatures``, ``inference``,
``materialize``, ``merge``, ``store`` and ``workflows.import_flow``.
"""

from .errors import (
    AmbiguousMappingError,
    IngestError,
    ParseError,
    UnsupportedFormatError,
    ValidationError,
)
from .inference import suggest, validate_mapping
from .ingest import PooledDecoder, SyncDecoder, decode, make_decoder
from .materialize import materialize
from .merge import MergeCoordinator
from .models import (
    FileKind,
    FileSignature,
    HeaderMapping,
    MappingRecord,
    MergedFileRecord,
    RawTable,
    SourceFile,
    Tag,
    Transaction,
)
from .signatures import SIGNATURE_ERROR, mapping_signature, structure_signature
from .store import InMemoryMappingStore, MappingRegistry, MappingStore, SqlMappingStore
from .workflows.import_flow import ImportSession, confirm, import_file, preview

__all__ = [
    # Pipeline
    "decode",
    "make_decoder",
    "SyncDecoder",
    "PooledDecoder",
    "structure_signature",
    "mapping_signature",
    "SIGNATURE_ERROR",
    "suggest",
    "validate_mapping",
    "materialize",
    "MergeCoordinator",
    "ImportSession",
    "preview",
    "confirm",
    "import_file",
    # Persistence
    "MappingStore",
    "MappingRegistry",
    "InMemoryMappingStore",
    "SqlMappingStore",
    # Models / types
    "FileKind",
    "FileSignature",
    "HeaderMapping",
    "MappingRecord",
    "MergedFileRecord",
    "RawTable",
    "SourceFile",
    "Tag",
    "Transaction",
    # Errors
    "IngestError",
    "ValidationError",
    "UnsupportedFormatError",
    "ParseError",
    "AmbiguousMappingError",
]
