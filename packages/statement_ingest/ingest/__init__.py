"""Format decoding: raw file content to :class:`~statement_ingest.models.RawTable`."""

from .decoders import Decoder, PooledDecoder, SyncDecoder, make_decoder
from .delimited import decode_delimited, detect_delimiter, parse_row
from .dispatch import EXTENSION_KINDS, decode, decode_source, resolve_kind
from .markup import decode_markup
from .spreadsheet import decode_spreadsheet

__all__ = [
    "Decoder",
    "EXTENSION_KINDS",
    "PooledDecoder",
    "SyncDecoder",
    "decode",
    "decode_delimited",
    "decode_markup",
    "decode_source",
    "decode_spreadsheet",
    "detect_delimiter",
    "make_decoder",
    "parse_row",
    "resolve_kind",
]
