"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the mapping-store table used by ``statement_ingest``.
"""

from .mappings import Base, SiMappingRecord

__all__ = [
    "Base",
    "SiMappingRecord",
]
