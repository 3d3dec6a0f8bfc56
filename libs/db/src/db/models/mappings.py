from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# si_mapping_records: remembered column mappings keyed by structure signature
# ---------------------------


class SiMappingRecord(Base):
    __tablename__ = "si_mapping_records"

    # Structure signature token (``st_...``); the store treats it as opaque.
    key: Mapped[str] = mapped_column(String, primary_key=True)
    # Serialized record: mapping, structureSig, mappingSig, createdAt, ...
    value: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
