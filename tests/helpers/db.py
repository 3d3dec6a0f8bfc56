"""DB helpers for tests: bootstrap a temporary SQLite mapping store."""

from __future__ import annotations

import os
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models import SiMappingRecord
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file with the mapping-store schema and return its URL.

    A file-backed database lets every session opened by the store see the same
    state (in-memory SQLite databases are per-connection).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine, tables=[SiMappingRecord.__table__])
    _assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("STATEMENT_INGEST_DATABASE_URL", url)
    return url


def stored_keys(database_url: str) -> list[str]:
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("SELECT key FROM si_mapping_records ORDER BY key"))
        return [r[0] for r in rows]


def _assert_schema_in_sync(database_url: str) -> None:
    """ORM column set matches the SQLite table column set."""

    expected = {c.name for c in SiMappingRecord.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('si_mapping_records')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    assert got == expected, f"si_mapping_records schema drift: expected={expected}, got={got}"
