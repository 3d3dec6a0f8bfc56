"""Process-wide SQLAlchemy engine and session helpers.

Usage
-----
from db.client import session_scope

with session_scope(database_url=url) as s:
    s.merge(row)

The URL comes from the ``database_url`` argument, else
``STATEMENT_INGEST_DATABASE_URL``, else ``DATABASE_URL``. One engine is
created per process; asking for a different URL afterwards is an error until
:func:`dispose_engine` is called.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_URL_ENV_VARS = ("STATEMENT_INGEST_DATABASE_URL", "DATABASE_URL")

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_DB_URL: str | None = None


def resolve_database_url(override: str | None = None) -> str:
    url = override or next((os.getenv(v) for v in _URL_ENV_VARS if os.getenv(v)), None)
    if not url:
        raise RuntimeError(
            "no database URL: pass database_url or set STATEMENT_INGEST_DATABASE_URL/DATABASE_URL"
        )
    return url


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine, creating it on first use."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    url = resolve_database_url(database_url)
    if _ENGINE is None:
        _ENGINE = create_engine(url, pool_pre_ping=True)
        _SESSION_MAKER = sessionmaker(bind=_ENGINE, expire_on_commit=False, class_=Session)
        _DB_URL = url
        return _ENGINE
    if url != _DB_URL:
        raise RuntimeError(
            "get_engine() already initialized with a different database URL; "
            "call dispose_engine() first"
        )
    return _ENGINE


def dispose_engine() -> None:
    """Close pooled connections and forget the shared engine."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _DB_URL = None


def get_session(*, database_url: str | None = None) -> Session:
    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session",
    "resolve_database_url",
    "session_scope",
]
