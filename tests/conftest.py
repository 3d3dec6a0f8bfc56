"""Pytest configuration for test isolation.

Settings are read from ``STATEMENT_INGEST_*`` variables and the database
client keeps one process-wide engine, so each test starts from a clean
environment: package variables cleared, off-thread decoding disabled unless a
test opts in, the shared engine disposed, and the package logger detached
from any stream captured by an earlier test.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an install.
_ROOT = Path(__file__).resolve().parents[1]
_PATHS = [_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT]
sys.path[:0] = [str(p) for p in _PATHS if str(p) not in sys.path]

from db.client import dispose_engine  # noqa: E402
from statement_ingest.logging_setup import reset_logging  # noqa: E402

_ENV_VARS = (
    "STATEMENT_INGEST_OFFTHREAD",
    "STATEMENT_INGEST_MAX_WORKERS",
    "STATEMENT_INGEST_DEFAULT_CURRENCY",
    "STATEMENT_INGEST_DATABASE_URL",
    "STATEMENT_INGEST_LOG_LEVEL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STATEMENT_INGEST_OFFTHREAD", "0")
    monkeypatch.setenv("STATEMENT_INGEST_LOG_LEVEL", "WARNING")
    # The CLI loads .env from the working directory; keep it empty.
    monkeypatch.chdir(tmp_path)
    yield
    dispose_engine()
    reset_logging()
