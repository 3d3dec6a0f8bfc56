"""Two interchangeable decode paths behind one interface.

- :class:`SyncDecoder` runs :func:`~statement_ingest.ingest.dispatch.decode`
  on the calling thread.
- :class:`PooledDecoder` ships delimited and markup content to a
  ``ProcessPoolExecutor`` and hands back a future. Spreadsheets always decode
  on the calling thread.

Both must return identical ``RawTable`` values for identical input; the
shared contract tests in ``tests/test_decoder_contract.py`` run against each.

:func:`make_decoder` picks one: it probes the process pool once and falls
back to the synchronous path when the platform cannot start workers.
"""

from __future__ import annotations

from concurrent.futures import Future, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Protocol, Self

from ..config import Settings
from ..logging_setup import get_logger
from ..models import FileKind, RawTable
from .dispatch import decode, resolve_kind

_logger = get_logger("statement_ingest.ingest.decoders")

OFFTHREAD_KINDS: frozenset[FileKind] = frozenset({FileKind.DELIMITED, FileKind.MARKUP})

# Failures that mean "no worker processes on this platform".
_POOL_UNAVAILABLE = (OSError, NotImplementedError, ImportError, BrokenProcessPool)


class Decoder(Protocol):
    name: str

    def decode(self, content: str | bytes, format_hint: str | FileKind) -> RawTable: ...

    def submit(self, content: str | bytes, format_hint: str | FileKind) -> Future[RawTable]: ...

    def close(self) -> None: ...


def _completed(content: str | bytes, format_hint: str | FileKind) -> Future[RawTable]:
    fut: Future[RawTable] = Future()
    try:
        fut.set_result(decode(content, format_hint))
    except Exception as exc:  # noqa: BLE001
        fut.set_exception(exc)
    return fut


class SyncDecoder:
    name = "sync"

    def decode(self, content: str | bytes, format_hint: str | FileKind) -> RawTable:
        return decode(content, format_hint)

    def submit(self, content: str | bytes, format_hint: str | FileKind) -> Future[RawTable]:
        """Decode now and return an already-completed future."""

        return _completed(content, format_hint)

    def close(self) -> None:
        pass

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def _ping() -> str:
    return "pong"


class PooledDecoder:
    """Decode delimited and markup content in worker processes.

    There is no cancellation and no timeout: a submitted decode runs to
    completion or failure.
    """

    name = "pooled"

    def __init__(self, max_workers: int = 2, *, executor: ProcessPoolExecutor | None = None):
        self._pool = executor or ProcessPoolExecutor(max_workers=max_workers)

    def probe(self) -> bool:
        """Round-trip a no-op through the pool; False when workers cannot run."""

        try:
            return self._pool.submit(_ping).result() == "pong"
        except _POOL_UNAVAILABLE as exc:
            _logger.warning("decoder:probe_failed error=%s", exc)
            return False

    def submit(self, content: str | bytes, format_hint: str | FileKind) -> Future[RawTable]:
        kind = resolve_kind(format_hint)
        if kind not in OFFTHREAD_KINDS:
            _logger.debug("decoder:sync_only kind=%s", kind.value)
            return _completed(content, format_hint)
        try:
            return self._pool.submit(decode, content, format_hint)
        except (BrokenProcessPool, RuntimeError) as exc:
            _logger.warning("decoder:pool_unavailable error=%s; decoding on calling thread", exc)
            return _completed(content, format_hint)

    def decode(self, content: str | bytes, format_hint: str | FileKind) -> RawTable:
        return self.submit(content, format_hint).result()

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def make_decoder(settings: Settings | None = None) -> SyncDecoder | PooledDecoder:
    """Return a pooled decoder when workers start on this platform, else a sync one."""

    settings = settings or Settings()
    if not settings.offthread:
        return SyncDecoder()
    try:
        pooled = PooledDecoder(max_workers=settings.max_workers)
    except _POOL_UNAVAILABLE as exc:
        _logger.warning("decoder:offthread_unavailable error=%s", exc)
        return SyncDecoder()
    if not pooled.probe():
        pooled.close()
        return SyncDecoder()
    _logger.debug("decoder:selected name=pooled workers=%d", settings.max_workers)
    return pooled


__all__ = ["Decoder", "OFFTHREAD_KINDS", "PooledDecoder", "SyncDecoder", "make_decoder"]
