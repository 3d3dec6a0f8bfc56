"""Centralized logging configuration for the ``statement_ingest`` package.

Public helpers:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package root
  logger (``"statement_ingest"``). Entry points (the CLI) call it once at
  startup; repeated calls are no-ops unless ``force=True``.
- ``get_logger(name)``: acquire a child logger. Until the package is
  configured, the root logger carries a ``NullHandler`` so library callers see
  no "No handler" warnings and no output.
- ``level_for_verbosity(n)``: translate a ``-v`` count into a level.

Library modules never attach handlers of their own; they call
``get_logger("statement_ingest.<module>")`` and log ``key=value`` events with
lazy ``%`` arguments.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "statement_ingest"
_ENV_LEVEL = "STATEMENT_INGEST_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def _coerce_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(_ENV_LEVEL)
        if not level:
            return logging.INFO
    text = level.strip().upper()
    if text.isdigit():
        return int(text)
    numeric = logging.getLevelName(text)
    # getLevelName returns "Level X" for unknown names
    return numeric if isinstance(numeric, int) else logging.INFO


def level_for_verbosity(verbosity: int) -> int:
    """Map a CLI ``-v`` count to a level: 0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""

    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Logger:
    """Configure the package root logger and return it.

    ``level`` accepts an int or a level name; ``None`` reads
    ``STATEMENT_INGEST_LOG_LEVEL`` and defaults to ``INFO``. ``stream``
    defaults to ``sys.stderr`` so stdout stays reserved for command output.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None and not force:
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    resolved = _coerce_level(level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    handler.setLevel(resolved)

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _handler = handler
    return logger


def reset_logging() -> None:
    """Detach the configured handler (used by tests and long-lived hosts)."""

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a silent default for libraries."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "level_for_verbosity", "reset_logging"]
