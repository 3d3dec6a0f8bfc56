"""Runtime settings resolved from the environment.

Entry points load ``.env`` (``python-dotenv``) first and then call
:meth:`Settings.from_env`. Library code receives a ``Settings`` instance (or
uses the defaults) and never reads the environment on its own.

Variables
---------
``STATEMENT_INGEST_OFFTHREAD``
    ``1/true/yes`` or ``0/false/no``. When off, :func:`make_decoder` never
    probes for the worker pool. Default: on.
``STATEMENT_INGEST_MAX_WORKERS``
    Positive integer, capped at 32. Default: ``min(4, os.cpu_count())``.
``STATEMENT_INGEST_DEFAULT_CURRENCY``
    ISO 4217 code stamped on imports that do not specify one. Default ``USD``.
``STATEMENT_INGEST_DATABASE_URL`` / ``DATABASE_URL``
    SQLAlchemy URL for the persisted mapping store.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ValidationError
from .logging_setup import get_logger

_logger = get_logger("statement_ingest.config")

SUPPORTED_CURRENCIES: frozenset[str] = frozenset(
    {"USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CNY", "CHF", "ILS", "INR", "RUB"}
)
DEFAULT_CURRENCY = "USD"

_MAX_WORKERS_CAP = 32
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _default_workers() -> int:
    return max(1, min(4, os.cpu_count() or 1))


def _parse_bool(name: str, raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    _logger.warning("config:invalid_bool name=%s value=%r; using default=%s", name, raw, default)
    return default


def _parse_workers(raw: str | None) -> int:
    if raw is None or not raw.strip():
        return _default_workers()
    try:
        n = int(raw)
    except ValueError:
        _logger.warning("config:invalid_int name=STATEMENT_INGEST_MAX_WORKERS value=%r", raw)
        return _default_workers()
    if n < 1:
        return _default_workers()
    return min(n, _MAX_WORKERS_CAP)


def normalize_currency(code: str | None, *, default: str = DEFAULT_CURRENCY) -> str:
    """Upper-case and validate a currency code; ``None``/blank gives ``default``.

    Raises :class:`~statement_ingest.errors.ValidationError` for codes outside
    :data:`SUPPORTED_CURRENCIES`.
    """

    if code is None or not code.strip():
        return default
    c = code.strip().upper()
    if c not in SUPPORTED_CURRENCIES:
        supported = ", ".join(sorted(SUPPORTED_CURRENCIES))
        raise ValidationError(f"unsupported currency {code!r}; expected one of {supported}")
    return c


@dataclass(frozen=True, slots=True)
class Settings:
    offthread: bool = True
    max_workers: int = field(default_factory=_default_workers)
    default_currency: str = DEFAULT_CURRENCY
    database_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        raw_currency = env.get("STATEMENT_INGEST_DEFAULT_CURRENCY")
        try:
            currency = normalize_currency(raw_currency)
        except ValidationError:
            _logger.warning(
                "config:invalid_currency value=%r; using %s", raw_currency, DEFAULT_CURRENCY
            )
            currency = DEFAULT_CURRENCY
        return cls(
            offthread=_parse_bool(
                "STATEMENT_INGEST_OFFTHREAD", env.get("STATEMENT_INGEST_OFFTHREAD"), True
            ),
            max_workers=_parse_workers(env.get("STATEMENT_INGEST_MAX_WORKERS")),
            default_currency=currency,
            database_url=(
                env.get("STATEMENT_INGEST_DATABASE_URL") or env.get("DATABASE_URL") or None
            ),
        )


__all__ = ["DEFAULT_CURRENCY", "SUPPORTED_CURRENCIES", "Settings", "normalize_currency"]
