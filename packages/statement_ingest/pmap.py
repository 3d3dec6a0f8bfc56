"""Order-preserving bounded concurrency over ``ThreadPoolExecutor``.

Used to decode several uploads at once. At most ``concurrency`` mapper calls
run at a time; results come back in input order.

Failure policy:

- ``stop_on_error=True`` (default): the first failure propagates unchanged
  and work that has not started yet is cancelled.
- ``stop_on_error=False``: every item runs; failures are raised together as
  an ``ExceptionGroup`` once all calls have finished.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

from .logging_setup import get_logger

InT = TypeVar("InT")
OutT = TypeVar("OutT")

_logger = get_logger("statement_ingest.pmap")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    pending = enumerate(iterable)
    results: dict[int, OutT] = {}
    failures: list[tuple[int, Exception]] = []
    in_flight: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(max_workers=concurrency) as pool:

        def fill() -> None:
            while len(in_flight) < concurrency:
                nxt = next(pending, None)
                if nxt is None:
                    return
                idx, item = nxt
                in_flight[pool.submit(mapper, item)] = idx

        fill()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                exc = fut.exception()
                if exc is None:
                    results[idx] = fut.result()
                    continue
                if stop_on_error:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise exc
                failures.append((idx, exc))  # type: ignore[arg-type]
            fill()

    if failures:
        _logger.debug("p_map:failed count=%d indices=%s", len(failures), [i for i, _ in failures])
        failures.sort(key=lambda pair: pair[0])
        raise ExceptionGroup("p_map: one or more mapper calls failed", [e for _, e in failures])
    return [results[i] for i in sorted(results)]


__all__ = ["p_map"]
