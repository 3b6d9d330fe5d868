"""
In-process telemetry helpers for the report pipeline.

Nothing is exported to a metrics backend; counters and stage timings are kept
in memory and logged, so tests can assert instrumentation and the CLI can
print a short summary after a run.
"""

from __future__ import annotations

import contextlib
import time
from collections.abc import Iterator
from typing import Any

from reflexum.observability.logging import get_logger

logger = get_logger("reflexum.telemetry")

_COUNTERS: dict[str, int] = {}
_TIMINGS: dict[str, list[float]] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Callers must not pass note bodies.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and emit a debug log.

    Side Effects:
        - Modifies _COUNTERS dict (in-memory state)
        - Writes to logger (debug level)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


@contextlib.contextmanager
def time_block(stage: str) -> Iterator[None]:
    """
    Time a pipeline stage (collect, analyze, render, send).

    Side Effects:
        - Appends to _TIMINGS dict (in-memory state)
        - Writes to logger (debug level) with timing
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("timing=%s ms=%.2f", stage, elapsed_ms)
        _TIMINGS.setdefault(stage, []).append(elapsed_ms)


def get_timings(stage: str) -> list[float]:
    return list(_TIMINGS.get(stage, []))


def snapshot() -> dict[str, Any]:
    """Counters plus the last recorded timing of each stage."""
    return {
        "counters": dict(_COUNTERS),
        "last_ms": {stage: samples[-1] for stage, samples in _TIMINGS.items() if samples},
    }


def reset() -> None:
    """
    Clear counters and timings (useful for tests).

    Side Effects:
        - Clears _COUNTERS and _TIMINGS
    """
    _COUNTERS.clear()
    _TIMINGS.clear()
