"""
Structured event logging plus in-memory counters and latency samples.

Nothing is exported to an external metrics backend; the admin routes and the
tests read the in-memory state directly.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("readiness.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def _normalize_latency_name(metric_name: str) -> str:
    if metric_name.endswith("_ms"):
        return metric_name
    if metric_name.endswith(".latency"):
        return f"{metric_name}_ms"
    return metric_name


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Caller must redact PII before passing fields.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter.

    Side Effects:
        - Modifies _COUNTERS dict
        - Writes to logger (debug level)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counters() -> dict[str, int]:
    """Snapshot of all counters."""
    return dict(_COUNTERS)


def reset_counters() -> None:
    _COUNTERS.clear()


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """
    Time a code block and keep the sample for percentile stats.

    Side Effects:
        - Appends to _LATENCIES dict
        - Writes to logger (debug level)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        normalized = _normalize_latency_name(metric_name)
        logger.debug("timing=%s seconds=%.6f", normalized, elapsed)
        _LATENCIES.setdefault(normalized, []).append(elapsed)


def get_p95(metric_name: str) -> float:
    """P95 latency for a metric, 0.0 without samples."""
    samples = _LATENCIES.get(_normalize_latency_name(metric_name), [])
    if not samples:
        return 0.0

    sorted_samples = sorted(samples)
    idx = int(len(sorted_samples) * 0.95)
    return sorted_samples[min(idx, len(sorted_samples) - 1)]


def get_latency_stats(metric_name: str) -> dict[str, float]:
    samples = _LATENCIES.get(_normalize_latency_name(metric_name), [])
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}

    sorted_samples = sorted(samples)
    count = len(sorted_samples)
    return {
        "count": count,
        "min": sorted_samples[0],
        "max": sorted_samples[-1],
        "avg": sum(sorted_samples) / count,
        "p50": sorted_samples[int(count * 0.50)],
        "p95": sorted_samples[min(int(count * 0.95), count - 1)],
    }


def get_all_latency_stats() -> dict[str, dict[str, float]]:
    return {name: get_latency_stats(name) for name in sorted(_LATENCIES)}


def reset_latencies() -> None:
    """
    Clear recorded latencies (tests).

    Side Effects:
        - Clears _LATENCIES dict
    """
    _LATENCIES.clear()
