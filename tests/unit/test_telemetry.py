"""Unit tests for in-memory counters and latency stats"""

from __future__ import annotations

import itertools
from types import SimpleNamespace

from readiness.observability import telemetry
from readiness.observability.telemetry import (
    counter,
    get_all_latency_stats,
    get_counters,
    get_latency_stats,
    get_p95,
    time_block,
)


def test_counters_accumulate():
    counter("memos.job_started")
    assert counter("memos.job_started", 2) == 3
    assert get_counters() == {"memos.job_started": 3}


def test_time_block_records_samples(monkeypatch):
    # 20 blocks taking 1..20 seconds
    ticks = itertools.chain.from_iterable((0.0, float(n)) for n in range(1, 21))
    monkeypatch.setattr(telemetry, "time", SimpleNamespace(perf_counter=lambda: next(ticks)))

    for _ in range(20):
        with time_block("llm.gateway.latency"):
            pass

    stats = get_latency_stats("llm.gateway.latency")
    assert stats["count"] == 20
    assert stats["min"] == 1.0
    assert stats["max"] == 20.0
    assert stats["avg"] == 10.5
    assert get_p95("llm.gateway.latency") == 20.0
    # ".latency" names are stored with an _ms suffix
    assert list(get_all_latency_stats()) == ["llm.gateway.latency_ms"]


def test_no_samples():
    assert get_p95("unknown") == 0.0
    assert get_latency_stats("unknown")["count"] == 0
