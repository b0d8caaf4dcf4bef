"""Unit tests for LLM call budgets and the AI usage ledger"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from readiness.infrastructure.llm_budget import (
    check_budget,
    estimate_cost,
    get_usage_summary,
    record_llm_call,
    record_usage,
)


def test_fresh_user_is_allowed():
    status = check_budget("user-1")
    assert status.is_allowed
    assert status.user_calls_today == 0
    assert status.reason is None


def test_user_limit():
    record_llm_call("user-1", "vc_verdict")
    record_llm_call("user-1", "memo")

    status = check_budget("user-1", user_limit=2)

    assert not status.is_allowed
    assert status.user_calls_today == 2
    assert status.reason == "User daily limit exceeded (2/2)"


def test_global_limit_applies_across_users():
    record_llm_call("user-1", "vc_verdict")
    record_llm_call("user-2", "vc_verdict")

    status = check_budget("user-3", user_limit=10, global_limit=2)

    assert not status.is_allowed
    assert status.reason == "Global daily limit exceeded (2/2)"


def test_estimate_cost():
    assert estimate_cost("google/gemini-2.5-pro", 1_000_000, 100_000) == 2.25
    assert estimate_cost("unknown/model", 1_000_000, 0) == 0.3


def test_usage_summary():
    record_usage("generate-full-memo", "google/gemini-2.5-pro", 1_000_000, 0, duration_ms=300)
    record_usage("generate-vc-verdict", "google/gemini-2.5-flash", 1000, 100, duration_ms=100)
    record_usage("generate-vc-verdict", "google/gemini-2.5-flash", 0, 0, duration_ms=200, status="error")

    summary = get_usage_summary("7d")

    assert summary["totalCalls"] == 3
    assert summary["errorCount"] == 1
    assert summary["avgDurationMs"] == 200
    assert summary["mostExpensive"] == {"name": "generate-full-memo", "cost": 1.25}
    verdict = next(f for f in summary["functions"] if f["name"] == "generate-vc-verdict")
    assert verdict["calls"] == 2
    assert verdict["errors"] == 1
    assert verdict["avgDuration"] == 150
    assert {m["name"] for m in summary["models"]} == {"gemini-2.5-pro", "gemini-2.5-flash"}


def test_usage_summary_window():
    record_usage("generate-vc-verdict", "google/gemini-2.5-flash")
    later = datetime.now(UTC) + timedelta(days=2)
    assert get_usage_summary("24h", now=later)["totalCalls"] == 0
    assert get_usage_summary("all", now=later)["totalCalls"] == 1


def test_unknown_range():
    with pytest.raises(ValueError, match="Unknown time range"):
        get_usage_summary("1y")
