"""
LLM budget and cost tracking.

Two ledgers:
- llm_usage: daily call counters per user (enforces per-user and global limits)
- ai_usage_logs: one row per gateway call with tokens, estimated cost,
  duration and status, aggregated by the admin usage report
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from typing import Any, NamedTuple

from readiness.config import (
    LLM_DEFAULT_PRICE,
    LLM_GLOBAL_DAILY_LIMIT,
    LLM_MODEL_PRICES,
    LLM_USER_DAILY_LIMIT,
)
from readiness.infrastructure.database import (
    db_transaction,
    get_db_connection,
    retry_on_db_lock,
)
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter

logger = get_logger(__name__)

USAGE_RANGES: dict[str, timedelta | None] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "all": None,
}
USAGE_REPORT_ROW_LIMIT = 1000


class BudgetStatus(NamedTuple):
    """Current budget status for a user."""

    user_calls_today: int
    user_limit: int
    global_calls_today: int
    global_limit: int
    is_allowed: bool
    reason: str | None


@retry_on_db_lock()
def check_budget(
    user_id: str,
    user_limit: int = LLM_USER_DAILY_LIMIT,
    global_limit: int = LLM_GLOBAL_DAILY_LIMIT,
) -> BudgetStatus:
    """Check whether user_id may make another LLM-backed call today."""
    today = date.today().isoformat()

    with get_db_connection() as conn:
        user_calls = conn.execute(
            "SELECT COALESCE(SUM(call_count), 0) FROM llm_usage WHERE user_id = ? AND call_date = ?",
            (user_id, today),
        ).fetchone()[0]
        global_calls = conn.execute(
            "SELECT COALESCE(SUM(call_count), 0) FROM llm_usage WHERE call_date = ?",
            (today,),
        ).fetchone()[0]

    reason = None
    if user_calls >= user_limit:
        reason = f"User daily limit exceeded ({user_calls}/{user_limit})"
    elif global_calls >= global_limit:
        reason = f"Global daily limit exceeded ({global_calls}/{global_limit})"

    return BudgetStatus(
        user_calls_today=user_calls,
        user_limit=user_limit,
        global_calls_today=global_calls,
        global_limit=global_limit,
        is_allowed=reason is None,
        reason=reason,
    )


@retry_on_db_lock()
def record_llm_call(user_id: str, call_type: str) -> None:
    """Increment today's counter for (user_id, call_type)."""
    today = date.today().isoformat()

    with db_transaction() as conn:
        conn.execute(
            """
            INSERT INTO llm_usage (user_id, call_type, call_date, call_count)
            VALUES (?, ?, ?, 1)
            ON CONFLICT(user_id, call_type, call_date)
            DO UPDATE SET call_count = call_count + 1
            """,
            (user_id, call_type, today),
        )

    counter(f"llm.budget.call.{call_type}")
    logger.debug("Recorded LLM call: type=%s", call_type)


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """USD estimate from the per-million-token price table."""
    input_price, output_price = LLM_MODEL_PRICES.get(model, LLM_DEFAULT_PRICE)
    cost = (prompt_tokens * input_price + completion_tokens * output_price) / 1_000_000
    return round(cost, 6)


@retry_on_db_lock()
def record_usage(
    function_name: str,
    model: str,
    prompt_tokens: int = 0,
    completion_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
) -> float:
    """
    Append an ai_usage_logs row and return its estimated cost.

    Side Effects:
        - Inserts into ai_usage_logs
        - Increments llm.usage.<status> counter
    """
    cost = estimate_cost(model, prompt_tokens, completion_tokens)

    with db_transaction() as conn:
        conn.execute(
            """
            INSERT INTO ai_usage_logs (
                function_name, model, prompt_tokens, completion_tokens,
                total_tokens, estimated_cost_usd, duration_ms, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                function_name,
                model,
                prompt_tokens,
                completion_tokens,
                prompt_tokens + completion_tokens,
                cost,
                duration_ms,
                status,
                datetime.now(UTC).isoformat(),
            ),
        )

    counter(f"llm.usage.{status}")
    return cost


def get_usage_summary(time_range: str = "7d", now: datetime | None = None) -> dict[str, Any]:
    """
    Aggregate ai_usage_logs for the admin dashboard.

    Args:
        time_range: One of 24h, 7d, 30d, all
        now: Reference time (tests)

    Raises:
        ValueError: Unknown time_range
    """
    if time_range not in USAGE_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")

    window = USAGE_RANGES[time_range]
    query = "SELECT * FROM ai_usage_logs"
    params: tuple[Any, ...] = ()
    if window is not None:
        since = (now or datetime.now(UTC)) - window
        query += " WHERE created_at >= ?"
        params = (since.isoformat(),)
    query += " ORDER BY created_at DESC LIMIT ?"
    params = (*params, USAGE_REPORT_ROW_LIMIT)

    with get_db_connection() as conn:
        logs = [dict(row) for row in conn.execute(query, params).fetchall()]

    total_calls = len(logs)
    total_cost = sum(log["estimated_cost_usd"] or 0 for log in logs)
    avg_duration = (
        sum(log["duration_ms"] or 0 for log in logs) / total_calls if total_calls else 0
    )
    error_count = sum(1 for log in logs if log["status"] == "error")

    by_function: dict[str, dict[str, float]] = defaultdict(
        lambda: {"calls": 0, "tokens": 0, "cost": 0.0, "duration": 0, "errors": 0}
    )
    by_model: dict[str, dict[str, float]] = defaultdict(lambda: {"calls": 0, "cost": 0.0})
    for log in logs:
        fn = by_function[log["function_name"]]
        fn["calls"] += 1
        fn["tokens"] += log["total_tokens"] or 0
        fn["cost"] += log["estimated_cost_usd"] or 0
        fn["duration"] += log["duration_ms"] or 0
        if log["status"] == "error":
            fn["errors"] += 1

        model = by_model[log["model"]]
        model["calls"] += 1
        model["cost"] += log["estimated_cost_usd"] or 0

    leaderboard = sorted(
        (
            {
                "name": name,
                **data,
                "avgDuration": data["duration"] / data["calls"] if data["calls"] else 0,
            }
            for name, data in by_function.items()
        ),
        key=lambda entry: entry["cost"],
        reverse=True,
    )
    most_expensive = (
        {"name": leaderboard[0]["name"], "cost": leaderboard[0]["cost"]} if leaderboard else None
    )

    return {
        "range": time_range,
        "totalCalls": total_calls,
        "totalCost": round(total_cost, 6),
        "avgDurationMs": avg_duration,
        "errorCount": error_count,
        "mostExpensive": most_expensive,
        "functions": leaderboard,
        "models": [
            {
                "name": name.replace("google/", "").replace("openai/", ""),
                **data,
            }
            for name, data in by_model.items()
        ],
    }
