"""
Admin endpoints (API key protected): AI usage, database stats and WAL checkpointing.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from readiness.api.middleware.auth import require_admin_auth
from readiness.infrastructure.database import checkpoint_wal, execute_query, get_pool_stats
from readiness.infrastructure.llm_budget import get_usage_summary
from readiness.observability.telemetry import get_all_latency_stats, get_counters

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin_auth)])

COUNTED_TABLES = ("companies", "memos", "bookings", "investor_contacts", "cohorts", "llm_usage")


@router.get("/ai-usage")
def ai_usage(time_range: str = Query("7d", alias="range")) -> dict[str, Any]:
    """Gateway call count, cost and latency for 24h, 7d, 30d or all."""
    try:
        return get_usage_summary(time_range)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None


@router.get("/db-stats")
def db_stats() -> dict[str, Any]:
    # Table names come from COUNTED_TABLES only
    rows = {table: execute_query(f"SELECT COUNT(*) FROM {table}", fetch="one")[0] for table in COUNTED_TABLES}
    return {
        "pool": get_pool_stats(),
        "rows": rows,
        "counters": get_counters(),
        "latency": get_all_latency_stats(),
    }


@router.post("/checkpoint-wal")
def wal_checkpoint() -> dict[str, Any]:
    return checkpoint_wal()
