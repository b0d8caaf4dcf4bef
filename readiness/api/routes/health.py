"""Health check endpoints for the Readiness API.

- /health - service status and AI gateway credential presence
- /health/db - schema check and connection pool usage
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from readiness.config import APP_VERSION, SERVICE_NAME
from readiness.infrastructure.database import get_pool_stats, validate_schema
from readiness.observability.logging import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)

POOL_DEGRADED_PERCENT = 80


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status and version. Checks gateway key presence only, no API call."""
    has_gateway_key = bool(os.getenv("LOVABLE_API_KEY"))

    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {"ready": has_gateway_key},
    }


@router.get("/health/db")
def database_health() -> dict[str, Any]:
    stats = get_pool_stats()
    try:
        validate_schema()
    except ValueError as e:
        logger.error("Schema check failed: %s", e)
        return {"status": "unhealthy", "pool": stats, "warning": "Schema check failed"}

    degraded = stats["usage_percent"] > POOL_DEGRADED_PERCENT
    return {
        "status": "degraded" if degraded else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if degraded else None,
    }
