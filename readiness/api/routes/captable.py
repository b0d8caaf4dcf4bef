"""
Cap table endpoints: round simulation and the starter table.

Stateless; nothing is stored.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from readiness.captable.dilution import create_default_cap_table, simulate_round
from readiness.captable.models import CapTable, FundingRound
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/captable", tags=["captable"])
logger = get_logger(__name__)


class SimulateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cap_table: CapTable = Field(..., alias="capTable")
    round: FundingRound


@router.post("/simulate")
def simulate(request: SimulateRequest) -> dict[str, Any]:
    """Apply one funding round to a cap table and report dilution per stakeholder."""
    try:
        result = simulate_round(request.cap_table, request.round)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Round simulation failed: %s", e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None

    counter("captable.simulations")
    return result.model_dump(by_alias=True)


@router.get("/default")
def default_cap_table() -> dict[str, Any]:
    return create_default_cap_table().model_dump(by_alias=True)
