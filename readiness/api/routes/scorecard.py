"""
Scoring endpoints: holistic scorecard and memo reconciliation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readiness.scoring.reconciliation import reconcile_memo
from readiness.scoring.scorecard import generate_holistic_scorecard

router = APIRouter(prefix="/api/scorecard", tags=["scorecard"])


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScorecardRequest(_CamelRequest):
    section_scores: dict[str, dict[str, Any]]
    company_name: str = Field(..., min_length=1)
    stage: str = "Pre-Seed"
    category: str | None = None
    dynamic_verdicts: dict[str, dict[str, str]] | None = None


class ReconcileRequest(_CamelRequest):
    sections: list[dict[str, Any]]
    vc_quick_take: dict[str, Any] | None = None
    section_scores: dict[str, dict[str, Any]] | None = None
    coherence_flags: list[dict[str, Any]] | None = None


@router.post("")
def holistic_scorecard(request: ScorecardRequest) -> dict[str, Any]:
    return generate_holistic_scorecard(
        request.section_scores,
        request.company_name,
        request.stage,
        request.category,
        request.dynamic_verdicts,
    )


@router.post("/reconcile")
def reconcile(request: ReconcileRequest) -> dict[str, Any]:
    """Check a memo's scores against its narrative and verdict."""
    return reconcile_memo(
        request.sections,
        request.vc_quick_take,
        request.section_scores,
        request.coherence_flags,
    )
