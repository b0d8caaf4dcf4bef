"""
Investor endpoints: contact import with deduplication and startup matching.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readiness.api.middleware.user_auth import AuthenticatedUser, get_current_user
from readiness.config import API_IMPORT_BATCH_MAX
from readiness.investors.affinity import StartupProfile
from readiness.investors.models import ParsedContact
from readiness.investors.service import import_contacts, match_investors
from readiness.observability.logging import get_logger
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/investors", tags=["investors"])
logger = get_logger(__name__)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportRequest(_CamelRequest):
    contacts: list[ParsedContact] = Field(..., min_length=1, max_length=API_IMPORT_BATCH_MAX)
    dry_run: bool = False


class MatchRequest(_CamelRequest):
    stage: str | None = None
    category: str | None = None
    sector: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    funding_ask: float | None = Field(default=None, ge=0)
    has_revenue: bool = False
    has_customers: bool = False
    current_arr: float | None = Field(default=None, ge=0)
    limit: int = Field(default=20, ge=1, le=100)
    min_percentage: int = Field(default=0, ge=0, le=100)


@router.post("/import")
def import_batch(
    request: ImportRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """
    Deduplicate contacts against stored investors and save the result.

    With dryRun the classification is returned and nothing is written.
    """
    try:
        return import_contacts(request.contacts, dry_run=request.dry_run)
    except Exception as e:
        logger.error("Failed to import contacts: %s", e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None


@router.post("/match")
def match(
    request: MatchRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    startup = StartupProfile(
        stage=request.stage,
        category=request.category,
        sector=request.sector,
        keywords=request.keywords,
        funding_ask=request.funding_ask,
        has_revenue=request.has_revenue,
        has_customers=request.has_customers,
        current_arr=request.current_arr,
    )
    matches = match_investors(startup, limit=request.limit, min_percentage=request.min_percentage)
    return {"matches": matches, "count": len(matches)}
