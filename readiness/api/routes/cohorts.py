"""
Cohort endpoints for accelerator owners.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readiness.api.middleware.user_auth import AuthenticatedUser, get_current_user
from readiness.cohorts import service
from readiness.cohorts.service import CohortError
from readiness.observability.logging import get_logger

router = APIRouter(prefix="/api/cohorts", tags=["cohorts"])
logger = get_logger(__name__)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCohortRequest(_CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    accelerator_name: str | None = Field(default=None, max_length=200)


class AddMemberRequest(_CamelRequest):
    company_id: str


def _cohort_error(error: CohortError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))


@router.post("", status_code=201)
def create_cohort(
    request: CreateCohortRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    try:
        return service.create_cohort(user.id, request.name, request.accelerator_name)
    except CohortError as e:
        raise _cohort_error(e) from None


@router.post("/{cohort_id}/members")
def add_member(
    cohort_id: str,
    request: AddMemberRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    try:
        return service.add_member(cohort_id, user.id, request.company_id)
    except CohortError as e:
        raise _cohort_error(e) from None


@router.delete("/{cohort_id}/members/{company_id}")
def remove_member(
    cohort_id: str,
    company_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    try:
        return service.remove_member(cohort_id, user.id, company_id)
    except CohortError as e:
        raise _cohort_error(e) from None


@router.get("/{cohort_id}/overview")
def overview(
    cohort_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Latest scorecard per member company, with counts by readiness."""
    try:
        return service.get_overview(cohort_id, user.id)
    except CohortError as e:
        raise _cohort_error(e) from None


@router.get("/{cohort_id}/stats")
def stats(
    cohort_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Score bands, section averages and score distribution for the cohort."""
    try:
        return service.get_stats(cohort_id, user.id)
    except CohortError as e:
        raise _cohort_error(e) from None
