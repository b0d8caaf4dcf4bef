"""
Company endpoints: create a company and manage its questionnaire answers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from readiness.api.middleware.user_auth import AuthenticatedUser, get_current_user
from readiness.memos.models import MemoResponse
from readiness.memos.repository import CompanyRepository
from readiness.memos.service import MemoJobError, create_company, load_owned_company, save_responses
from readiness.observability.logging import get_logger
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/companies", tags=["companies"])
logger = get_logger(__name__)


class CreateCompanyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    stage: str = "Pre-Seed"
    category: str | None = None
    description: str | None = Field(default=None, max_length=5000)


class ResponsesRequest(BaseModel):
    responses: list[MemoResponse] = Field(..., max_length=500)


@router.post("", status_code=201)
def create(
    request: CreateCompanyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    company = create_company(
        user.id, request.name.strip(), request.stage, request.category, request.description
    )
    return company.model_dump(mode="json")


@router.get("/{company_id}")
def get_company(
    company_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """The company with its questionnaire answers."""
    try:
        company = load_owned_company(company_id, user.id)
    except MemoJobError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
    return {
        **company.model_dump(mode="json"),
        "responses": [r.model_dump() for r in CompanyRepository.list_responses(company_id)],
    }


@router.put("/{company_id}/responses")
def put_responses(
    company_id: str,
    request: ResponsesRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Upsert answers by question_key."""
    try:
        saved = save_responses(company_id, user.id, request.responses)
    except MemoJobError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
    except Exception as e:
        logger.error("Failed to save responses: %s", e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None
    return {"success": True, "saved": saved}
