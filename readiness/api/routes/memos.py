"""
Memo generation endpoints.

Generation runs as a background task; clients poll the job until it is
completed or failed. The demo company works without authentication.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from readiness.api.dependencies import enforce_llm_budget
from readiness.api.middleware.user_auth import AuthenticatedUser, get_optional_user
from readiness.llm.gateway import AIGateway, get_gateway
from readiness.memos.generator import MemoGenerator
from readiness.memos.repository import MemoRepository
from readiness.memos.service import MemoJobError, get_job_status, start_generation
from readiness.observability.logging import get_logger
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/memos", tags=["memos"])
logger = get_logger(__name__)


class GenerateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_id: str
    force: bool = False


@router.post("/generate", status_code=202)
def generate(
    request: GenerateRequest,
    background_tasks: BackgroundTasks,
    response: Response,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """
    Start (or join) memo generation for a company.

    Returns {jobId, status, message}, or the stored memo with fromCache (200)
    when a complete one exists and force is not set.
    """
    user_id = user.id if user else None
    try:
        payload, job = start_generation(request.company_id, user_id, request.force)
    except MemoJobError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
    except Exception as e:
        logger.error("Failed to start memo generation: %s", e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None

    if payload.get("fromCache"):
        response.status_code = 200
    if job is not None:
        try:
            enforce_llm_budget(user, "memo")
        except HTTPException as e:
            MemoRepository.finish_job(job.id, error_message=e.detail)
            raise
        background_tasks.add_task(MemoGenerator(gateway).run, request.company_id, job.id)
    return payload


@router.get("/jobs/{job_id}")
def job_status(
    job_id: str,
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> dict[str, Any]:
    try:
        return get_job_status(job_id, user.id if user else None)
    except MemoJobError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
    except Exception as e:
        logger.error("Failed to read memo job %s: %s", job_id, e)
        raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None
