"""
Memo service - company ownership checks, job start and job polling.

Generation itself runs in MemoGenerator; start_generation() only decides
whether a new job is needed and creates it. The caller schedules
MemoGenerator.run() (FastAPI BackgroundTasks in the API).
"""

from __future__ import annotations

from typing import Any

from readiness.config import DEMO_COMPANY_ID
from readiness.memos.jobs import describe_job
from readiness.memos.models import Company, JobStatus, MemoJob, MemoResponse
from readiness.memos.repository import CompanyRepository, MemoRepository
from readiness.memos.sections import INVESTMENT_THESIS
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event

logger = get_logger(__name__)

MIN_CACHED_SECTIONS = 8


class MemoJobError(Exception):
    """Base exception for memo operations."""

    status_code = 400


class AuthenticationRequiredError(MemoJobError):
    status_code = 401


class AccessDeniedError(MemoJobError):
    status_code = 403


class CompanyNotFoundError(MemoJobError):
    status_code = 404


class JobNotFoundError(MemoJobError):
    status_code = 404


def is_demo_company(company_id: str) -> bool:
    return company_id == DEMO_COMPANY_ID


def load_owned_company(company_id: str, user_id: str | None, allow_demo: bool = False) -> Company:
    """
    Company the caller may act on.

    Raises:
        AuthenticationRequiredError: No user and the company is not the demo
        CompanyNotFoundError: Unknown company
        AccessDeniedError: The caller is not the founder
    """
    demo = allow_demo and is_demo_company(company_id)
    if user_id is None and not demo:
        raise AuthenticationRequiredError("Authentication required")

    company = CompanyRepository.get(company_id)
    if company is None:
        raise CompanyNotFoundError("Company not found")
    if not demo and company.founder_id != user_id:
        logger.warning("Access denied: user does not own company %s", company_id)
        raise AccessDeniedError("Access denied")
    return company


def create_company(
    founder_id: str,
    name: str,
    stage: str = "Pre-Seed",
    category: str | None = None,
    description: str | None = None,
) -> Company:
    company = CompanyRepository.create(founder_id, name, stage, category, description)
    counter("memos.company_created")
    return company


def save_responses(company_id: str, user_id: str, responses: list[MemoResponse]) -> int:
    load_owned_company(company_id, user_id)
    return CompanyRepository.upsert_responses(company_id, responses)


def _has_enhanced_questions(section: dict[str, Any]) -> bool:
    questions = (section.get("vcReflection") or {}).get("questions")
    if not questions:
        return True
    return all(isinstance(q, dict) and q.get("vcRationale") and q.get("whatToPrepare") for q in questions)


def is_complete_memo(content: dict[str, Any] | None) -> bool:
    """
    True when a stored memo can be served instead of regenerating.

    Complete means at least MIN_CACHED_SECTIONS sections including the
    Investment Thesis, a VC Quick Take, and every vcReflection question in
    {question, vcRationale, whatToPrepare} form.
    """
    if not content:
        return False
    sections = content.get("sections")
    if not isinstance(sections, list) or len(sections) < MIN_CACHED_SECTIONS:
        return False
    if not any(isinstance(s, dict) and s.get("title") == INVESTMENT_THESIS for s in sections):
        return False
    if not content.get("vcQuickTake"):
        return False
    return all(isinstance(s, dict) and _has_enhanced_questions(s) for s in sections)


def start_generation(
    company_id: str, user_id: str | None, force: bool = False
) -> tuple[dict[str, Any], MemoJob | None]:
    """
    Start memo generation unless a complete memo or a running job exists.

    Without force, a complete stored memo is returned as
    {status: "completed", fromCache: true, structuredContent, company, memoId}.
    The demo company may be regenerated without authentication.

    Returns:
        (response payload, the new job or None when a cached memo or an
        in-flight job was reused)

    Raises:
        MemoJobError subclasses (see load_owned_company)
    """
    if not company_id:
        raise MemoJobError("Company ID is required")
    company = load_owned_company(company_id, user_id, allow_demo=True)

    if not force:
        memo = MemoRepository.get_latest(company_id)
        if memo is not None and is_complete_memo(memo.structured_content):
            counter("memos.cache_hit")
            logger.info("Returning cached memo %s for company %s", memo.id, company_id)
            return (
                {
                    "status": JobStatus.COMPLETED.value,
                    "fromCache": True,
                    "structuredContent": memo.structured_content,
                    "company": company.summary(),
                    "memoId": memo.id,
                },
                None,
            )

    existing = MemoRepository.get_in_flight_job(company_id)
    if existing is not None and not force:
        logger.info("Reusing in-flight memo job %s", existing.id)
        return (
            {
                "jobId": existing.id,
                "status": existing.status,
                "message": "Generation already in progress",
            },
            None,
        )

    job = MemoRepository.create_job(company_id)
    log_event("memos.job_started", job_id=job.id, company_id=company_id, force=force)
    return (
        {"jobId": job.id, "status": job.status, "message": "Memo generation started"},
        job,
    )


def get_job_status(job_id: str, user_id: str | None) -> dict[str, Any]:
    """
    Poll a job.

    Raises:
        JobNotFoundError: Unknown job
        CompanyNotFoundError, AccessDeniedError, AuthenticationRequiredError
    """
    if not job_id:
        raise MemoJobError("Job ID is required")
    job = MemoRepository.get_job(job_id)
    if job is None:
        raise JobNotFoundError("Job not found")

    company = load_owned_company(job.company_id, user_id, allow_demo=True)
    memo = MemoRepository.get_latest(company.id) if job.status == JobStatus.COMPLETED.value else None
    return describe_job(job, company, memo)
