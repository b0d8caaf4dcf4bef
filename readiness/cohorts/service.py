"""
Cohort service - ownership checks around the cohort repository and analytics.
"""

from __future__ import annotations

from typing import Any

from readiness.cohorts.analytics import CohortCompany, accelerator_stats, readiness_overview
from readiness.cohorts.repository import CohortRepository
from readiness.memos.repository import CompanyRepository, MemoRepository
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter

logger = get_logger(__name__)

DEFAULT_ACCELERATOR_NAME = "My Accelerator"


class CohortError(Exception):
    status_code = 400


class CohortNotFoundError(CohortError):
    status_code = 404


class CohortAccessDeniedError(CohortError):
    status_code = 403


class CohortCompanyNotFoundError(CohortError):
    status_code = 404


def create_cohort(owner_id: str, name: str, accelerator_name: str | None = None) -> dict[str, Any]:
    """Create a cohort under the owner's accelerator, creating the accelerator on first use."""
    if not name or not name.strip():
        raise CohortError("Cohort name is required")
    accelerator = CohortRepository.get_accelerator_for_owner(owner_id)
    if accelerator is None:
        accelerator = CohortRepository.create_accelerator(
            owner_id, accelerator_name or DEFAULT_ACCELERATOR_NAME
        )
    cohort = CohortRepository.create_cohort(accelerator["id"], name.strip())
    counter("cohorts.created")
    return {**cohort, "accelerator": {"id": accelerator["id"], "name": accelerator["name"]}}


def load_owned_cohort(cohort_id: str, owner_id: str) -> dict[str, Any]:
    cohort = CohortRepository.get_cohort(cohort_id)
    if cohort is None:
        raise CohortNotFoundError("Cohort not found")
    if cohort["owner_id"] != owner_id:
        raise CohortAccessDeniedError("Access denied")
    return cohort


def add_member(cohort_id: str, owner_id: str, company_id: str) -> dict[str, Any]:
    load_owned_cohort(cohort_id, owner_id)
    if CompanyRepository.get(company_id) is None:
        raise CohortCompanyNotFoundError("Company not found")
    added = CohortRepository.add_member(cohort_id, company_id)
    return {"cohortId": cohort_id, "companyId": company_id, "added": added}


def remove_member(cohort_id: str, owner_id: str, company_id: str) -> dict[str, Any]:
    load_owned_cohort(cohort_id, owner_id)
    if not CohortRepository.remove_member(cohort_id, company_id):
        raise CohortCompanyNotFoundError("Company is not in this cohort")
    return {"cohortId": cohort_id, "companyId": company_id, "removed": True}


def _members(cohort_id: str) -> list[CohortCompany]:
    company_ids = CohortRepository.list_member_ids(cohort_id)
    companies = CompanyRepository.get_many(company_ids)
    memos = MemoRepository.get_latest_for_companies(company_ids)
    return [CohortCompany.from_records(c, memos.get(c.id)) for c in companies]


def get_overview(cohort_id: str, owner_id: str) -> dict[str, Any]:
    cohort = load_owned_cohort(cohort_id, owner_id)
    return {
        "cohort": {"id": cohort["id"], "name": cohort["name"]},
        **readiness_overview(_members(cohort_id)),
    }


def get_stats(cohort_id: str, owner_id: str) -> dict[str, Any]:
    cohort = load_owned_cohort(cohort_id, owner_id)
    return {
        "cohort": {"id": cohort["id"], "name": cohort["name"]},
        **accelerator_stats(_members(cohort_id)),
    }
