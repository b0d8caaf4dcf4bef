"""
Assessment endpoints backed by the AI gateway.

- POST /api/assessments/vc-verdict - quick partner-meeting diagnostic
- POST /api/assessments/roast-verdict - verdict for a finished roast
- POST /api/assessments/primary-metric - estimate a primary business metric
- POST /api/assessments/consistency - contradictions between answers

Signed-in callers are charged against their daily LLM budget. Gateway 429
and 402 pass through unchanged.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readiness.api.dependencies import enforce_llm_budget, gateway_http_error
from readiness.api.middleware.user_auth import AuthenticatedUser, get_optional_user
from readiness.assessments.consistency import check_answer_consistency
from readiness.assessments.metrics import MetricEstimateRequest, estimate_primary_metric
from readiness.assessments.roast import generate_roast_verdict
from readiness.assessments.vc_verdict import generate_vc_verdict
from readiness.llm.gateway import AIGateway, GatewayError, get_gateway
from readiness.observability.logging import get_logger
from readiness.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/assessments", tags=["assessments"])
logger = get_logger(__name__)


# ============================================================================
# Request Models
# ============================================================================


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionAnswer(BaseModel):
    question_key: str
    answer: str | None = None


class VCVerdictRequest(_CamelRequest):
    company_name: str | None = None
    company_description: str | None = None
    stage: str | None = None
    category: str | None = None
    responses: list[QuestionAnswer] = Field(default_factory=list)
    forced_founder_profile: str | None = None


class RoastResult(BaseModel):
    category: str
    score: float = Field(..., ge=0, le=10)
    question: str | None = None
    answer: str | None = None
    roast: str | None = None


class RoastVerdictRequest(_CamelRequest):
    results: list[RoastResult] | None = None
    company_name: str | None = None
    total_time: float | None = None


class PrimaryMetricRequest(_CamelRequest):
    company_name: str
    category: str
    stage: str
    business_model_type: str
    currency: str = "EUR"
    primary_metric_label: str
    icp_description: str | None = None
    pricing_hints: str | None = None


class ConsistencyRequest(_CamelRequest):
    company_id: str | None = None
    current_question_key: str | None = None
    all_responses: dict[str, Any] | None = None


def _internal_error(action: str, error: Exception) -> HTTPException:
    logger.error("Failed to %s: %s", action, error)
    return HTTPException(status_code=500, detail=sanitize_error_message(str(error), 500))


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/vc-verdict")
def vc_verdict(
    request: VCVerdictRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict[str, Any]:
    enforce_llm_budget(user, "vc_verdict")
    try:
        return generate_vc_verdict(
            gateway,
            request.company_name,
            company_description=request.company_description,
            stage=request.stage,
            category=request.category,
            responses=[r.model_dump() for r in request.responses],
            forced_founder_profile=request.forced_founder_profile,
        )
    except GatewayError as e:
        raise gateway_http_error(e) from None
    except Exception as e:
        raise _internal_error("generate VC verdict", e) from None


@router.post("/roast-verdict")
def roast_verdict(
    request: RoastVerdictRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict[str, Any]:
    if not request.results:
        raise HTTPException(status_code=400, detail="Results array is required")
    enforce_llm_budget(user, "roast_verdict")
    try:
        return generate_roast_verdict(
            gateway,
            [r.model_dump() for r in request.results],
            company_name=request.company_name,
            total_time=request.total_time,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except GatewayError as e:
        raise gateway_http_error(e) from None
    except Exception as e:
        raise _internal_error("generate roast verdict", e) from None


@router.post("/primary-metric")
def primary_metric(
    request: PrimaryMetricRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict[str, Any]:
    enforce_llm_budget(user, "primary_metric")
    try:
        return estimate_primary_metric(
            gateway,
            MetricEstimateRequest(
                company_name=request.company_name,
                category=request.category,
                stage=request.stage,
                business_model_type=request.business_model_type,
                currency=request.currency,
                primary_metric_label=request.primary_metric_label,
                icp_description=request.icp_description,
                pricing_hints=request.pricing_hints,
            ),
        )
    except GatewayError as e:
        raise gateway_http_error(e) from None
    except Exception as e:
        raise _internal_error("estimate primary metric", e) from None


@router.post("/consistency")
def consistency(
    request: ConsistencyRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    gateway: AIGateway = Depends(get_gateway),
) -> dict[str, Any]:
    if not request.company_id or not request.current_question_key or request.all_responses is None:
        raise HTTPException(status_code=400, detail="Missing required fields")
    enforce_llm_budget(user, "consistency")
    try:
        return check_answer_consistency(
            gateway,
            request.company_id,
            request.current_question_key,
            request.all_responses,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except GatewayError as e:
        raise gateway_http_error(e) from None
    except Exception as e:
        raise _internal_error("check answer consistency", e) from None
