"""
Shared route helpers: LLM budget enforcement and gateway error mapping.
"""

from __future__ import annotations

from fastapi import HTTPException

from readiness.api.middleware.user_auth import AuthenticatedUser
from readiness.infrastructure.llm_budget import check_budget, record_llm_call
from readiness.llm.gateway import CreditsExhaustedError, GatewayError, RateLimitedError
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.error_sanitizer import sanitize_error_message
from readiness.utils.redaction import redact

logger = get_logger(__name__)


def enforce_llm_budget(user: AuthenticatedUser | None, call_type: str) -> None:
    """
    Count an LLM-backed call against a signed-in user's daily budget.

    Anonymous callers are only limited by RateLimitMiddleware.

    Raises:
        HTTPException: 429 when the user or global daily limit is reached
    """
    if user is None:
        return
    budget = check_budget(user.id)
    if not budget.is_allowed:
        counter("llm.budget.rejected")
        logger.warning("LLM budget exceeded for %s: %s", redact(user.id), budget.reason)
        raise HTTPException(
            status_code=429,
            detail="Daily AI usage limit reached. Please try again tomorrow.",
        )
    record_llm_call(user.id, call_type)


def gateway_http_error(error: GatewayError) -> HTTPException:
    """HTTPException for a failed gateway call; 429 and 402 keep their message."""
    if isinstance(error, (RateLimitedError, CreditsExhaustedError)):
        return HTTPException(status_code=error.status_code, detail=str(error))
    logger.error("AI gateway error (status=%d): %s", error.status_code, error)
    return HTTPException(
        status_code=error.status_code,
        detail=sanitize_error_message(str(error), error.status_code),
    )
