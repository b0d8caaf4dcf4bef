"""
Primary revenue metric estimate (ARPU, ACV, take rate...).

The model proposes a value with comparables and a range. When the reply is
not usable a benchmark table scaled by stage is returned instead, flagged as
low confidence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from readiness.llm.gateway import AIGateway, GatewayError
from readiness.llm.parsing import extract_json
from readiness.llm.prompts import render_prompt
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.rounding import round_int

logger = get_logger(__name__)

# (value, low, high) per business model
FALLBACK_BENCHMARKS: dict[str, tuple[float, float, float]] = {
    "b2c_subscription": (10, 5, 20),  # monthly ARPU
    "b2c_transactional": (100, 50, 200),  # annual ARPU
    "b2b_smb_saas": (6000, 2000, 12000),  # annual ACV
    "b2b_mid_market": (40000, 20000, 75000),
    "b2b_enterprise": (150000, 75000, 300000),
    "marketplace": (15, 10, 25),  # take rate %
    "fintech_aum": (50, 25, 100),  # basis points
}
DEFAULT_BENCHMARK = (10000, 5000, 25000)

STAGE_MULTIPLIERS = {
    "pre-seed": 0.6,
    "seed": 0.85,
    "series-a": 1.1,
}


@dataclass
class MetricEstimateRequest:
    company_name: str
    category: str
    stage: str
    business_model_type: str
    currency: str
    primary_metric_label: str
    icp_description: str | None = None
    pricing_hints: str | None = None


def fallback_estimate(request: MetricEstimateRequest) -> dict[str, Any]:
    value, low, high = FALLBACK_BENCHMARKS.get(request.business_model_type, DEFAULT_BENCHMARK)
    multiplier = STAGE_MULTIPLIERS.get(request.stage, 1)
    return {
        "value": round_int(value * multiplier),
        "currency": request.currency,
        "confidence": "low",
        "reasoning": (
            f"Fallback estimate based on typical {request.business_model_type} metrics at "
            f"{request.stage} stage. Founder input would improve accuracy."
        ),
        "comparables": [],
        "range": {"low": round_int(low * multiplier), "high": round_int(high * multiplier)},
        "methodology": "Industry benchmark fallback - no specific data available",
    }


def estimate_primary_metric(gateway: AIGateway, request: MetricEstimateRequest) -> dict[str, Any]:
    """
    Raises:
        GatewayError: gateway failure, or a reply with no content
    """
    optional = ""
    if request.icp_description:
        optional += f"Target Customer: {request.icp_description}\n"
    if request.pricing_hints:
        optional += f"Pricing Signals: {request.pricing_hints}\n"

    reply = gateway.chat(
        [
            {"role": "system", "content": render_prompt("metric_estimate_system")},
            {
                "role": "user",
                "content": render_prompt(
                    "metric_estimate_user",
                    metric_label=request.primary_metric_label,
                    company_name=request.company_name,
                    category=request.category,
                    stage=request.stage,
                    business_model=request.business_model_type,
                    optional_context=optional,
                    currency=request.currency,
                ),
            },
        ],
        function_name="estimate-primary-metric",
    )
    if not reply.content:
        raise GatewayError("No content in AI response", status_code=502)

    try:
        estimate = extract_json(reply.content)
        estimate["currency"] = request.currency
    except ValueError:
        counter("assessments.metric.fallback")
        logger.warning("Metric estimate reply unparseable, using benchmark fallback")
        estimate = fallback_estimate(request)

    logger.info(
        "Estimated %s: %s %s (%s confidence)",
        request.primary_metric_label,
        estimate.get("value"),
        request.currency,
        estimate.get("confidence"),
    )
    return estimate
