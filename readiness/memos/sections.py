"""
Module: sections
Purpose: Turn questionnaire answers into per-section prompt material.

- group_responses(): question_key -> memo section, full key first, then the
  part before the first underscore
- build_financial_context(): metrics from unit_economics_json and friends,
  plus the customer counts needed for EUR 10M / 50M / 100M ARR
- normalize_vc_questions(): every vcReflection question becomes
  {question, vcRationale, whatToPrepare} with contextual defaults
"""

from __future__ import annotations

import json
import math
from typing import Any

from readiness.memos.models import MemoResponse
from readiness.observability.logging import get_logger

logger = get_logger(__name__)

SECTION_ORDER = [
    "Problem",
    "Solution",
    "Market",
    "Competition",
    "Team",
    "Business Model",
    "Traction",
    "Vision",
]
INVESTMENT_THESIS = "Investment Thesis"

FULL_KEY_SECTIONS = {
    "problem_core": "Problem",
    "solution_core": "Solution",
    "competitive_moat": "Competition",
    "team_story": "Team",
    "business_model": "Business Model",
    "traction_proof": "Traction",
    "vision_ask": "Vision",
}

PREFIX_SECTIONS = {
    "problem": "Problem",
    "solution": "Solution",
    "market": "Market",
    "target": "Market",
    "competition": "Competition",
    "competitors": "Competition",
    "competitive": "Competition",
    "team": "Team",
    "founder": "Team",
    "business": "Business Model",
    "revenue": "Business Model",
    "pricing": "Business Model",
    "unit": "Business Model",
    "average": "Business Model",
    "traction": "Traction",
    "retention": "Traction",
    "current": "Traction",
    "key": "Traction",
    "vision": "Vision",
}

# (field, label, prefix, suffix)
FINANCIAL_FIELDS = [
    ("mrr", "MRR", "€", ""),
    ("arr", "ARR", "€", ""),
    ("acv", "ACV (Avg Contract Value)", "€", ""),
    ("totalCustomers", "Total Customers", "", ""),
    ("cac", "CAC", "€", ""),
    ("ltv", "LTV", "€", ""),
    ("ltvCacRatio", "LTV:CAC Ratio", "", ""),
    ("paybackPeriod", "Payback Period", "", " months"),
    ("monthlyChurn", "Monthly Churn", "", "%"),
    ("grossMargin", "Gross Margin", "", "%"),
    ("monthlyBurn", "Monthly Burn", "€", ""),
    ("runway", "Runway", "", " months"),
    ("monthlyGrowth", "Monthly Growth", "", "%"),
]

ARR_TARGETS = [(10_000_000, "€10M"), (50_000_000, "€50M"), (100_000_000, "€100M")]

MARKET_SECTION_NOTE = (
    "\n\n**CRITICAL FOR MARKET SECTION:** You MUST include a bottoms-up analysis using the "
    "ACV data above. Calculate exactly how many customers are needed to reach €10M, €50M, "
    "and €100M ARR. This is essential for SOM sizing."
)

# (question keywords, section keywords, rationale); first match wins
RATIONALE_RULES: list[tuple[tuple[str, ...], tuple[str, ...], str]] = [
    (
        ("competitor", "differentiat"),
        ("competition",),
        "VCs invest in companies that can defend their position. Understanding competitive "
        "dynamics reveals whether you have a sustainable advantage or are in a race to the bottom.",
    ),
    (
        ("customer", "retention", "churn"),
        (),
        "Customer retention is the ultimate proof of value. High churn means your product isn't "
        "solving the problem well enough, regardless of how fast you acquire customers.",
    ),
    (
        ("revenue", "pricing", "monetiz"),
        ("business",),
        "Unit economics determine whether growth creates or destroys value. VCs need to see a "
        "path to profitability at scale.",
    ),
    (
        ("team", "founder", "hire"),
        ("team",),
        "VCs bet on teams, not just ideas. Execution capability and founder-market fit are often "
        "the difference between success and failure.",
    ),
    (
        ("market", "tam", "scale"),
        (),
        "Market size determines outcome potential. VCs need to believe this can be a "
        "fund-returning investment, which requires large addressable markets.",
    ),
    (
        ("traction", "growth", "metric"),
        (),
        "Traction is the best predictor of future success. VCs look for evidence of "
        "product-market fit through measurable, repeatable growth.",
    ),
]
DEFAULT_RATIONALE = (
    "This question probes a critical assumption that could make or break the investment thesis. "
    "VCs need concrete evidence, not promises."
)

PREPARATION_RULES: list[tuple[tuple[str, ...], str]] = [
    (
        ("why", "how"),
        "Prepare a clear, specific answer with concrete examples and data. Generic responses "
        "will raise red flags about depth of understanding.",
    ),
    (
        ("data", "metric", "number"),
        "Gather specific metrics with clear definitions and methodology. Show trends over time, "
        "not just snapshots. Include benchmarks for context.",
    ),
    (
        ("risk", "concern", "challenge"),
        "Acknowledge the risk honestly, then explain your mitigation strategy with specific "
        "actions and timelines. VCs respect founders who understand their vulnerabilities.",
    ),
    (
        ("competitor", "alternative"),
        "Create a detailed competitive matrix showing your differentiation. Include both direct "
        "competitors and alternative solutions customers currently use.",
    ),
]
DEFAULT_PREPARATION = (
    "Prepare specific evidence: customer testimonials, contracts, metrics, or third-party "
    "validation. Anecdotes without data will not satisfy skeptical investors."
)

GENERIC_RATIONALE = (
    "This question probes a critical assumption in the investment thesis. VCs need concrete "
    "evidence before committing capital."
)
GENERIC_PREPARATION = (
    "Prepare specific data, customer testimonials, or third-party validation to address this "
    "concern convincingly."
)

SUBSTANTIVE_TEXT_LENGTH = 50


def section_for_key(question_key: str) -> str | None:
    if question_key in FULL_KEY_SECTIONS:
        return FULL_KEY_SECTIONS[question_key]
    prefix = question_key.split("_", 1)[0]
    if not prefix:
        return None
    return PREFIX_SECTIONS.get(prefix.lower(), prefix[:1].upper() + prefix[1:])


def group_responses(responses: list[MemoResponse]) -> dict[str, dict[str, str]]:
    """{section: {question_key: answer}} in response order."""
    grouped: dict[str, dict[str, str]] = {}
    for response in responses:
        section = section_for_key(response.question_key)
        if section is None:
            continue
        grouped.setdefault(section, {})[response.question_key] = response.answer or ""
    return grouped


def combined_content(section_responses: dict[str, str]) -> str:
    return "\n\n".join(answer for answer in section_responses.values() if answer)


def _number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _format_amount(value: float) -> str:
    return str(int(value)) if value == int(value) else str(value)


def _customers_needed(acv: float, acv_label: str) -> list[str]:
    return [
        f"\n- At €{acv_label} ACV: {math.ceil(target / acv):,} customers needed for {label} ARR"
        for target, label in ARR_TARGETS
    ]


def parse_financial_metrics(answers: dict[str, str]) -> dict[str, Any] | None:
    raw = answers.get("unit_economics_json")
    if not raw:
        return None
    try:
        metrics = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse unit_economics_json: %s", e)
        return None
    return metrics if isinstance(metrics, dict) else None


def _bottoms_up_lines(metrics: dict[str, Any] | None) -> list[str]:
    if not metrics:
        return []
    customers = _number(metrics.get("customers") or metrics.get("totalCustomers"))
    acv = _number(metrics.get("acv"))
    if acv:
        label = _format_amount(acv)
        return [f"\n- ACV (Average Contract Value): €{label}", *_customers_needed(acv, label)]

    arr = _number(metrics.get("arr"))
    if arr and customers and customers > 0:
        calculated = arr / customers
        return [
            f"\n- Current customers: {_format_amount(customers)}",
            f"\n- Current ARR: €{_format_amount(arr)}",
            f"\n- Calculated ACV (ARR/customers): €{calculated:.0f}",
            *_customers_needed(calculated, f"{calculated:.0f}"),
        ]

    mrr = _number(metrics.get("mrr"))
    if mrr and customers and customers > 0:
        implied_arr = mrr * 12
        calculated = implied_arr / customers
        return [
            f"\n- Current customers: {_format_amount(customers)}",
            f"\n- Implied ARR (MRR x 12): €{_format_amount(implied_arr)}",
            f"\n- Calculated ACV: €{calculated:.0f}",
            *_customers_needed(calculated, f"{calculated:.0f}"),
        ]
    return []


def build_financial_context(responses: list[MemoResponse]) -> str:
    """
    Financial data block appended to every section prompt.

    Empty when no financial answers exist. Structured metrics win over the
    free-text unit_economics answer.
    """
    answers = {r.question_key: r.answer or "" for r in responses}
    metrics = parse_financial_metrics(answers)
    unit_economics = answers.get("unit_economics", "")
    pricing = answers.get("pricing_model", "")
    revenue = answers.get("revenue_model", "")

    if not (metrics or unit_economics or pricing or revenue):
        return ""

    parts = ["\n\n--- COMPANY FINANCIAL DATA (use for calculations) ---"]
    if metrics:
        for field, label, prefix, suffix in FINANCIAL_FIELDS:
            if metrics.get(field):
                parts.append(f"\n{label}: {prefix}{metrics[field]}{suffix}")
    if unit_economics and not metrics:
        parts.append(f"\nUnit Economics: {unit_economics}")
    if pricing:
        parts.append(f"\nPricing Model: {pricing}")
    if revenue:
        parts.append(f"\nRevenue Model: {revenue}")

    parts.append("\n\n**BOTTOMS-UP CALCULATION GUIDANCE:**")
    parts.extend(_bottoms_up_lines(metrics))
    parts.append("\n--- END FINANCIAL DATA ---")
    return "".join(parts)


def section_financial_context(section: str, financial_context: str) -> str:
    if section == "Market" and financial_context:
        return financial_context + MARKET_SECTION_NOTE
    return financial_context


def question_rationale(question: str, section: str | None = None) -> str:
    q = question.lower()
    s = (section or "").lower()
    for question_words, section_words, rationale in RATIONALE_RULES:
        if any(w in q for w in question_words) or any(w in s for w in section_words):
            return rationale
    return DEFAULT_RATIONALE


def question_preparation(question: str) -> str:
    q = question.lower()
    for words, preparation in PREPARATION_RULES:
        if any(w in q for w in words):
            return preparation
    return DEFAULT_PREPARATION


def _substantive(value: Any) -> bool:
    return isinstance(value, str) and len(value) > SUBSTANTIVE_TEXT_LENGTH


def normalize_vc_questions(questions: Any, section: str | None = None) -> list[dict[str, str]]:
    """
    Upgrade questions to {question, vcRationale, whatToPrepare}.

    Substantive rationale/preparation text from the model is kept; short or
    missing text is replaced by a keyword-matched default.
    """
    if not isinstance(questions, list):
        return []

    normalized = []
    for index, item in enumerate(questions):
        if isinstance(item, dict) and item.get("question"):
            question = str(item["question"])
            normalized.append(
                {
                    "question": question,
                    "vcRationale": item["vcRationale"]
                    if _substantive(item.get("vcRationale"))
                    else question_rationale(question, section),
                    "whatToPrepare": item["whatToPrepare"]
                    if _substantive(item.get("whatToPrepare"))
                    else question_preparation(question),
                }
            )
        elif isinstance(item, str):
            normalized.append(
                {
                    "question": item,
                    "vcRationale": question_rationale(item, section),
                    "whatToPrepare": question_preparation(item),
                }
            )
        else:
            normalized.append(
                {
                    "question": f"Key question {index + 1}",
                    "vcRationale": GENERIC_RATIONALE,
                    "whatToPrepare": GENERIC_PREPARATION,
                }
            )
    return normalized


def normalize_section_questions(content: dict[str, Any], section: str | None = None) -> dict[str, Any]:
    reflection = content.get("vcReflection")
    if isinstance(reflection, dict) and reflection.get("questions"):
        reflection["questions"] = normalize_vc_questions(reflection["questions"], section)
    return content
