"""
Final verdict for the "VC roast" game.

The founder has answered a set of rapid-fire investor questions, each scored
0-10 by category. This module aggregates the scores and asks the model for a
verdict; unparseable replies fall back to a score-based verdict.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from readiness.llm.gateway import AIGateway
from readiness.llm.parsing import extract_json
from readiness.llm.prompts import render_prompt
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.rounding import round_half_up, round_int

logger = get_logger(__name__)

ANSWER_EXCERPT_CHARS = 150


def category_breakdown(results: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Average score per category (one decimal), in first-seen order."""
    totals: dict[str, list[float]] = defaultdict(list)
    for result in results:
        totals[result["category"]].append(result["score"])
    return [
        {
            "category": category,
            "score": round_half_up(sum(scores) / len(scores), 1),
            "maxScore": 10,
        }
        for category, scores in totals.items()
    ]


def weakest_areas(breakdown: list[dict[str, Any]], limit: int = 3) -> list[str]:
    return [entry["category"] for entry in sorted(breakdown, key=lambda e: e["score"])[:limit]]


def investor_readiness(total_score: float) -> str:
    if total_score >= 85:
        return "investor_ready"
    if total_score >= 70:
        return "almost_ready"
    if total_score >= 50:
        return "getting_there"
    return "not_ready"


def fallback_roast_verdict(total_score: float) -> dict[str, Any]:
    strong = total_score >= 70
    return {
        "verdictTitle": "Solid Performer" if strong else "Room to Grow",
        "verdictEmoji": "💪" if strong else "📚",
        "assessment": f"You scored {total_score:g}/100. "
        + (
            "You've got the fundamentals down."
            if strong
            else "There's work to be done, but that's what this exercise is for."
        ),
        "recommendations": [
            "Practice articulating your unit economics with specific numbers",
            "Develop a clearer narrative around your competitive moat",
            "Be prepared to discuss failure scenarios honestly",
        ],
        "shareableQuote": (
            f"Just got roasted by VCs and scored {total_score:g}/100. "
            "The truth hurts but makes you stronger. 🔥"
        ),
        "investorReadiness": investor_readiness(total_score),
    }


def _format_results(results: list[dict[str, Any]]) -> str:
    blocks = []
    for i, r in enumerate(results, start=1):
        blocks.append(
            f"Q{i} ({r['category']}): Score {r['score']}/10\n"
            f"Question: {r.get('question', '')}\n"
            f"Answer: {(r.get('answer') or '')[:ANSWER_EXCERPT_CHARS]}...\n"
            f"Roast: {r.get('roast', '')}"
        )
    return "\n\n".join(blocks)


def generate_roast_verdict(
    gateway: AIGateway,
    results: list[dict[str, Any]] | None,
    company_name: str | None = None,
    total_time: float | None = None,
) -> dict[str, Any]:
    """
    Score the roast and generate the verdict.

    Raises:
        ValueError: results missing or empty
        GatewayError: gateway call failed
    """
    if not results:
        raise ValueError("Results array is required")

    total_score = sum(r["score"] for r in results)
    breakdown = category_breakdown(results)

    user_prompt = render_prompt(
        "roast_verdict_user",
        company_name=company_name or "This startup",
        total_score=f"{total_score:g}",
        minutes=round_int((total_time or 0) / 60),
        weakest=", ".join(weakest_areas(breakdown)),
        results=_format_results(results),
    )
    reply = gateway.chat(
        [
            {"role": "system", "content": render_prompt("roast_verdict_system")},
            {"role": "user", "content": user_prompt},
        ],
        function_name="generate-roast-verdict",
    )

    try:
        verdict = extract_json(reply.content)
    except ValueError:
        counter("assessments.roast.fallback")
        logger.warning("Roast verdict reply unparseable, using score-based fallback")
        verdict = fallback_roast_verdict(total_score)

    return {"totalScore": total_score, "categoryBreakdown": breakdown, **verdict}
