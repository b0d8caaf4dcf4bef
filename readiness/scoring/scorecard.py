"""
Module: scorecard
Purpose: Stage-aware holistic scorecard built from per-section scores.

Each memo section carries a score and the VC benchmark for the company's
stage. The scorecard turns those into section statuses, a weighted overall
score, an investment-readiness call and cross-section strategic concerns.
The judgement is about business viability, not about missing data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from readiness.utils.rounding import round_int

DEFAULT_VERDICT = "VC analysis pending — regenerate memo for detailed insights"
DEFAULT_STAGE_CONTEXT = "Stage-specific context will be generated with the memo"

# Overall-score weights; also the display order of sections
SECTION_WEIGHTS: dict[str, float] = {
    "Team": 0.20,
    "Traction": 0.20,
    "Market": 0.15,
    "Problem": 0.12,
    "Solution": 0.10,
    "Business Model": 0.10,
    "Competition": 0.08,
    "Vision": 0.05,
}
UNKNOWN_SECTION_WEIGHT = 0.05

_SECTION_ORDER = list(SECTION_WEIGHTS)


class SectionStatus(str, Enum):
    CRITICAL = "critical"
    WEAK = "weak"
    PASSING = "passing"
    STRONG = "strong"


class InvestmentReadiness(str, Enum):
    NOT_READY = "NOT_READY"
    CONDITIONAL = "CONDITIONAL"
    READY = "READY"


@dataclass
class SectionVerdict:
    section: str
    score: float
    benchmark: float
    status: SectionStatus
    holistic_verdict: str = DEFAULT_VERDICT
    stage_context: str = DEFAULT_STAGE_CONTEXT

    def to_dict(self) -> dict[str, Any]:
        return {
            "section": self.section,
            "score": self.score,
            "benchmark": self.benchmark,
            "status": self.status.value,
            "holisticVerdict": self.holistic_verdict,
            "stageContext": self.stage_context,
        }


@dataclass
class HolisticScorecard:
    company_name: str
    stage: str
    overall_score: int
    overall_verdict: str
    investment_readiness: InvestmentReadiness
    category: str | None = None
    sections: list[SectionVerdict] = field(default_factory=list)
    strategic_concerns: list[str] = field(default_factory=list)
    top_strengths: list[str] = field(default_factory=list)
    critical_weaknesses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire format stored in memo structured_content and returned by the API."""
        return {
            "companyName": self.company_name,
            "stage": self.stage,
            "category": self.category,
            "overallScore": self.overall_score,
            "overallVerdict": self.overall_verdict,
            "investmentReadiness": self.investment_readiness.value,
            "sections": [s.to_dict() for s in self.sections],
            "strategicConcerns": self.strategic_concerns,
            "topStrengths": self.top_strengths,
            "criticalWeaknesses": self.critical_weaknesses,
        }


def _as_number(value: Any) -> float | None:
    """Numbers and numeric strings from model output; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def section_status(score: float, benchmark: float) -> SectionStatus:
    if score >= benchmark + 10:
        return SectionStatus.STRONG
    if score >= benchmark:
        return SectionStatus.PASSING
    if score >= benchmark - 15:
        return SectionStatus.WEAK
    return SectionStatus.CRITICAL


def overall_score(sections: list[SectionVerdict]) -> int:
    """Weighted mean of section scores, rounded; 0 when there are no sections."""
    total_weight = 0.0
    weighted_sum = 0.0
    for section in sections:
        weight = SECTION_WEIGHTS.get(section.section, UNKNOWN_SECTION_WEIGHT)
        weighted_sum += section.score * weight
        total_weight += weight
    if total_weight == 0:
        return 0
    return round_int(weighted_sum / total_weight)


def stage_threshold(stage: str) -> int:
    """Overall score a competitive round at this stage usually needs."""
    lowered = stage.lower()
    if "pre-seed" in lowered:
        return 55
    if "seed" in lowered:
        return 62
    return 70


def generate_strategic_concerns(sections: list[SectionVerdict]) -> list[str]:
    """Cross-section concerns from score combinations; at most three."""
    by_name = {s.section: s for s in sections}
    market = by_name.get("Market")
    competition = by_name.get("Competition")
    traction = by_name.get("Traction")
    business_model = by_name.get("Business Model")
    solution = by_name.get("Solution")
    team = by_name.get("Team")

    concerns = []
    if market and competition and competition.score < 60 and market.score > 55:
        concerns.append("Market is real but crowded — differentiation is existential, not optional")
    if business_model and traction and business_model.score < 60 and traction.score < 50:
        concerns.append("ACV/sales cycle mismatch creates unsustainable unit economics at scale")
    if solution and competition and solution.score < 55 and competition.score < 60:
        concerns.append(
            "Low defensibility in crowded market — need moats before well-funded players move"
        )
    if team and traction and team.score >= 65 and traction.score < 50:
        concerns.append(
            "Strong team but weak traction suggests product or positioning issue, not execution"
        )
    if traction and business_model and traction.score < 50:
        concerns.append("No repeatable sales motion — still in founder-led discovery phase")

    return concerns[:3]


def generate_overall_verdict(
    sections: list[SectionVerdict], stage: str, company_name: str
) -> tuple[str, InvestmentReadiness]:
    score = overall_score(sections)
    critical = [s for s in sections if s.status == SectionStatus.CRITICAL]
    weak = [s for s in sections if s.status == SectionStatus.WEAK]
    strong = [s for s in sections if s.status == SectionStatus.STRONG]

    if len(critical) >= 2 or score < 50:
        readiness = InvestmentReadiness.NOT_READY
    elif len(critical) == 1 or score < 60:
        readiness = InvestmentReadiness.CONDITIONAL
    else:
        readiness = InvestmentReadiness.READY

    strengths = [s.section.lower() for s in strong][:2]
    gaps = [s.section.lower() for s in critical + weak][:2]
    threshold = stage_threshold(stage)
    position = "meets" if score >= threshold else "below"

    verdict = (
        f"{company_name} scores {score}/100 — {position} the ~{threshold} threshold "
        f"for competitive {stage} rounds. "
    )
    if strengths:
        verdict += f"**Strengths:** {' and '.join(strengths)} show promise. "
    if gaps:
        verdict += f"**Gaps:** {' and '.join(gaps)} need work before approaching top-tier VCs. "

    if readiness == InvestmentReadiness.NOT_READY:
        verdict += "Fix critical issues before fundraising — VCs will pass quickly."
    elif readiness == InvestmentReadiness.CONDITIONAL:
        verdict += "Fundable with the right investor, but expect tough questions on weak areas."
    else:
        verdict += "Ready to approach investors — lead with strengths, address concerns proactively."

    return verdict, readiness


def _order_key(section: SectionVerdict) -> int:
    try:
        return _SECTION_ORDER.index(section.section)
    except ValueError:
        return len(_SECTION_ORDER)


def build_holistic_scorecard(
    section_scores: dict[str, dict[str, Any]],
    company_name: str,
    stage: str,
    category: str | None = None,
    dynamic_verdicts: dict[str, dict[str, str]] | None = None,
) -> HolisticScorecard:
    """
    Build the scorecard.

    Args:
        section_scores: {section title: {"score": n, "vcBenchmark": n}};
            entries without a numeric score are skipped; a missing or
            non-numeric benchmark counts as 0
        company_name: Used in the overall verdict sentence
        stage: Company stage ("Pre-Seed", "Seed", ...)
        category: Optional, echoed back
        dynamic_verdicts: {section title: {"verdict": ..., "stageContext": ...}}
            produced with the memo; missing entries use the defaults

    Returns:
        HolisticScorecard with sections in weight order
    """
    dynamic_verdicts = dynamic_verdicts or {}
    sections = []
    for name, data in section_scores.items():
        score = _as_number((data or {}).get("score"))
        if score is None:
            continue
        benchmark = _as_number(data.get("vcBenchmark"))
        if benchmark is None:
            benchmark = _as_number(data.get("benchmark")) or 0
        verdict_data = dynamic_verdicts.get(name) or {}
        sections.append(
            SectionVerdict(
                section=name,
                score=score,
                benchmark=benchmark,
                status=section_status(score, benchmark),
                holistic_verdict=verdict_data.get("verdict") or DEFAULT_VERDICT,
                stage_context=verdict_data.get("stageContext") or DEFAULT_STAGE_CONTEXT,
            )
        )

    # Stable sort keeps input order among unknown sections
    sections.sort(key=_order_key)

    verdict, readiness = generate_overall_verdict(sections, stage, company_name)
    weaknesses = sorted(
        (s for s in sections if s.status in (SectionStatus.CRITICAL, SectionStatus.WEAK)),
        key=lambda s: s.score,
    )

    return HolisticScorecard(
        company_name=company_name,
        stage=stage,
        category=category,
        overall_score=overall_score(sections),
        overall_verdict=verdict,
        investment_readiness=readiness,
        sections=sections,
        strategic_concerns=generate_strategic_concerns(sections),
        top_strengths=[s.section for s in sections if s.status == SectionStatus.STRONG],
        critical_weaknesses=[s.section for s in weaknesses[:2]],
    )


def generate_holistic_scorecard(
    section_scores: dict[str, dict[str, Any]],
    company_name: str,
    stage: str,
    category: str | None = None,
    dynamic_verdicts: dict[str, dict[str, str]] | None = None,
) -> dict[str, Any]:
    """Scorecard in wire format."""
    return build_holistic_scorecard(
        section_scores, company_name, stage, category, dynamic_verdicts
    ).to_dict()
