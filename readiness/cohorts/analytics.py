"""
Module: analytics
Purpose: Cohort readiness numbers for accelerator dashboards.

Company scores are the public_score written when a memo is generated; a
missing or zero score counts as "no score". Section scores come from the
holistic scorecard stored in each company's latest memo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from readiness.memos.models import Company, Memo
from readiness.scoring.scorecard import InvestmentReadiness
from readiness.utils.rounding import round_int

SECTION_LABELS: dict[str, str] = {
    "problem": "Problem",
    "solution": "Solution",
    "market": "Market",
    "competition": "Competition",
    "team": "Team",
    "businessModel": "Biz Model",
    "traction": "Traction",
    "vision": "Vision",
}

SECTION_KEYS: dict[str, str] = {
    "Problem": "problem",
    "Solution": "solution",
    "Market": "market",
    "Competition": "competition",
    "Team": "team",
    "Business Model": "businessModel",
    "Traction": "traction",
    "Vision": "vision",
}

DEMO_READY_SCORE = 75
ON_TRACK_SCORE = 60
NEEDS_WORK_SCORE = 45

# (label, lower bound inclusive, upper bound exclusive)
SCORE_BUCKETS: list[tuple[str, float, float]] = [
    ("0-40", float("-inf"), 40),
    ("40-60", 40, 60),
    ("60-75", 60, 75),
    ("75-100", 75, float("inf")),
]


@dataclass
class CohortCompany:
    id: str
    name: str
    stage: str
    category: str | None
    public_score: int | None
    memo_generated: bool
    scorecard: dict[str, Any] | None = None
    section_scores: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_records(cls, company: Company, memo: Memo | None) -> CohortCompany:
        scorecard = None
        if memo is not None and memo.structured_content:
            scorecard = memo.structured_content.get("holisticScorecard")
        section_scores: dict[str, float] = {}
        for section in (scorecard or {}).get("sections") or []:
            key = SECTION_KEYS.get(section.get("section", ""))
            if key and section.get("score") is not None:
                section_scores[key] = section["score"]
        return cls(
            id=company.id,
            name=company.name,
            stage=company.stage,
            category=company.category,
            public_score=company.public_score,
            memo_generated=company.memo_content_generated,
            scorecard=scorecard,
            section_scores=section_scores,
        )


def _scores(companies: list[CohortCompany]) -> list[int]:
    return [c.public_score for c in companies if c.public_score]


def cohort_stats(companies: list[CohortCompany]) -> dict[str, int]:
    scores = _scores(companies)
    return {
        "totalStartups": len(companies),
        "withReports": sum(1 for c in companies if c.memo_generated),
        "avgScore": round_int(sum(scores) / len(scores)) if scores else 0,
        "demoReady": sum(1 for s in scores if s >= DEMO_READY_SCORE),
        "onTrack": sum(1 for s in scores if ON_TRACK_SCORE <= s < DEMO_READY_SCORE),
        "needsWork": sum(1 for s in scores if NEEDS_WORK_SCORE <= s < ON_TRACK_SCORE),
        "atRisk": sum(1 for s in scores if s < NEEDS_WORK_SCORE),
    }


def section_averages(companies: list[CohortCompany]) -> list[dict[str, Any]]:
    averages = []
    for key, label in SECTION_LABELS.items():
        scores = [c.section_scores[key] for c in companies if key in c.section_scores]
        averages.append(
            {
                "section": label,
                "sectionKey": key,
                "average": round_int(sum(scores) / len(scores)) if scores else 0,
                "fullMark": 100,
                "count": len(scores),
            }
        )
    return averages


def score_distribution(companies: list[CohortCompany]) -> list[dict[str, Any]]:
    scores = _scores(companies)
    return [
        {"range": label, "count": sum(1 for s in scores if low <= s < high)}
        for label, low, high in SCORE_BUCKETS
    ]


def weakest_and_strongest(
    averages: list[dict[str, Any]],
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Lowest and highest average among sections with at least one score."""
    with_data = sorted((a for a in averages if a["count"] > 0), key=lambda a: a["average"])
    if not with_data:
        return None, None
    return with_data[0], with_data[-1]


def accelerator_stats(companies: list[CohortCompany]) -> dict[str, Any]:
    averages = section_averages(companies)
    weakest, strongest = weakest_and_strongest(averages)
    return {
        **cohort_stats(companies),
        "sectionAverages": averages,
        "scoreDistribution": score_distribution(companies),
        "weakestSection": weakest,
        "strongestSection": strongest,
    }


def readiness_overview(companies: list[CohortCompany]) -> dict[str, Any]:
    """
    Per-company latest scorecard summary plus counts by readiness.

    Companies without a scorecard report null score and readiness and are
    counted under "noMemo".
    """
    summary = {level.value: 0 for level in InvestmentReadiness}
    summary["noMemo"] = 0
    rows = []
    for company in companies:
        score = readiness = None
        if company.scorecard:
            score = company.scorecard.get("overallScore")
            readiness = company.scorecard.get("investmentReadiness")
        if readiness in summary:
            summary[readiness] += 1
        else:
            summary["noMemo"] += 1
        rows.append(
            {
                "companyId": company.id,
                "name": company.name,
                "stage": company.stage,
                "category": company.category,
                "overallScore": score,
                "investmentReadiness": readiness,
            }
        )
    return {"companies": rows, "summary": summary}
