"""Unit tests for cohort dashboard analytics"""

from __future__ import annotations

from datetime import UTC, datetime

from readiness.cohorts.analytics import (
    CohortCompany,
    accelerator_stats,
    cohort_stats,
    readiness_overview,
    score_distribution,
    section_averages,
)
from readiness.memos.models import Company, Memo

NOW = datetime(2025, 3, 4, tzinfo=UTC)


def _company(name: str, score: int | None, sections: dict[str, float] | None = None, readiness: str | None = None):
    scorecard = None
    if readiness is not None:
        scorecard = {"overallScore": score, "investmentReadiness": readiness}
    return CohortCompany(
        id=name.lower(),
        name=name,
        stage="Seed",
        category=None,
        public_score=score,
        memo_generated=score is not None,
        scorecard=scorecard,
        section_scores=sections or {},
    )


def test_from_records_reads_scorecard_sections():
    company = Company(id="c1", name="Acme", public_score=70, memo_content_generated=True, created_at=NOW, updated_at=NOW)
    memo = Memo(
        id="m1",
        company_id="c1",
        structured_content={
            "holisticScorecard": {
                "overallScore": 70,
                "sections": [
                    {"section": "Team", "score": 80},
                    {"section": "Business Model", "score": 55},
                    {"section": "Investment Thesis", "score": 90},
                ],
            }
        },
        created_at=NOW,
        updated_at=NOW,
    )

    cohort_company = CohortCompany.from_records(company, memo)

    assert cohort_company.section_scores == {"team": 80, "businessModel": 55}
    assert cohort_company.memo_generated is True
    assert CohortCompany.from_records(company, None).scorecard is None


def test_cohort_stats_buckets():
    companies = [_company("A", 80), _company("B", 65), _company("C", 50), _company("D", 30), _company("E", None)]
    assert cohort_stats(companies) == {
        "totalStartups": 5,
        "withReports": 4,
        "avgScore": 56,
        "demoReady": 1,
        "onTrack": 1,
        "needsWork": 1,
        "atRisk": 1,
    }


def test_zero_score_counts_as_missing():
    assert cohort_stats([_company("A", 0)])["avgScore"] == 0


def test_score_distribution():
    companies = [_company("A", 39), _company("B", 40), _company("C", 75), _company("D", 100)]
    assert score_distribution(companies) == [
        {"range": "0-40", "count": 1},
        {"range": "40-60", "count": 1},
        {"range": "60-75", "count": 0},
        {"range": "75-100", "count": 2},
    ]


def test_section_averages_and_extremes():
    companies = [
        _company("A", 70, {"team": 80, "market": 40}),
        _company("B", 60, {"team": 71, "market": 50}),
    ]

    averages = {a["sectionKey"]: a for a in section_averages(companies)}
    assert averages["team"]["average"] == 76
    assert averages["team"]["count"] == 2
    assert averages["vision"] == {
        "section": "Vision",
        "sectionKey": "vision",
        "average": 0,
        "fullMark": 100,
        "count": 0,
    }

    stats = accelerator_stats(companies)
    assert stats["weakestSection"]["sectionKey"] == "market"
    assert stats["strongestSection"]["sectionKey"] == "team"


def test_extremes_are_none_without_scores():
    stats = accelerator_stats([_company("A", None)])
    assert stats["weakestSection"] is None
    assert stats["strongestSection"] is None


def test_readiness_overview():
    overview = readiness_overview(
        [_company("A", 80, readiness="READY"), _company("B", 50, readiness="NOT_READY"), _company("C", None)]
    )
    assert overview["summary"] == {"NOT_READY": 1, "CONDITIONAL": 0, "READY": 1, "noMemo": 1}
    assert overview["companies"][2]["overallScore"] is None
    assert overview["companies"][0]["investmentReadiness"] == "READY"
