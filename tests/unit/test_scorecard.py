"""Unit tests for the holistic scorecard"""

from __future__ import annotations

import pytest

from readiness.scoring.scorecard import (
    DEFAULT_VERDICT,
    InvestmentReadiness,
    SectionStatus,
    generate_holistic_scorecard,
    section_status,
    stage_threshold,
)


def _scores(**scores):
    names = {"BusinessModel": "Business Model"}
    return {names.get(k, k): {"score": v, "vcBenchmark": 60} for k, v in scores.items()}


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (70, SectionStatus.STRONG),
        (60, SectionStatus.PASSING),
        (69, SectionStatus.PASSING),
        (45, SectionStatus.WEAK),
        (44, SectionStatus.CRITICAL),
    ],
)
def test_section_status_bands(score, expected):
    assert section_status(score, 60) == expected


@pytest.mark.parametrize(
    ("stage", "threshold"),
    [("Pre-Seed", 55), ("Seed", 62), ("Series A", 70)],
)
def test_stage_threshold(stage, threshold):
    assert stage_threshold(stage) == threshold


def test_overall_score_is_weighted():
    # Team and Traction weigh 0.20 each, Vision 0.05
    card = generate_holistic_scorecard(_scores(Team=80, Traction=80, Vision=20), "Acme", "Seed")
    assert card["overallScore"] == 73


def test_ready_scorecard():
    card = generate_holistic_scorecard(
        _scores(Team=80, Traction=75, Market=70, Problem=72), "Acme", "Seed"
    )
    assert card["investmentReadiness"] == InvestmentReadiness.READY.value
    assert card["overallVerdict"].startswith("Acme scores")
    assert "meets the ~62 threshold" in card["overallVerdict"]
    assert "team" in card["overallVerdict"]
    assert card["topStrengths"] == ["Team", "Traction", "Market", "Problem"]


def test_two_critical_sections_means_not_ready():
    card = generate_holistic_scorecard(
        _scores(Team=90, Traction=30, Market=90, Competition=20), "Acme", "Seed"
    )
    assert card["investmentReadiness"] == InvestmentReadiness.NOT_READY.value
    assert card["criticalWeaknesses"] == ["Competition", "Traction"]


def test_single_critical_section_is_conditional():
    card = generate_holistic_scorecard(_scores(Team=80, Market=80, Vision=40), "Acme", "Seed")
    assert card["investmentReadiness"] == InvestmentReadiness.CONDITIONAL.value


def test_sections_follow_weight_order_and_skip_missing_scores():
    scores = _scores(Vision=70, Team=70, Market=70)
    scores["Problem"] = {"score": None}
    card = generate_holistic_scorecard(scores, "Acme", "Seed")
    assert [s["section"] for s in card["sections"]] == ["Team", "Market", "Vision"]


def test_dynamic_verdicts_override_defaults():
    card = generate_holistic_scorecard(
        _scores(Team=70, Market=50),
        "Acme",
        "Seed",
        dynamic_verdicts={"Team": {"verdict": "Repeat founders", "stageContext": "Above bar"}},
    )
    team, market = card["sections"]
    assert team["holisticVerdict"] == "Repeat founders"
    assert team["stageContext"] == "Above bar"
    assert market["holisticVerdict"] == DEFAULT_VERDICT


def test_strategic_concerns_capped_at_three():
    card = generate_holistic_scorecard(
        _scores(Market=70, Competition=40, BusinessModel=40, Traction=30, Solution=40, Team=70),
        "Acme",
        "Seed",
    )
    assert len(card["strategicConcerns"]) == 3
    assert card["strategicConcerns"][0].startswith("Market is real but crowded")


def test_empty_scores():
    card = generate_holistic_scorecard({}, "Acme", "Pre-Seed")
    assert card["overallScore"] == 0
    assert card["sections"] == []
    assert card["investmentReadiness"] == InvestmentReadiness.NOT_READY.value


def test_null_or_non_numeric_values_do_not_break_the_scorecard():
    scores = {
        "Team": {"score": 60, "vcBenchmark": None},
        "Market": {"score": 60, "vcBenchmark": None, "benchmark": 65},
        "Traction": {"score": "72", "vcBenchmark": "n/a"},
        "Problem": {"score": "high", "vcBenchmark": 60},
        "Vision": None,
    }

    card = generate_holistic_scorecard(scores, "Acme", "Seed")

    by_name = {s["section"]: s for s in card["sections"]}
    assert set(by_name) == {"Team", "Market", "Traction"}
    assert by_name["Team"]["benchmark"] == 0
    assert by_name["Team"]["status"] == SectionStatus.STRONG.value
    assert by_name["Market"]["benchmark"] == 65
    assert by_name["Market"]["status"] == SectionStatus.WEAK.value
    assert by_name["Traction"]["score"] == 72
