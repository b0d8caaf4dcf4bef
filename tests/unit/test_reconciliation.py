"""Unit tests for post-generation memo review"""

from __future__ import annotations

from datetime import UTC, datetime

from readiness.scoring.reconciliation import (
    check_score_narrative_alignment,
    check_verdict_alignment,
    detect_tone,
    reconcile_memo,
)


def _section(title, text):
    return {"title": title, "paragraphs": [{"text": text}]}


def test_clean_memo_passes():
    report = reconcile_memo(
        [_section("Team", "The founders previously shipped two payments products.")],
        vc_quick_take={"verdict": "Worth a second meeting"},
        section_scores={"Team": {"score": 65}},
        now=datetime(2026, 1, 5, 12, 0, tzinfo=UTC),
    )
    assert report["passed"] is True
    assert report["issues"] == []
    assert report["toneCalibration"] == "analytical"
    assert report["narrativeScoreAlignment"] == "aligned"
    assert report["overallQuality"] == "high"
    assert report["generatedAt"] == "2026-01-05T12:00:00Z"


def test_tone_needs_two_distinct_patterns():
    assert detect_tone("A revolutionary product.") == "analytical"
    assert detect_tone("A revolutionary, world-class product.") == "promotional"
    assert detect_tone("This is doomed and hopeless.") == "overly_negative"


def test_high_score_with_negative_narrative_is_high_severity():
    text = "Weak retention, limited data, unclear pricing and a risky channel."
    issue = check_score_narrative_alignment("Traction", text, 80)
    assert issue is not None
    assert issue.severity == "high"
    assert issue.affected_sections == ["Traction"]


def test_low_score_with_positive_narrative():
    text = "Strong, impressive, compelling and robust positioning."
    issue = check_score_narrative_alignment("Market", text, 45)
    assert issue is not None
    assert "low score (45)" in issue.description


def test_mild_mismatch_is_medium():
    issue = check_score_narrative_alignment("Team", "The hiring plan is unclear.", 72)
    assert issue is not None
    assert issue.severity == "medium"


def test_no_score_no_issue():
    assert check_score_narrative_alignment("Team", "weak weak weak", None) is None


def test_positive_verdict_with_low_scores():
    issue = check_verdict_alignment(
        {"verdict": "Strong company, recommend"},
        {"Team": {"score": 40}, "Market": {"score": 30}},
    )
    assert issue is not None
    assert issue.type == "verdict_misalignment"
    assert "only 35" in issue.description


def test_negative_verdict_with_high_scores():
    issue = check_verdict_alignment({"verdict": "Pass for now"}, {"Team": {"score": 80}})
    assert issue is not None


def test_verdict_check_ignores_non_numeric_scores():
    assert check_verdict_alignment({"verdict": "pass"}, {"Team": {"score": True}}) is None


def test_high_coherence_flags_are_carried_over():
    report = reconcile_memo(
        [],
        coherence_flags=[
            {"type": "metric", "severity": "high", "description": "ARR differs between sections"},
            {"type": "metric", "severity": "low", "description": "minor"},
        ],
    )
    assert report["passed"] is False
    assert report["narrativeScoreAlignment"] == "major_drift"
    assert report["overallQuality"] == "medium"
    assert [i["description"] for i in report["issues"]] == ["ARR differs between sections"]
