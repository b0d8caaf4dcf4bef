"""
Post-generation review of a complete memo.

Checks the finished document for tone calibration, score/narrative alignment
per section, verdict alignment with the section scores, and carries over
high-severity coherence flags raised during generation. Nothing is rewritten
here; the report is stored alongside the memo.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from readiness.utils.rounding import round_int

REPORT_VERSION = 1

PROMOTIONAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"revolutionary",
        r"game[\s-]?changing",
        r"disrupt(?:ive|ing|s)",
        r"best[\s-]?in[\s-]?class",
        r"world[\s-]?class",
        r"unparalleled",
        r"unprecedented",
        r"enormous\s+opportunity",
        r"massive\s+potential",
        r"can[''’]t\s+fail",
        r"guaranteed",
    )
]

NEGATIVE_TONE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"fatal\s+flaw",
        r"impossible\s+to",
        r"will\s+never",
        r"doomed",
        r"hopeless",
        r"completely\s+lacks",
        r"no\s+chance",
        r"avoid\s+at\s+all\s+costs",
    )
]

POSITIVE_INDICATORS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"strong",
        r"excellent",
        r"impressive",
        r"solid",
        r"well[\s-]?positioned",
        r"clear\s+advantage",
        r"compelling",
        r"robust",
    )
]

NEGATIVE_INDICATORS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"weak",
        r"lacking",
        r"insufficient",
        r"unclear",
        r"concerning",
        r"missing",
        r"limited",
        r"risky",
        r"gap",
    )
]

# Flag a tone only when at least this many distinct patterns match
TONE_MATCH_THRESHOLD = 2


@dataclass
class ReconciliationIssue:
    type: str  # narrative_score_mismatch | cross_section_contradiction | tone_violation | verdict_misalignment
    severity: str  # low | medium | high
    description: str
    suggestion: str
    affected_sections: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "affectedSections": self.affected_sections,
            "suggestion": self.suggestion,
        }


def _count_matches(patterns: list[re.Pattern[str]], text: str) -> int:
    return sum(1 for pattern in patterns if pattern.search(text))


def narrative_text(section: dict[str, Any]) -> str:
    return " ".join(p.get("text", "") for p in section.get("paragraphs") or [])


def detect_tone(text: str) -> str:
    """analytical, promotional or overly_negative; promotional wins a tie."""
    if _count_matches(PROMOTIONAL_PATTERNS, text) >= TONE_MATCH_THRESHOLD:
        return "promotional"
    if _count_matches(NEGATIVE_TONE_PATTERNS, text) >= TONE_MATCH_THRESHOLD:
        return "overly_negative"
    return "analytical"


def check_score_narrative_alignment(
    section_title: str, text: str, score: float | None
) -> ReconciliationIssue | None:
    if score is None:
        return None

    sentiment = _count_matches(POSITIVE_INDICATORS, text) - _count_matches(NEGATIVE_INDICATORS, text)

    if score > 75 and sentiment < -2:
        return ReconciliationIssue(
            type="narrative_score_mismatch",
            severity="high",
            description=f"{section_title} has a high score ({score:g}) but the narrative is predominantly negative",
            affected_sections=[section_title],
            suggestion="Either lower the score to reflect concerns or revise the narrative to highlight strengths",
        )
    if score < 50 and sentiment > 2:
        return ReconciliationIssue(
            type="narrative_score_mismatch",
            severity="high",
            description=f"{section_title} has a low score ({score:g}) but the narrative is predominantly positive",
            affected_sections=[section_title],
            suggestion="Either raise the score to match the analysis or add specific concerns to the narrative",
        )
    if (score > 70 and sentiment < 0) or (score < 40 and sentiment > 0):
        return ReconciliationIssue(
            type="narrative_score_mismatch",
            severity="medium",
            description=(
                f"{section_title} shows minor misalignment between score ({score:g}) and narrative tone"
            ),
            affected_sections=[section_title],
            suggestion="Consider aligning the analytical tone with the quantitative assessment",
        )
    return None


def check_verdict_alignment(
    vc_quick_take: dict[str, Any] | None,
    section_scores: dict[str, dict[str, Any]] | None,
) -> ReconciliationIssue | None:
    if not vc_quick_take or not vc_quick_take.get("verdict") or not section_scores:
        return None

    scores = [
        s["score"]
        for s in section_scores.values()
        if isinstance(s.get("score"), (int, float)) and not isinstance(s.get("score"), bool)
    ]
    if not scores:
        return None

    avg_score = sum(scores) / len(scores)
    verdict = vc_quick_take["verdict"].lower()

    if avg_score < 50 and any(word in verdict for word in ("strong", "recommend", "compelling")):
        return ReconciliationIssue(
            type="verdict_misalignment",
            severity="high",
            description=f"Overall verdict is positive but average section score is only {round_int(avg_score)}",
            affected_sections=["VC Quick Take"],
            suggestion="Revise the verdict to reflect the analytical findings across sections",
        )
    if avg_score > 70 and any(word in verdict for word in ("pass", "weak", "concerning")):
        return ReconciliationIssue(
            type="verdict_misalignment",
            severity="high",
            description=f"Overall verdict is negative but average section score is {round_int(avg_score)}",
            affected_sections=["VC Quick Take"],
            suggestion="Revise the verdict to match the strong scores across sections",
        )
    return None


def reconcile_memo(
    sections: list[dict[str, Any]],
    vc_quick_take: dict[str, Any] | None = None,
    section_scores: dict[str, dict[str, Any]] | None = None,
    coherence_flags: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Review a generated memo.

    Args:
        sections: [{"title": ..., "paragraphs": [{"text": ...}]}]
        vc_quick_take: {"verdict": ..., ...} or None
        section_scores: {section title: {"score": n}}
        coherence_flags: [{"type", "severity", "description"}] from generation
        now: Timestamp for generatedAt (defaults to current UTC time)

    Returns:
        Reconciliation report in wire format
    """
    issues: list[ReconciliationIssue] = []

    tone = detect_tone(" ".join(narrative_text(s) for s in sections))
    if tone == "promotional":
        issues.append(
            ReconciliationIssue(
                type="tone_violation",
                severity="medium",
                description="The memo contains promotional language that may undermine analytical credibility",
                affected_sections=["Multiple"],
                suggestion="Replace superlatives with specific, evidence-based statements",
            )
        )
    elif tone == "overly_negative":
        issues.append(
            ReconciliationIssue(
                type="tone_violation",
                severity="medium",
                description="The memo contains overly harsh language that may not be constructive",
                affected_sections=["Multiple"],
                suggestion="Frame concerns as risks with mitigation paths rather than fatal flaws",
            )
        )

    section_scores = section_scores or {}
    for section in sections:
        title = section.get("title", "")
        score = (section_scores.get(title) or {}).get("score")
        issue = check_score_narrative_alignment(title, narrative_text(section), score)
        if issue:
            issues.append(issue)

    verdict_issue = check_verdict_alignment(vc_quick_take, section_scores)
    if verdict_issue:
        issues.append(verdict_issue)

    for flag in coherence_flags or []:
        if flag.get("severity") == "high":
            issues.append(
                ReconciliationIssue(
                    type="cross_section_contradiction",
                    severity="high",
                    description=flag.get("description", ""),
                    suggestion="Review the flagged metrics and ensure consistency across all sections",
                )
            )

    high = sum(1 for i in issues if i.severity == "high")
    medium = sum(1 for i in issues if i.severity == "medium")

    if high > 0:
        alignment = "major_drift"
    elif medium > 1:
        alignment = "minor_drift"
    else:
        alignment = "aligned"

    if high >= 2 or len(issues) >= 5:
        quality = "low"
    elif high == 1 or medium >= 2:
        quality = "medium"
    else:
        quality = "high"

    generated_at = now or datetime.now(UTC)
    return {
        "version": REPORT_VERSION,
        "generatedAt": generated_at.isoformat().replace("+00:00", "Z"),
        "passed": high == 0,
        "issues": [i.to_dict() for i in issues],
        "repairAttempts": 0,
        "narrativeScoreAlignment": alignment,
        "toneCalibration": tone,
        "overallQuality": quality,
    }
