"""
Quick VC verdict for a startup pitch.

The model plays a partner meeting and returns a structured diagnostic. The
founder profile (serial, technical, business, domain expert, first-time) is
detected from the founder background answer and steers tone. When the reply
cannot be parsed a category-specific fallback verdict is returned, and every
verdict is normalized so the client always receives the full shape.
"""

from __future__ import annotations

import random
from typing import Any

from readiness.llm.gateway import AIGateway
from readiness.llm.parsing import extract_json
from readiness.llm.prompts import render_prompt
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

READINESS_LEVELS = ("LOW", "MEDIUM", "HIGH")
DEFAULT_PROFILE = "first_time_founder"

TONE_GUIDANCE = {
    "serial_founder": (
        "This is a serial founder. Be direct and respect their experience. Focus on the "
        "specific questions this bet raises and acknowledge their track record."
    ),
    "technical_founder": (
        "This is a technical founder who may favour product over distribution. Show what "
        "partners will probe and frame go-to-market questions constructively."
    ),
    "business_founder": (
        "This is a business-background founder with a likely polished deck. Help them "
        "anticipate technical depth and defensibility questions."
    ),
    "domain_expert": (
        "This is a domain expert who knows the industry. Prepare them for questions about "
        "startup dynamics and scalable distribution."
    ),
    "first_time_founder": (
        "This is likely a first-time founder. Be direct about what partners look for but "
        "frame it as preparation. Focus on market size, defensibility and team."
    ),
}

# Checked in order; first profile with a matching keyword wins
PROFILE_SIGNALS: list[tuple[str, tuple[str, ...]]] = [
    ("serial_founder", ("exited", "sold", "previous startup", "founded", "co-founded", "serial")),
    ("technical_founder", ("engineer", "developer", "phd", "research", "technical", "built")),
    ("business_founder", ("mba", "consulting", "banking", "strategy", "business development")),
    ("domain_expert", ("years in", "industry expert", "domain", "worked at", "led", "managed")),
]

CONTEXT_FIELDS = [
    ("problem_validation", "Problem they solve"),
    ("target_customer", "Target customer"),
    ("solution_description", "Solution"),
    ("market_size", "Market opportunity"),
    ("current_traction", "Traction"),
    ("competitive_advantage", "Competitive advantage"),
    ("revenue_model", "Revenue model"),
    ("distribution_strategy", "Go-to-market"),
    ("founder_background", "Founder background"),
    ("why_now", "Why now"),
]

CATEGORY_FALLBACKS: dict[str, dict[str, Any]] = {
    "saas": {
        "verdict": "VCs will focus on distribution strategy—the key question for horizontal SaaS plays.",
        "marketInsight": "The SaaS market is competitive. VCs look for clear wedge strategies and distribution advantages.",
        "vcFrameworkCheck": "Partners will apply the 'why you, why now' test—be ready to articulate your unique positioning.",
        "diagnosticSummary": "The core question is distribution: how do you reach customers more efficiently than funded alternatives? The full analysis provides frameworks to address this.",
        "pathForward": "Distribution questions are solvable—the full analysis shows proven approaches for your category.",
        "narrativeTransformation": {
            "currentNarrative": "A SaaS company in a competitive market with product strengths to leverage.",
            "transformedNarrative": "A company with a clear wedge strategy and distribution playbook.",
        },
    },
    "fintech": {
        "verdict": "VCs will probe on unit economics and regulatory path—the core questions for fintech.",
        "marketInsight": "Post-2022 fintech means proving unit economics before scale. VCs want to see the path.",
        "vcFrameworkCheck": "Partners will ask about the path to profitability and banking relationships.",
        "diagnosticSummary": "The key questions are economics and regulatory timeline. The full analysis provides frameworks to address both.",
        "pathForward": "Fintech unit economics questions are addressable—the analysis shows how to frame your path.",
        "narrativeTransformation": {
            "currentNarrative": "A fintech with promising technology navigating regulatory complexity.",
            "transformedNarrative": "A company with proven economics and a clear regulatory path.",
        },
    },
    "ai": {
        "verdict": "VCs will ask about defensibility—the central question for AI companies right now.",
        "marketInsight": "The AI space is crowded. VCs look for proprietary data or distribution lock-in.",
        "vcFrameworkCheck": "Partners will apply the 'why won't foundation model providers do this?' test.",
        "diagnosticSummary": "The core question is defensibility: what creates a moat as AI capabilities improve? The full analysis addresses this directly.",
        "pathForward": "Defensibility in AI is achievable—the analysis shows proven moat-building strategies.",
        "narrativeTransformation": {
            "currentNarrative": "An AI company with strong technology seeking its defensible position.",
            "transformedNarrative": "A company with proprietary advantages that compound over time.",
        },
    },
    "marketplace": {
        "verdict": "VCs will focus on liquidity and density—the core questions for marketplaces.",
        "marketInsight": "Marketplace economics require winning one market completely before expanding.",
        "vcFrameworkCheck": "Partners will probe the cold start strategy and supply/demand density.",
        "diagnosticSummary": "The key question is liquidity: how do you solve chicken-and-egg in your first market? The full analysis provides the playbook.",
        "pathForward": "Marketplace cold start is a solved problem—the analysis shows proven approaches.",
        "narrativeTransformation": {
            "currentNarrative": "A marketplace building toward liquidity with strong fundamentals.",
            "transformedNarrative": "A company with density in one market and a replication playbook.",
        },
    },
    "healthtech": {
        "verdict": "VCs will question sales cycle and runway alignment—the critical healthtech question.",
        "marketInsight": "Healthcare sales cycles are long. VCs look for distribution shortcuts or existing relationships.",
        "vcFrameworkCheck": "Partners will probe distribution strategy and hospital relationship shortcuts.",
        "diagnosticSummary": "The core question is sales cycle vs. runway. The full analysis shows how to address this concern.",
        "pathForward": "Healthcare distribution challenges have proven solutions—the analysis covers them.",
        "narrativeTransformation": {
            "currentNarrative": "A healthtech with strong domain expertise building toward hospital traction.",
            "transformedNarrative": "A company with existing health system relationships and validated demand.",
        },
    },
    "default": {
        "verdict": "VCs will probe market opportunity and positioning—the fundamental questions for any startup.",
        "marketInsight": "The investment bar is high. VCs look for clear paths to large outcomes.",
        "vcFrameworkCheck": "Partners will evaluate market size, defensibility, and path to scale.",
        "diagnosticSummary": "The key questions are market size and positioning. The full analysis provides frameworks to strengthen both.",
        "pathForward": "These fundamental questions are addressable—the analysis shows how to frame your opportunity.",
        "narrativeTransformation": {
            "currentNarrative": "A company with promising technology seeking clearer market positioning.",
            "transformedNarrative": "A company attacking a clear large opportunity with differentiated positioning.",
        },
    },
}

DEFAULT_VERDICT = "This pitch raises questions VCs will want to explore further."
DEFAULT_DIAGNOSTIC = (
    "The core question is whether the pitch addresses what VCs need to see for this stage. "
    "The full analysis provides the roadmap."
)
DEFAULT_PATH_FORWARD = (
    "Every question above has a proven way to address it—the full analysis shows exactly how."
)
DEFAULT_NARRATIVE = {
    "currentNarrative": "A pitch that raises questions VCs will want answered.",
    "transformedNarrative": "A company that anticipates and addresses investor concerns upfront.",
}


def _as_text(value: Any) -> str:
    """Lower-cased text from strings, numbers, or {text|value} objects."""
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, bool | int | float):
        return str(value).lower()
    if isinstance(value, dict):
        return _as_text(value.get("text", value.get("value")))
    return ""


def detect_founder_profile(founder_background: str | None) -> str:
    background = _as_text(founder_background)
    for profile, keywords in PROFILE_SIGNALS:
        if any(keyword in background for keyword in keywords):
            return profile
    return DEFAULT_PROFILE


def build_context(company_description: str | None, responses: list[dict[str, Any]]) -> list[str]:
    """'Label: answer' lines for every answered questionnaire field."""
    answers = {
        r.get("question_key"): (r.get("answer") or "").strip()
        for r in responses or []
        if isinstance(r, dict)
    }
    parts = []
    if company_description:
        parts.append(f"Business: {sanitize_for_prompt(company_description)}")
    for key, label in CONTEXT_FIELDS:
        if answers.get(key):
            parts.append(f"{label}: {sanitize_for_prompt(answers[key])}")
    return parts


def fallback_verdict(category: str, profile: str) -> dict[str, Any]:
    insight = CATEGORY_FALLBACKS.get(category, CATEGORY_FALLBACKS["default"])
    return {
        "verdict": insight["verdict"],
        "readinessLevel": "LOW",
        "readinessRationale": (
            "This pitch will raise questions partners will want to explore. "
            "Preparing answers strengthens your position."
        ),
        "concerns": [
            {
                "text": "Distribution strategy will be probed—VCs want to understand the path to customers.",
                "category": "business_model",
                "vcQuote": "How does this reach customers at scale?",
            },
            {
                "text": "Competitive positioning needs clarity—partners will ask how you defend against alternatives.",
                "category": "competition",
                "vcQuote": "What's the moat here?",
            },
            {
                "text": "Unit economics should be validated—the transition to scalable growth is key.",
                "category": "traction",
            },
        ],
        "strengths": [
            {
                "text": f"Market timing in {category} creates opportunity—VCs are looking for the right companies.",
                "category": "market",
            },
            {
                "text": "The problem being addressed is real—that's the foundation to build on.",
                "category": "market",
            },
        ],
        "marketInsight": insight["marketInsight"],
        "vcFrameworkCheck": insight["vcFrameworkCheck"],
        "diagnosticSummary": insight["diagnosticSummary"],
        "pathForward": insight["pathForward"],
        "narrativeTransformation": dict(insight["narrativeTransformation"]),
        "founderProfile": profile,
        "hiddenIssuesCount": 8,
    }


def normalize_verdict(
    verdict: dict[str, Any],
    profile: str,
    category: str | None,
    stage: str | None,
) -> dict[str, Any]:
    """Fill every field the client renders; inevitabilityStatement mirrors diagnosticSummary."""
    if not isinstance(verdict.get("concerns"), list):
        verdict["concerns"] = []
    if not isinstance(verdict.get("strengths"), list):
        verdict["strengths"] = []
    if not verdict.get("verdict"):
        verdict["verdict"] = DEFAULT_VERDICT
    if verdict.get("readinessLevel") not in READINESS_LEVELS:
        verdict["readinessLevel"] = "LOW"
    if not verdict.get("hiddenIssuesCount"):
        verdict["hiddenIssuesCount"] = random.randint(6, 10)

    if not verdict.get("diagnosticSummary") and verdict.get("inevitabilityStatement"):
        verdict["diagnosticSummary"] = verdict["inevitabilityStatement"]
    if not verdict.get("diagnosticSummary"):
        verdict["diagnosticSummary"] = DEFAULT_DIAGNOSTIC
    verdict["inevitabilityStatement"] = verdict["diagnosticSummary"]

    if not verdict.get("pathForward"):
        verdict["pathForward"] = DEFAULT_PATH_FORWARD
    if not verdict.get("narrativeTransformation"):
        verdict["narrativeTransformation"] = dict(DEFAULT_NARRATIVE)
    if not verdict.get("founderProfile"):
        verdict["founderProfile"] = profile
    if not verdict.get("preparationSummary"):
        verdict["preparationSummary"] = (
            "VCs will ask over 30 questions during your raise—we've identified and prepared "
            f"responses for each one. Looking at your {category or 'company'} pitch at {stage} "
            "stage, we've mapped the key areas investors will probe: market validation, "
            "competitive positioning, team credibility, and milestone planning. Each section of "
            "the full analysis addresses these gaps with specific frameworks and prepared responses."
        )
    return verdict


def generate_vc_verdict(
    gateway: AIGateway,
    company_name: str | None,
    company_description: str | None = None,
    stage: str | None = None,
    category: str | None = None,
    responses: list[dict[str, Any]] | None = None,
    forced_founder_profile: str | None = None,
) -> dict[str, Any]:
    """
    Generate the quick VC diagnostic.

    Raises:
        GatewayError: The gateway call itself failed (parse failures fall back).
    """
    responses = responses or []
    if forced_founder_profile:
        profile = forced_founder_profile
    else:
        background = next(
            (r.get("answer") for r in responses if r.get("question_key") == "founder_background"),
            None,
        )
        profile = detect_founder_profile(background)
    tone = TONE_GUIDANCE.get(profile, TONE_GUIDANCE[DEFAULT_PROFILE])

    context = build_context(company_description, responses)
    if context:
        context_block = "WHAT THEY CLAIM:\n" + "\n\n".join(context)
    else:
        context_block = (
            "LIMITED INFO: They haven't provided detailed materials yet—focus on general "
            "stage-appropriate questions."
        )

    system_prompt = render_prompt(
        "vc_verdict_system",
        founder_profile=profile,
        tone_guidance=tone,
        category=category or "Technology",
        stage=stage or "Early",
    )
    user_prompt = render_prompt(
        "vc_verdict_user",
        company_name=company_name or "Unnamed Startup",
        stage=stage or "Early",
        category=category or "Technology",
        context_block=context_block,
        founder_profile=profile,
    )

    result = gateway.chat(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        function_name="generate-vc-verdict",
    )

    try:
        verdict = extract_json(result.content)
    except ValueError:
        counter("assessments.vc_verdict.fallback")
        logger.warning("VC verdict reply unparseable, using %s fallback", category or "default")
        verdict = fallback_verdict(_as_text(category or "technology"), profile)

    verdict = normalize_verdict(verdict, profile, category, stage)
    logger.info(
        "Generated VC verdict: level=%s profile=%s",
        verdict["readinessLevel"],
        verdict["founderProfile"],
    )
    return verdict
