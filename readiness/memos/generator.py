"""
Background memo generation pipeline.

MemoGenerator.run() drives one job end to end:

1. Load the company and its questionnaire answers
2. Generate each memo section in order; an unparseable reply gets one retry
   with a simplified prompt, then a placeholder. A section whose gateway
   call fails is skipped.
3. Synthesize the Investment Thesis from all sections, then the VC Quick
   Take (both optional)
4. Require at least MEMO_MIN_SECTIONS sections
5. Normalize vcReflection questions, build the holistic scorecard and the
   reconciliation report, save structured_content
6. Mark the job completed, or failed with the error message
"""

from __future__ import annotations

import json
import time
from datetime import UTC, datetime
from typing import Any

from readiness.config import MEMO_MIN_SECTIONS, MEMO_SECTION_MAX_TOKENS
from readiness.llm.gateway import AIGateway, GatewayError
from readiness.llm.parsing import extract_json
from readiness.llm.prompts import render_prompt
from readiness.memos.models import Company, MemoResponse
from readiness.memos.repository import CompanyRepository, MemoRepository
from readiness.memos.sections import (
    INVESTMENT_THESIS,
    SECTION_ORDER,
    build_financial_context,
    combined_content,
    group_responses,
    normalize_section_questions,
    section_financial_context,
)
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event
from readiness.scoring.reconciliation import reconcile_memo
from readiness.scoring.scorecard import build_holistic_scorecard
from readiness.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

SECTION_TEMPERATURE = 0.7
FALLBACK_TEMPERATURE = 0.3
FALLBACK_MAX_TOKENS = 1500
FALLBACK_DATA_CHARS = 1000
QUICK_TAKE_MAX_TOKENS = 1500
QUICK_TAKE_DIGEST_CHARS = 800

SECTION_GUIDANCE = {
    "Problem": "Assess how painful, frequent and urgent the problem is, and who feels it most.",
    "Solution": "Assess whether the solution is 10x better than the status quo and how it is delivered.",
    "Market": "Size the market top-down and bottoms-up; state TAM, SAM and SOM with assumptions.",
    "Competition": (
        "Be honest about competitive positioning. If the company faces strong, well-funded "
        "competitors, acknowledge the challenges and name the moat, if any."
    ),
    "Team": (
        "Rate founder-market fit (Strong / Moderate / Weak), assess the equity structure if "
        "ownership data is given, and look for evidence of execution velocity."
    ),
    "Business Model": "Assess pricing, unit economics and the path to profitability at scale.",
    "Traction": "Separate vanity metrics from evidence of repeatable, retained growth.",
    "Vision": (
        "Apply the fund economics lens: power-law potential, ownership math at scale and "
        "market timing."
    ),
}


def placeholder_section(section: str) -> dict[str, Any]:
    return {
        "narrative": {
            "paragraphs": [
                {
                    "text": f"The {section} section analysis is available but requires "
                    "regeneration for optimal formatting.",
                    "emphasis": "normal",
                }
            ],
            "keyPoints": ["Please regenerate memo for complete analysis"],
        }
    }


def wrap_section(parsed: dict[str, Any]) -> dict[str, Any]:
    """Replies without narrative/vcReflection are treated as a bare narrative."""
    if "narrative" in parsed or "vcReflection" in parsed:
        return parsed
    return {"narrative": parsed}


class MemoGenerationError(Exception):
    """The pipeline could not produce a usable memo."""


class MemoGenerator:
    """Runs memo generation jobs against the AI gateway."""

    def __init__(self, gateway: AIGateway):
        self.gateway = gateway

    # ------------------------------------------------------------------
    # LLM calls
    # ------------------------------------------------------------------

    def _ask(
        self,
        system: str,
        user: str,
        function_name: str,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        """
        Raises:
            GatewayError: The call failed
            ValueError: The reply is not a JSON object
        """
        result = self.gateway.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            function_name=function_name,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return extract_json(result.content)

    def generate_section(
        self,
        company: Company,
        section: str,
        raw_information: str,
        financial_context: str,
    ) -> dict[str, Any] | None:
        """
        One memo section, or None when the gateway call fails.

        The full prompt is tried first, then the simplified fallback prompt,
        then a placeholder.
        """
        user_prompt = render_prompt(
            "memo_section_user",
            section_name=section,
            section_guidance=SECTION_GUIDANCE.get(section, ""),
            company_name=company.name,
            stage=company.stage,
            category=company.category or "startup",
            financial_context=section_financial_context(section, financial_context),
            raw_information=raw_information,
        )
        try:
            parsed = self._ask(
                render_prompt("memo_section_system"),
                user_prompt,
                "generate-full-memo",
                SECTION_TEMPERATURE,
                MEMO_SECTION_MAX_TOKENS,
            )
            return wrap_section(parsed)
        except GatewayError as e:
            counter("memos.section_skipped")
            logger.error("Skipping section %s: %s", section, e)
            return None
        except ValueError:
            logger.warning("Section %s reply unparseable, trying simplified prompt", section)

        try:
            parsed = self._ask(
                render_prompt("memo_section_fallback_system"),
                render_prompt(
                    "memo_section_fallback_user",
                    section_name=section,
                    company_name=company.name,
                    raw_information=raw_information[:FALLBACK_DATA_CHARS],
                ),
                "generate-full-memo",
                FALLBACK_TEMPERATURE,
                FALLBACK_MAX_TOKENS,
            )
            counter("memos.section_fallback")
            return parsed
        except (GatewayError, ValueError) as e:
            counter("memos.section_placeholder")
            logger.error("Simplified prompt also failed for %s: %s", section, e)
            return placeholder_section(section)

    def generate_thesis(
        self,
        company: Company,
        responses: list[MemoResponse],
        sections: dict[str, dict[str, Any]],
    ) -> dict[str, Any] | None:
        all_responses = "\n\n".join(
            f"{r.question_key}: {sanitize_for_prompt(r.answer) or 'N/A'}" for r in responses
        )
        all_sections = "\n".join(
            f"\n### {title} Section Summary ###\n{json.dumps(content)}"
            for title, content in sections.items()
        )
        try:
            parsed = self._ask(
                render_prompt("memo_thesis_system"),
                render_prompt(
                    "memo_thesis_user",
                    company_name=company.name,
                    stage=company.stage,
                    category=company.category or "startup",
                    description=company.description or "N/A",
                    all_responses=all_responses,
                    all_sections=all_sections,
                ),
                "generate-full-memo",
                SECTION_TEMPERATURE,
                MEMO_SECTION_MAX_TOKENS,
            )
        except (GatewayError, ValueError) as e:
            counter("memos.thesis_skipped")
            logger.warning("Investment Thesis generation failed, skipping section: %s", e)
            return None
        return wrap_section(parsed)

    def generate_quick_take(
        self, company: Company, sections: dict[str, dict[str, Any]]
    ) -> dict[str, Any] | None:
        digest = "\n\n".join(
            f"### {title} ###\n{json.dumps(content)[:QUICK_TAKE_DIGEST_CHARS]}"
            for title, content in sections.items()
        )
        try:
            return self._ask(
                render_prompt("memo_quick_take_system"),
                render_prompt(
                    "memo_quick_take_user",
                    section_digest=digest,
                    company_name=company.name,
                    stage=company.stage,
                    category=company.category or "startup",
                ),
                "generate-full-memo",
                SECTION_TEMPERATURE,
                QUICK_TAKE_MAX_TOKENS,
            )
        except (GatewayError, ValueError) as e:
            counter("memos.quick_take_skipped")
            logger.warning("VC Quick Take generation failed: %s", e)
            return None

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def build_content(
        self, company: Company, responses: list[MemoResponse]
    ) -> dict[str, Any]:
        """
        Generate structured_content for a company.

        Raises:
            MemoGenerationError: Fewer than MEMO_MIN_SECTIONS sections produced
        """
        grouped = group_responses(responses)
        financial_context = build_financial_context(responses)

        sections: dict[str, dict[str, Any]] = {}
        for name in SECTION_ORDER:
            raw = combined_content(grouped.get(name, {}))
            if not raw.strip():
                continue
            content = self.generate_section(company, name, sanitize_for_prompt(raw), financial_context)
            if content is not None:
                sections[name] = content

        thesis = self.generate_thesis(company, responses, sections)
        if thesis is not None:
            sections[INVESTMENT_THESIS] = thesis

        quick_take = self.generate_quick_take(company, sections)

        logger.info(
            "Generated %d sections for company %s (quick take: %s)",
            len(sections),
            company.id,
            "yes" if quick_take else "no",
        )
        if len(sections) < MEMO_MIN_SECTIONS:
            raise MemoGenerationError(
                f"Incomplete memo generation: only {len(sections)} sections generated"
            )

        section_scores: dict[str, dict[str, Any]] = {}
        verdicts: dict[str, dict[str, str]] = {}
        structured_sections = []
        for title, content in sections.items():
            content = normalize_section_questions(content, title)
            score = content.pop("sectionScore", None)
            verdict = content.pop("holisticVerdict", None)
            if isinstance(score, dict) and isinstance(score.get("score"), int | float):
                section_scores[title] = score
            if isinstance(verdict, dict):
                verdicts[title] = verdict
            structured_sections.append({"title": title, **content})

        scorecard = build_holistic_scorecard(
            section_scores, company.name, company.stage, company.category, verdicts
        )
        reconciliation = reconcile_memo(
            [
                {"title": s["title"], **(s.get("narrative") or {})}
                for s in structured_sections
            ],
            quick_take,
            section_scores,
        )

        return {
            "sections": structured_sections,
            "vcQuickTake": quick_take,
            "holisticScorecard": scorecard.to_dict() if section_scores else None,
            "reconciliation": reconciliation,
            "generatedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }

    def run(self, company_id: str, job_id: str) -> None:
        """
        Execute one job. Never raises; the outcome is written to the job row.
        """
        started = time.perf_counter()
        logger.info("Memo generation started: job=%s company=%s", job_id, company_id)
        try:
            company = CompanyRepository.get(company_id)
            if company is None:
                raise MemoGenerationError("Company not found")
            responses = CompanyRepository.list_responses(company_id)

            content = self.build_content(company, responses)
            MemoRepository.save_structured_content(company_id, content)
            scorecard = content.get("holisticScorecard")
            CompanyRepository.record_memo_generated(
                company_id, scorecard["overallScore"] if scorecard else None
            )
            MemoRepository.finish_job(job_id)
        except Exception as e:
            counter("memos.job_failed")
            logger.exception("Memo generation failed: job=%s", job_id)
            MemoRepository.finish_job(job_id, error_message=str(e) or "Unknown error")
            return

        duration = time.perf_counter() - started
        counter("memos.job_completed")
        log_event("memos.generated", job_id=job_id, company_id=company_id, seconds=round(duration, 1))
