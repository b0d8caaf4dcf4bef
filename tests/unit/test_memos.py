"""Unit tests for memo section grouping, the generation pipeline and job polling"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from readiness.llm.gateway import GatewayError
from readiness.memos.generator import MemoGenerationError, MemoGenerator, placeholder_section
from readiness.memos.jobs import describe_job, progress_message
from readiness.memos.models import Company, Memo, MemoJob, MemoResponse
from readiness.memos.sections import (
    MARKET_SECTION_NOTE,
    build_financial_context,
    group_responses,
    normalize_vc_questions,
    question_rationale,
    section_financial_context,
    section_for_key,
)
from readiness.memos.service import is_complete_memo

NOW = datetime(2025, 3, 4, 12, 0, tzinfo=UTC)


@pytest.fixture
def company():
    return Company(id="co1", name="Acme", category="SaaS", created_at=NOW, updated_at=NOW)


def _section_reply(text: str = "Clear analysis of the opportunity.", score: int = 70) -> dict:
    return {
        "narrative": {"paragraphs": [{"text": text, "emphasis": "normal"}], "keyPoints": ["One"]},
        "sectionScore": {"score": score, "vcBenchmark": 60},
        "vcReflection": {"questions": ["Why now?"]},
    }


class TestSections:
    @pytest.mark.parametrize(
        ("key", "section"),
        [
            ("problem_core", "Problem"),
            ("target_customer", "Market"),
            ("unit_economics", "Business Model"),
            ("founder_background", "Team"),
            ("custom_thing", "Custom"),
        ],
    )
    def test_section_for_key(self, key, section):
        assert section_for_key(key) == section

    def test_group_responses_keeps_order(self):
        grouped = group_responses(
            [
                MemoResponse(question_key="problem_core", answer="Pain"),
                MemoResponse(question_key="problem_frequency", answer="Daily"),
                MemoResponse(question_key="team_story", answer=None),
            ]
        )
        assert grouped == {
            "Problem": {"problem_core": "Pain", "problem_frequency": "Daily"},
            "Team": {"team_story": ""},
        }

    def test_financial_context_from_metrics(self):
        context = build_financial_context(
            [
                MemoResponse(question_key="unit_economics_json", answer=json.dumps({"acv": 10000, "mrr": 5000})),
                MemoResponse(question_key="pricing_model", answer="Per seat"),
            ]
        )
        assert "MRR: €5000" in context
        assert "Pricing Model: Per seat" in context
        assert "At €10000 ACV: 1,000 customers needed for €10M ARR" in context
        assert context.endswith("--- END FINANCIAL DATA ---")

    def test_financial_context_derives_acv_from_arr(self):
        context = build_financial_context(
            [MemoResponse(question_key="unit_economics_json", answer=json.dumps({"arr": 100000, "customers": 4}))]
        )
        assert "Calculated ACV (ARR/customers): €25000" in context
        assert "400 customers needed for €10M ARR" in context

    def test_financial_context_empty_without_answers(self):
        assert build_financial_context([MemoResponse(question_key="problem_core", answer="x")]) == ""

    def test_market_section_gets_calculation_note(self):
        assert section_financial_context("Market", "ctx") == "ctx" + MARKET_SECTION_NOTE
        assert section_financial_context("Team", "ctx") == "ctx"
        assert section_financial_context("Market", "") == ""

    def test_normalize_vc_questions(self):
        long_rationale = "Investors will check the cohort retention curves before anything else here."
        questions = normalize_vc_questions(
            [
                "How will you beat competitors?",
                {"question": "What is churn?", "vcRationale": long_rationale, "whatToPrepare": "short"},
                5,
            ],
            "Competition",
        )

        assert questions[0]["vcRationale"] == question_rationale("competitor")
        assert questions[0]["whatToPrepare"].startswith("Prepare a clear, specific answer")
        assert questions[1]["vcRationale"] == long_rationale
        assert questions[1]["whatToPrepare"] != "short"
        assert questions[2]["question"] == "Key question 3"
        assert normalize_vc_questions("not a list") == []


class TestGenerator:
    def test_build_content(self, company, make_gateway):
        gateway = make_gateway(
            [
                _section_reply(),
                _section_reply(),
                _section_reply(),
                _section_reply(),
                _section_reply(),
                {"verdict": "Worth a meeting", "concerns": []},
            ]
        )
        responses = [
            MemoResponse(question_key="problem_core", answer="Pain"),
            MemoResponse(question_key="solution_core", answer="Fix"),
            MemoResponse(question_key="market_size", answer="Big"),
            MemoResponse(question_key="team_story", answer="Us"),
        ]

        content = MemoGenerator(gateway).build_content(company, responses)

        titles = [s["title"] for s in content["sections"]]
        assert titles == ["Problem", "Solution", "Market", "Team", "Investment Thesis"]
        first = content["sections"][0]
        assert "sectionScore" not in first
        assert first["vcReflection"]["questions"][0]["question"] == "Why now?"
        assert content["vcQuickTake"]["verdict"] == "Worth a meeting"
        assert content["holisticScorecard"]["companyName"] == "Acme"
        assert content["reconciliation"]["passed"] is True
        assert len(gateway.calls) == 6
        assert all(call["function_name"] == "generate-full-memo" for call in gateway.calls)

    def test_too_few_sections(self, company, fake_gateway):
        responses = [MemoResponse(question_key="problem_core", answer="Pain")]
        with pytest.raises(MemoGenerationError, match="only 2 sections"):
            MemoGenerator(fake_gateway).build_content(company, responses)

    def test_unparseable_reply_uses_fallback(self, company, make_gateway):
        fallback = {"paragraphs": [{"text": "Short version"}]}
        gateway = make_gateway(["not json at all", fallback])
        assert MemoGenerator(gateway).generate_section(company, "Problem", "Pain", "") == fallback
        assert gateway.calls[1]["max_tokens"] == 1500

    def test_double_failure_yields_placeholder(self, company, make_gateway):
        gateway = make_gateway(["garbage", "still garbage"])
        result = MemoGenerator(gateway).generate_section(company, "Team", "Us", "")
        assert result == placeholder_section("Team")

    def test_gateway_failure_skips_section(self, company, make_gateway):
        gateway = make_gateway([GatewayError("AI gateway error: 500", status_code=500)])
        assert MemoGenerator(gateway).generate_section(company, "Team", "Us", "") is None
        assert len(gateway.calls) == 1


class TestJobs:
    @pytest.mark.parametrize(
        ("elapsed", "message"),
        [
            (0, "Initializing analysis..."),
            (10, "Extracting market context..."),
            (30, "Researching competitors..."),
            (164, "Generating VC Quick Take..."),
            (900, "Finalizing your memo..."),
        ],
    )
    def test_progress_message(self, elapsed, message):
        assert progress_message(elapsed) == message

    def test_running_job(self, company):
        job = MemoJob(id="j1", company_id="co1", status="processing", started_at=NOW)
        assert describe_job(job, company, None, now=NOW + timedelta(seconds=30)) == {
            "status": "processing",
            "elapsedSeconds": 30,
            "message": "Researching competitors...",
        }

    def test_completed_job(self, company):
        job = MemoJob(
            id="j1",
            company_id="co1",
            status="completed",
            started_at=NOW,
            completed_at=NOW + timedelta(seconds=42),
        )
        memo = Memo(id="m1", company_id="co1", structured_content={"sections": []}, created_at=NOW, updated_at=NOW)

        payload = describe_job(job, company, memo)

        assert payload["status"] == "completed"
        assert payload["memoId"] == "m1"
        assert payload["generationTime"] == "42"
        assert payload["company"]["name"] == "Acme"

    def test_completed_job_without_memo(self, company):
        job = MemoJob(id="j1", company_id="co1", status="completed", started_at=NOW, completed_at=NOW)
        assert describe_job(job, company, None)["status"] == "failed"

    def test_failed_job(self, company):
        job = MemoJob(id="j1", company_id="co1", status="failed", started_at=NOW)
        assert describe_job(job, company, None) == {"status": "failed", "error": "Memo generation failed"}


def _complete_content() -> dict:
    sections = [{"title": f"Section {i}", "vcReflection": {"questions": []}} for i in range(7)]
    sections.append({"title": "Investment Thesis"})
    return {"sections": sections, "vcQuickTake": {"verdict": "Take the meeting"}}


def test_complete_memo_detection():
    content = _complete_content()
    assert is_complete_memo(content)

    assert not is_complete_memo(None)
    assert not is_complete_memo({**content, "sections": content["sections"][1:]})
    assert not is_complete_memo({**content, "vcQuickTake": None})
    assert not is_complete_memo({**content, "sections": content["sections"][:-1] + [{"title": "Vision"}]})


def test_plain_string_questions_make_memo_incomplete():
    content = _complete_content()
    content["sections"][0]["vcReflection"] = {"questions": ["Why now?"]}
    assert not is_complete_memo(content)

    content["sections"][0]["vcReflection"] = {
        "questions": [{"question": "Why now?", "vcRationale": "Timing", "whatToPrepare": "Data"}]
    }
    assert is_complete_memo(content)
