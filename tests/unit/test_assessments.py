"""Unit tests for the LLM-backed quick diagnostics"""

from __future__ import annotations

import pytest

from readiness.assessments.consistency import check_answer_consistency
from readiness.assessments.metrics import (
    MetricEstimateRequest,
    estimate_primary_metric,
    fallback_estimate,
)
from readiness.assessments.roast import category_breakdown, generate_roast_verdict, weakest_areas
from readiness.assessments.vc_verdict import (
    DEFAULT_DIAGNOSTIC,
    detect_founder_profile,
    generate_vc_verdict,
)
from readiness.llm.gateway import GatewayError

ROAST_RESULTS = [
    {"category": "Market", "score": 8, "question": "How big?", "answer": "Huge"},
    {"category": "Market", "score": 7},
    {"category": "Team", "score": 4},
]


def _metric_request(**overrides) -> MetricEstimateRequest:
    fields = {
        "company_name": "Acme",
        "category": "SaaS",
        "stage": "seed",
        "business_model_type": "b2b_smb_saas",
        "currency": "EUR",
        "primary_metric_label": "ACV",
    }
    fields.update(overrides)
    return MetricEstimateRequest(**fields)


class TestVCVerdict:
    @pytest.mark.parametrize(
        ("background", "profile"),
        [
            ("I previously sold my startup", "serial_founder"),
            ("PhD in computer vision", "technical_founder"),
            ("Ten years in consulting", "business_founder"),
            ("Twenty years in logistics", "domain_expert"),
            (None, "first_time_founder"),
        ],
    )
    def test_detect_founder_profile(self, background, profile):
        assert detect_founder_profile(background) == profile

    def test_model_verdict_is_normalized(self, make_gateway):
        gateway = make_gateway([{"verdict": "Strong team, unclear wedge", "readinessLevel": "HIGH"}])

        verdict = generate_vc_verdict(
            gateway,
            "Acme",
            stage="Seed",
            category="SaaS",
            responses=[{"question_key": "founder_background", "answer": "I previously sold my startup"}],
        )

        assert verdict["verdict"] == "Strong team, unclear wedge"
        assert verdict["readinessLevel"] == "HIGH"
        assert verdict["founderProfile"] == "serial_founder"
        assert verdict["diagnosticSummary"] == DEFAULT_DIAGNOSTIC
        assert verdict["inevitabilityStatement"] == DEFAULT_DIAGNOSTIC
        assert verdict["concerns"] == []
        assert 6 <= verdict["hiddenIssuesCount"] <= 10
        assert "SaaS pitch at Seed stage" in verdict["preparationSummary"]
        assert gateway.calls[0]["function_name"] == "generate-vc-verdict"

    def test_unparseable_reply_uses_category_fallback(self, make_gateway):
        gateway = make_gateway(["I cannot answer that"])
        verdict = generate_vc_verdict(gateway, "Acme", category="Fintech", forced_founder_profile="domain_expert")

        assert verdict["verdict"].startswith("VCs will probe on unit economics")
        assert verdict["readinessLevel"] == "LOW"
        assert verdict["founderProfile"] == "domain_expert"
        assert verdict["hiddenIssuesCount"] == 8

    def test_invalid_readiness_level_defaults_to_low(self, make_gateway):
        gateway = make_gateway([{"verdict": "Fine", "readinessLevel": "EXCELLENT"}])
        assert generate_vc_verdict(gateway, "Acme")["readinessLevel"] == "LOW"


class TestRoast:
    def test_breakdown_and_weakest(self):
        breakdown = category_breakdown(ROAST_RESULTS)
        assert breakdown == [
            {"category": "Market", "score": 7.5, "maxScore": 10},
            {"category": "Team", "score": 4.0, "maxScore": 10},
        ]
        assert weakest_areas(breakdown) == ["Team", "Market"]

    def test_model_verdict(self, make_gateway):
        gateway = make_gateway([{"verdictTitle": "Promising", "investorReadiness": "getting_there"}])
        verdict = generate_roast_verdict(gateway, ROAST_RESULTS, "Acme", 300)

        assert verdict["totalScore"] == 19
        assert verdict["verdictTitle"] == "Promising"
        assert len(verdict["categoryBreakdown"]) == 2

    def test_fallback_verdict(self, make_gateway):
        verdict = generate_roast_verdict(make_gateway(["not json"]), ROAST_RESULTS)
        assert verdict["verdictTitle"] == "Room to Grow"
        assert verdict["investorReadiness"] == "not_ready"
        assert verdict["assessment"].startswith("You scored 19/100.")

    def test_results_required(self, fake_gateway):
        with pytest.raises(ValueError, match="Results array is required"):
            generate_roast_verdict(fake_gateway, [])


class TestPrimaryMetric:
    def test_fallback_scales_by_stage(self):
        estimate = fallback_estimate(_metric_request())
        assert estimate["value"] == 5100
        assert estimate["range"] == {"low": 1700, "high": 10200}
        assert estimate["confidence"] == "low"

    def test_unknown_model_uses_default_benchmark(self):
        assert fallback_estimate(_metric_request(business_model_type="other", stage="growth"))["value"] == 10000

    def test_model_estimate_keeps_requested_currency(self, make_gateway):
        gateway = make_gateway([{"value": 5000, "currency": "USD", "confidence": "high"}])
        estimate = estimate_primary_metric(gateway, _metric_request(pricing_hints="€400/month"))

        assert estimate["value"] == 5000
        assert estimate["currency"] == "EUR"
        assert "Pricing Signals: €400/month" in gateway.calls[0]["messages"][1]["content"]

    def test_unparseable_reply_falls_back(self, make_gateway):
        estimate = estimate_primary_metric(make_gateway(["??"]), _metric_request())
        assert estimate["methodology"].startswith("Industry benchmark fallback")

    def test_empty_reply_is_an_error(self, make_gateway):
        with pytest.raises(GatewayError) as exc_info:
            estimate_primary_metric(make_gateway([""]), _metric_request())
        assert exc_info.value.status_code == 502


class TestConsistency:
    ANSWERS = {
        "current_traction": "We have 40 paying customers and growing.",
        "target_customer": "Mid-market logistics companies in Germany.",
        "why_now": "short",
    }

    def test_missing_fields(self, fake_gateway):
        with pytest.raises(ValueError, match="Missing required fields"):
            check_answer_consistency(fake_gateway, "co1", None, {})

    def test_not_enough_answers_skips_model(self, fake_gateway):
        result = check_answer_consistency(fake_gateway, "co1", "why_now", {"why_now": "Because AI is here now."})
        assert result == {"flags": [], "hasEnoughData": False}
        assert fake_gateway.calls == []

    def test_flags_returned(self, make_gateway):
        flag = {"type": "contradiction", "questionKeys": ["current_traction", "target_customer"]}
        gateway = make_gateway([{"flags": [flag]}])

        result = check_answer_consistency(gateway, "co1", "current_traction", self.ANSWERS)

        assert result == {"flags": [flag], "allClear": False, "hasEnoughData": True}
        assert "## why_now" not in gateway.calls[0]["messages"][1]["content"]

    def test_unparseable_reply_is_all_clear(self, make_gateway):
        result = check_answer_consistency(make_gateway(["hmm"]), "co1", "why_now", self.ANSWERS)
        assert result == {"flags": [], "allClear": True, "hasEnoughData": True}
