"""API tests for the AI-backed assessment endpoints

Tests cover:
- Successful verdicts with a fake gateway
- Gateway 429 / 402 passed through with their message
- Request validation (400 / 422)
- Daily budget charged to signed-in users only
"""

from __future__ import annotations

from readiness.infrastructure.llm_budget import check_budget
from readiness.llm.gateway import CreditsExhaustedError, GatewayError, RateLimitedError

from api_users import FOUNDER

VERDICT_BODY = {"companyName": "Acme", "stage": "Seed", "category": "SaaS"}


def test_vc_verdict(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway([{"verdict": "Promising wedge", "readinessLevel": "MEDIUM"}]))

    response = client.post("/api/assessments/vc-verdict", json=VERDICT_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["verdict"] == "Promising wedge"
    assert data["readinessLevel"] == "MEDIUM"
    assert data["inevitabilityStatement"] == data["diagnosticSummary"]


def test_gateway_rate_limit_passes_through(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway([RateLimitedError("Rate limit exceeded, please try again later.")]))

    response = client.post("/api/assessments/vc-verdict", json=VERDICT_BODY)

    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded, please try again later."


def test_gateway_credits_exhausted_passes_through(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway([CreditsExhaustedError("AI credits exhausted.")]))

    response = client.post("/api/assessments/primary-metric", json={
        "companyName": "Acme",
        "category": "SaaS",
        "stage": "seed",
        "businessModelType": "b2b_smb_saas",
        "primaryMetricLabel": "ACV",
    })

    assert response.status_code == 402
    assert response.json()["detail"] == "AI credits exhausted."


def test_other_gateway_errors_are_sanitized(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway([GatewayError("AI gateway error: 500 secret=abc", status_code=500)]))

    response = client.post("/api/assessments/vc-verdict", json=VERDICT_BODY)

    assert response.status_code == 500
    assert "secret" not in response.json()["detail"]


def test_roast_requires_results(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway())
    response = client.post("/api/assessments/roast-verdict", json={"results": []})
    assert response.status_code == 400
    assert response.json()["detail"] == "Results array is required"


def test_roast_score_out_of_range(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway())
    response = client.post("/api/assessments/roast-verdict", json={"results": [{"category": "Team", "score": 11}]})
    assert response.status_code == 422


def test_roast_verdict(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway(["not json"]))

    response = client.post(
        "/api/assessments/roast-verdict",
        json={"results": [{"category": "Team", "score": 9}, {"category": "Market", "score": 8}], "totalTime": 240},
    )

    data = response.json()
    assert data["totalScore"] == 17
    assert data["verdictTitle"] == "Room to Grow"


def test_consistency_missing_fields(client, login, use_gateway, make_gateway):
    login(None)
    use_gateway(make_gateway())
    response = client.post("/api/assessments/consistency", json={"companyId": "co1"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields"


def test_signed_in_calls_are_counted(client, login, use_gateway, make_gateway):
    login(FOUNDER)
    use_gateway(make_gateway())

    client.post("/api/assessments/vc-verdict", json=VERDICT_BODY)
    client.post("/api/assessments/vc-verdict", json=VERDICT_BODY)

    assert check_budget(FOUNDER.id).user_calls_today == 2
