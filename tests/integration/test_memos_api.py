"""API tests for companies, questionnaire answers and memo generation

Tests cover:
- Company creation and ownership checks
- Answer upserts
- Generate -> background job -> poll until completed
- Reusing an in-flight job
- Serving a complete stored memo from cache unless forced
- Daily budget rejection marks the job failed
"""

from __future__ import annotations

import pytest

from readiness.api import dependencies
from readiness.infrastructure.llm_budget import BudgetStatus
from readiness.memos.repository import MemoRepository

from api_users import FOUNDER, INVESTOR

ANSWERS = [
    {"question_key": "problem_core", "answer": "Freight brokers lose hours to manual quoting."},
    {"question_key": "solution_core", "answer": "Instant quotes from historical lane data."},
    {"question_key": "market_size", "answer": "EUR 4B European brokerage software market."},
    {"question_key": "team_story", "answer": "Two ex-logistics operators and an ML engineer."},
]


def _section(score: int = 72) -> dict:
    return {
        "narrative": {"paragraphs": [{"text": "A clear and focused analysis.", "emphasis": "normal"}]},
        "sectionScore": {"score": score, "vcBenchmark": 60},
        "vcReflection": {"questions": ["Why now?"]},
    }


@pytest.fixture
def company_id(client, login):
    login(FOUNDER)
    response = client.post("/api/companies", json={"name": "Acme", "stage": "Seed", "category": "SaaS"})
    assert response.status_code == 201
    return response.json()["id"]


def test_create_and_read_company(client, login, company_id):
    response = client.put(f"/api/companies/{company_id}/responses", json={"responses": ANSWERS})
    assert response.json() == {"success": True, "saved": 4}

    # Upsert by question_key
    client.put(
        f"/api/companies/{company_id}/responses",
        json={"responses": [{"question_key": "team_story", "answer": "Updated"}]},
    )

    data = client.get(f"/api/companies/{company_id}").json()
    assert data["name"] == "Acme"
    assert data["founder_id"] == FOUNDER.id
    answers = {r["question_key"]: r["answer"] for r in data["responses"]}
    assert len(answers) == 4
    assert answers["team_story"] == "Updated"


def test_company_belongs_to_founder(client, login, company_id):
    login(INVESTOR)
    assert client.get(f"/api/companies/{company_id}").status_code == 403
    assert client.get("/api/companies/missing").status_code == 404


def test_company_name_required(client, login):
    login(FOUNDER)
    assert client.post("/api/companies", json={"name": ""}).status_code == 422


def test_generate_and_poll(client, login, use_gateway, make_gateway, company_id):
    client.put(f"/api/companies/{company_id}/responses", json={"responses": ANSWERS})
    gateway = make_gateway([_section(), _section(), _section(), _section(), _section(), {"verdict": "Take the meeting"}])
    use_gateway(gateway)

    response = client.post("/api/memos/generate", json={"companyId": company_id})
    assert response.status_code == 202
    started = response.json()
    assert started["message"] == "Memo generation started"

    # TestClient runs background tasks before returning
    job = client.get(f"/api/memos/jobs/{started['jobId']}").json()
    assert job["status"] == "completed"
    assert job["company"]["name"] == "Acme"
    content = job["structuredContent"]
    assert [s["title"] for s in content["sections"]][-1] == "Investment Thesis"
    assert content["vcQuickTake"]["verdict"] == "Take the meeting"
    assert content["holisticScorecard"]["overallScore"] > 0

    company = client.get(f"/api/companies/{company_id}").json()
    assert company["memo_content_generated"] is True
    assert company["public_score"] == content["holisticScorecard"]["overallScore"]


def test_failed_generation_is_reported(client, login, use_gateway, make_gateway, company_id):
    client.put(f"/api/companies/{company_id}/responses", json={"responses": ANSWERS[:1]})
    use_gateway(make_gateway())

    job_id = client.post("/api/memos/generate", json={"companyId": company_id}).json()["jobId"]

    job = client.get(f"/api/memos/jobs/{job_id}").json()
    assert job["status"] == "failed"
    assert "only 2 sections" in job["error"]


def test_in_flight_job_is_reused(client, login, use_gateway, make_gateway, company_id):
    use_gateway(make_gateway())
    running = MemoRepository.create_job(company_id)

    response = client.post("/api/memos/generate", json={"companyId": company_id})

    assert response.json()["jobId"] == running.id
    assert response.json()["message"] == "Generation already in progress"


def test_generate_requires_auth_for_regular_company(client, login, use_gateway, make_gateway, company_id):
    use_gateway(make_gateway())
    login(None)
    response = client.post("/api/memos/generate", json={"companyId": company_id})
    assert response.status_code == 401


def test_unknown_job(client, login):
    login(FOUNDER)
    assert client.get("/api/memos/jobs/nope").status_code == 404


def test_budget_exhausted(client, login, use_gateway, make_gateway, company_id, monkeypatch):
    use_gateway(make_gateway())
    monkeypatch.setattr(
        dependencies,
        "check_budget",
        lambda user_id: BudgetStatus(200, 200, 200, 10000, False, "User daily limit exceeded (200/200)"),
    )

    response = client.post("/api/memos/generate", json={"companyId": company_id})

    assert response.status_code == 429
    assert response.json()["detail"] == "Daily AI usage limit reached. Please try again tomorrow."
    assert MemoRepository.get_in_flight_job(company_id) is None


def _stored_memo(section_count: int = 8) -> dict:
    titles = ["Problem", "Solution", "Market", "Competition", "Team", "Business Model", "Traction"]
    sections = [
        {
            "title": title,
            "paragraphs": [{"text": "Analysis."}],
            "vcReflection": {"questions": [{"question": "Why now?", "vcRationale": "Timing", "whatToPrepare": "Data"}]},
        }
        for title in titles[: section_count - 1]
    ]
    sections.append({"title": "Investment Thesis", "paragraphs": [{"text": "Thesis."}]})
    return {"sections": sections, "vcQuickTake": {"verdict": "Take the meeting"}}


def test_complete_memo_is_served_from_cache(client, login, use_gateway, make_gateway, company_id):
    gateway = make_gateway()
    use_gateway(gateway)
    memo_id = MemoRepository.save_structured_content(company_id, _stored_memo())

    response = client.post("/api/memos/generate", json={"companyId": company_id})

    assert response.status_code == 200
    data = response.json()
    assert data["fromCache"] is True
    assert data["memoId"] == memo_id
    assert data["company"]["name"] == "Acme"
    assert data["structuredContent"]["vcQuickTake"]["verdict"] == "Take the meeting"
    assert gateway.calls == []
    assert MemoRepository.get_in_flight_job(company_id) is None


def test_force_or_incomplete_memo_regenerates(client, login, use_gateway, make_gateway, company_id):
    use_gateway(make_gateway())
    MemoRepository.save_structured_content(company_id, _stored_memo(section_count=5))

    response = client.post("/api/memos/generate", json={"companyId": company_id})
    assert response.status_code == 202
    assert "fromCache" not in response.json()

    MemoRepository.save_structured_content(company_id, _stored_memo())
    response = client.post("/api/memos/generate", json={"companyId": company_id, "force": True})
    assert response.status_code == 202
    assert response.json()["message"] == "Memo generation started"
