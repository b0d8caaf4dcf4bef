"""API tests for the service surface: health, root, validation errors, admin

Tests cover:
- Health endpoints
- Root endpoint listing
- 422 shape for invalid bodies
- Security headers on responses
- Admin API key protection and usage reporting
- Manual WAL checkpoint
"""

from __future__ import annotations

from readiness.api.middleware.auth import reset_admin_auth
from readiness.infrastructure.llm_budget import record_usage


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert set(data["llm"]) == {"ready"}


def test_database_health(client):
    data = client.get("/health/db").json()
    assert data["status"] in {"healthy", "degraded"}
    assert "usage_percent" in data["pool"]


def test_root_lists_endpoints(client):
    data = client.get("/").json()
    assert data["status"] == "running"
    assert data["endpoints"]["health"] == "/health"
    assert "booking" in data["endpoints"]


def test_validation_error_shape(client):
    response = client.post("/api/scorecard", json={"sectionScores": {}})

    assert response.status_code == 422
    data = response.json()
    assert data["error_count"] >= 1
    assert "companyName" in data["invalid_fields"]


def test_security_headers_present(client):
    response = client.get("/health")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_admin_open_without_configured_key(client):
    record_usage("generate-vc-verdict", "google/gemini-2.5-flash", 100, 10)

    response = client.get("/api/admin/ai-usage", params={"range": "all"})

    assert response.status_code == 200
    assert response.json()["totalCalls"] == 1


def test_admin_requires_key_when_configured(client, monkeypatch):
    monkeypatch.setenv("READINESS_ADMIN_API_KEY", "admin-secret")
    reset_admin_auth()

    assert client.get("/api/admin/db-stats").status_code == 401
    assert client.get("/api/admin/db-stats", headers={"Authorization": "Bearer nope"}).status_code == 403

    response = client.get("/api/admin/db-stats", headers={"Authorization": "Bearer admin-secret"})
    assert response.status_code == 200
    assert set(response.json()) == {"pool", "rows", "counters", "latency"}
    assert response.json()["rows"]["companies"] == 0


def test_admin_unknown_range(client):
    response = client.get("/api/admin/ai-usage", params={"range": "1y"})
    assert response.status_code == 400


def test_admin_wal_checkpoint(client):
    record_usage("generate-vc-verdict", "google/gemini-2.5-flash", 100, 10)

    response = client.post("/api/admin/checkpoint-wal")

    assert response.status_code == 200
    data = response.json()
    assert data["busy"] is False
    assert data["wal_size_after_bytes"] == 0
