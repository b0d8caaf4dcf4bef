"""Unit tests for admin API key authentication and security headers

Tests cover:
- Missing authorization header
- Invalid authorization schemes
- Incorrect and correct API keys
- Open access when no key is configured
- Security headers on every response
"""

from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from readiness.api.middleware.auth import APIKeyAuth, get_admin_auth, reset_admin_auth
from readiness.api.middleware.security_headers import SecurityHeadersMiddleware


def create_test_app(api_key: str | None = None) -> FastAPI:
    auth_instance = APIKeyAuth(api_key=api_key or "")

    test_app = FastAPI()

    @test_app.get("/protected")
    async def protected(_authenticated: bool = Depends(auth_instance.verify_api_key)):
        return {"status": "ok"}

    return test_app


def test_auth_rejects_missing_header():
    response = TestClient(create_test_app("test-key-123")).get("/protected")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authorization header"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_auth_rejects_invalid_scheme():
    client = TestClient(create_test_app("test-key-123"))
    for header in ("Basic abc123", "InvalidFormat", "Bearer "):
        response = client.get("/protected", headers={"Authorization": header})
        assert response.status_code == 401
        assert "Invalid authorization header format" in response.json()["detail"]


def test_auth_rejects_wrong_key():
    response = TestClient(create_test_app("correct-key")).get(
        "/protected", headers={"Authorization": "Bearer wrong-key"}
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid API key"


def test_auth_accepts_correct_key_any_scheme_case():
    client = TestClient(create_test_app("correct-key"))
    for scheme in ("Bearer", "bearer", "BEARER"):
        response = client.get("/protected", headers={"Authorization": f"{scheme} correct-key"})
        assert response.status_code == 200


def test_auth_open_when_no_key_configured():
    assert TestClient(create_test_app(None)).get("/protected").status_code == 200


def test_admin_auth_reads_environment(monkeypatch):
    monkeypatch.setenv("READINESS_ADMIN_API_KEY", "env-key")
    reset_admin_auth()
    try:
        assert get_admin_auth().api_key == "env-key"
        assert get_admin_auth() is get_admin_auth()
    finally:
        reset_admin_auth()


def test_security_headers():
    test_app = FastAPI()
    test_app.add_middleware(SecurityHeadersMiddleware, hsts=True)

    @test_app.get("/api/test")
    async def test_endpoint():
        return {"status": "ok"}

    response = TestClient(test_app).get("/api/test")

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
    assert response.headers["Strict-Transport-Security"].startswith("max-age=31536000")


def test_no_hsts_outside_production():
    test_app = FastAPI()
    test_app.add_middleware(SecurityHeadersMiddleware)

    @test_app.get("/api/test")
    async def test_endpoint():
        return {"status": "ok"}

    assert "Strict-Transport-Security" not in TestClient(test_app).get("/api/test").headers
