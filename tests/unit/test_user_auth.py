"""Unit tests for Supabase token verification

Tests cover:
- Valid token resolves the user and is cached
- Rejected token returns 401
- Unreachable auth service returns 503
- Optional user dependency swallows auth failures
"""

from __future__ import annotations

import httpx
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from readiness.api.middleware import user_auth
from readiness.api.middleware.user_auth import (
    AuthenticatedUser,
    clear_token_cache,
    get_current_user,
    get_optional_user,
)

REAL_ASYNC_CLIENT = httpx.AsyncClient

SUPABASE_USER = {
    "id": "6f1c0a52-0000-4000-8000-000000000001",
    "email": "founder@startup.io",
    "user_metadata": {"full_name": "Sam Founder", "avatar_url": "https://img.example.com/sam.png"},
}


@pytest.fixture
def supabase(monkeypatch):
    """Route the verifier's HTTP calls to a handler; returns the list of seen requests."""
    seen: list[httpx.Request] = []
    state = {"handler": lambda request: httpx.Response(200, json=SUPABASE_USER)}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return state["handler"](request)

    monkeypatch.setattr(user_auth.settings, "SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setattr(user_auth.settings, "SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setattr(
        user_auth.httpx,
        "AsyncClient",
        lambda **kwargs: REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler), **kwargs),
    )
    clear_token_cache()
    yield state, seen
    clear_token_cache()


@pytest.fixture
def client():
    test_app = FastAPI()

    @test_app.get("/me")
    async def me(user: AuthenticatedUser = Depends(get_current_user)):
        return {"id": user.id, "name": user.name, "picture": user.picture}

    @test_app.get("/maybe")
    async def maybe(user: AuthenticatedUser | None = Depends(get_optional_user)):
        return {"id": user.id if user else None}

    return TestClient(test_app)


def test_valid_token(supabase, client):
    _, seen = supabase

    response = client.get("/me", headers={"Authorization": "Bearer good-token"})

    assert response.status_code == 200
    assert response.json() == {
        "id": SUPABASE_USER["id"],
        "name": "Sam Founder",
        "picture": "https://img.example.com/sam.png",
    }
    assert str(seen[0].url) == "https://project.supabase.co/auth/v1/user"
    assert seen[0].headers["apikey"] == "anon-key"


def test_token_is_cached(supabase, client):
    _, seen = supabase
    for _ in range(3):
        assert client.get("/me", headers={"Authorization": "Bearer good-token"}).status_code == 200
    assert len(seen) == 1


def test_rejected_token(supabase, client):
    state, _ = supabase
    state["handler"] = lambda request: httpx.Response(401, json={"msg": "invalid JWT"})

    response = client.get("/me", headers={"Authorization": "Bearer expired"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_auth_service_unreachable(supabase, client):
    state, _ = supabase

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    state["handler"] = unreachable

    response = client.get("/me", headers={"Authorization": "Bearer good-token"})
    assert response.status_code == 503


def test_missing_and_malformed_header(supabase, client):
    assert client.get("/me").json()["detail"] == "Missing authorization header"
    response = client.get("/me", headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    assert "Invalid authorization header format" in response.json()["detail"]


def test_optional_user(supabase, client):
    state, _ = supabase
    assert client.get("/maybe").json() == {"id": None}
    assert client.get("/maybe", headers={"Authorization": "Bearer good-token"}).json() == {"id": SUPABASE_USER["id"]}

    clear_token_cache()
    state["handler"] = lambda request: httpx.Response(401)
    assert client.get("/maybe", headers={"Authorization": "Bearer good-token"}).json() == {"id": None}


def test_missing_supabase_url(monkeypatch, client):
    monkeypatch.setattr(user_auth.settings, "SUPABASE_URL", "")
    clear_token_cache()
    response = client.get("/me", headers={"Authorization": "Bearer good-token"})
    assert response.status_code == 500
