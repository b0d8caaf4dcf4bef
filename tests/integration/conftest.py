"""Fixtures for API tests: a TestClient with auth and the gateway overridden."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from readiness.api.app import app
from readiness.api.middleware.auth import reset_admin_auth
from readiness.api.middleware.user_auth import AuthenticatedUser, get_current_user, get_optional_user
from readiness.llm.gateway import get_gateway


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_admin_auth()


@pytest.fixture
def login():
    """login(user) makes every request run as user; login(None) signs out."""

    def _login(user: AuthenticatedUser | None) -> None:
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
            app.dependency_overrides[get_optional_user] = lambda: None
            return
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user

    return _login


@pytest.fixture
def use_gateway():
    """use_gateway(fake) routes every AI call to fake."""

    def _use(gateway) -> None:
        app.dependency_overrides[get_gateway] = lambda: gateway

    return _use
