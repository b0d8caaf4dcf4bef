"""Unit tests for rate limiting middleware

Tests cover:
- Requests under limit allowed
- Minute and hour limit enforcement
- Health endpoint bypass
- Per-IP isolation behind the hosting proxy
- Spoofed X-Forwarded-For ignored on direct calls
- CORS headers on 429 responses
- Memory cleanup
"""

from __future__ import annotations

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from readiness.api.middleware.rate_limit import RateLimitMiddleware

PROXY = {"X-Cloud-Trace-Context": "trace/1"}


def create_test_app(requests_per_minute: int = 5, requests_per_hour: int = 20) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=requests_per_minute,
        requests_per_hour=requests_per_hour,
        allowed_origins=["https://app.example.com"],
    )

    @test_app.get("/api/test")
    async def test_endpoint():
        return {"status": "ok"}

    @test_app.get("/health")
    async def health():
        return {"status": "healthy"}

    return test_app


@pytest.fixture
def client():
    return TestClient(create_test_app())


def test_requests_under_limit_allowed(client):
    for _ in range(3):
        response = client.get("/api/test")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit-Minute"] == "5"


def test_minute_limit_enforced(client):
    for _ in range(5):
        assert client.get("/api/test").status_code == 200

    response = client.get("/api/test")
    assert response.status_code == 429
    assert response.json() == {"detail": "Rate limit exceeded. Maximum 5 requests per minute.", "retry_after": 60}
    assert response.headers["Retry-After"] == "60"


def test_hour_limit_enforced():
    client = TestClient(create_test_app(requests_per_minute=100, requests_per_hour=3))
    for _ in range(3):
        assert client.get("/api/test").status_code == 200

    response = client.get("/api/test")
    assert response.status_code == 429
    assert "per hour" in response.json()["detail"]
    assert response.headers["Retry-After"] == "3600"


def test_health_endpoints_bypass_rate_limit(client):
    for _ in range(6):
        client.get("/api/test")

    response = client.get("/health")
    assert response.status_code == 200
    assert "X-RateLimit-Limit-Minute" not in response.headers


def test_remaining_headers_count_down(client):
    response = client.get("/api/test")
    assert response.headers["X-RateLimit-Remaining-Minute"] == "4"
    assert response.headers["X-RateLimit-Remaining-Hour"] == "19"

    response = client.get("/api/test")
    assert response.headers["X-RateLimit-Remaining-Minute"] == "3"
    assert response.headers["X-RateLimit-Remaining-Hour"] == "18"


def test_per_ip_isolation_behind_proxy(client):
    for _ in range(5):
        response = client.get("/api/test", headers={**PROXY, "X-Forwarded-For": "203.0.113.1, 10.0.0.1"})
        assert response.status_code == 200

    assert client.get("/api/test", headers={**PROXY, "X-Forwarded-For": "203.0.113.1"}).status_code == 429
    assert client.get("/api/test", headers={**PROXY, "X-Forwarded-For": "203.0.113.2"}).status_code == 200


def test_spoofed_forwarded_for_is_ignored(client):
    """Without the proxy header every request counts against the socket address"""
    for i in range(5):
        assert client.get("/api/test", headers={"X-Forwarded-For": f"198.51.100.{i}"}).status_code == 200

    assert client.get("/api/test", headers={"X-Forwarded-For": "198.51.100.99"}).status_code == 429


def test_rate_limited_response_carries_cors_headers(client):
    for _ in range(5):
        client.get("/api/test")

    allowed = client.get("/api/test", headers={"Origin": "https://app.example.com"})
    assert allowed.status_code == 429
    assert allowed.headers["Access-Control-Allow-Origin"] == "https://app.example.com"

    other = client.get("/api/test", headers={"Origin": "https://evil.example.com"})
    assert "Access-Control-Allow-Origin" not in other.headers


def test_memory_cleanup():
    middleware = RateLimitMiddleware(FastAPI().router, requests_per_minute=100, requests_per_hour=1000)

    for i in range(100):
        middleware.minute_buckets[f"192.168.1.{i}"] = [time.time()]
        middleware.hour_buckets[f"192.168.1.{i}"] = [time.time()]

    old_timestamp = time.time() - 10800
    for i in range(50):
        middleware.minute_buckets[f"192.168.2.{i}"] = [old_timestamp]
        middleware.hour_buckets[f"192.168.2.{i}"] = [old_timestamp]

    assert len(middleware.minute_buckets) == 150
    middleware._cleanup_old_buckets()
    assert len(middleware.minute_buckets) == 100
