"""Rate limiting middleware for the Readiness API

Per-IP minute and hour windows kept in memory.

- X-Forwarded-For is trusted only behind the hosting proxy (or in development)
- Buckets live in TTLCache so idle IPs are evicted
"""

from __future__ import annotations

import ipaddress
import secrets
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from readiness.config import RATE_LIMIT_MAX_IPS, RATE_LIMIT_RPH, RATE_LIMIT_RPM
from readiness.infrastructure.settings import is_development
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event
from readiness.utils.redaction import redact

logger = get_logger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/health/db", "/"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware.

    Single-instance only; a multi-instance deployment needs a shared store.
    """

    def __init__(
        self,
        app: Any,
        requests_per_minute: int = RATE_LIMIT_RPM,
        requests_per_hour: int = RATE_LIMIT_RPH,
        allowed_origins: list[str] | None = None,
        trusted_proxy_header: str = "X-Cloud-Trace-Context",
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.allowed_origins = set(allowed_origins or [])

        # {ip: [timestamp, ...]}
        self.minute_buckets: TTLCache[str, list[float]] = TTLCache(
            maxsize=RATE_LIMIT_MAX_IPS, ttl=120
        )
        self.hour_buckets: TTLCache[str, list[float]] = TTLCache(
            maxsize=RATE_LIMIT_MAX_IPS, ttl=7200
        )

        # Set by the hosting proxy; X-Forwarded-For is only trusted when present
        self._trusted_proxy_header = trusted_proxy_header

    def _is_valid_ip(self, ip_str: str) -> bool:
        try:
            ipaddress.ip_address(ip_str)
            return True
        except ValueError:
            return False

    def _forwarded_ip(self, request: Request) -> str | None:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if self._is_valid_ip(ip):
                return ip
        return None

    def _get_client_ip(self, request: Request) -> str:
        """Client IP, ignoring forwarding headers a direct caller could spoof."""
        if self._trusted_proxy_header in request.headers:
            ip = self._forwarded_ip(request)
            if ip:
                return ip

        if is_development():
            ip = self._forwarded_ip(request)
            if ip:
                return ip
            real_ip = request.headers.get("X-Real-IP")
            if real_ip and self._is_valid_ip(real_ip):
                return real_ip

        return request.client.host if request.client else "unknown"

    def _clean_old_requests(self, bucket: list[float], max_age_seconds: int) -> list[float]:
        now = time.time()
        return [ts for ts in bucket if now - ts < max_age_seconds]

    def _cleanup_old_buckets(self) -> None:
        """Drop IPs idle for two hours."""
        now = time.time()
        max_idle_time = 7200

        for ip in list(self.minute_buckets.keys()):
            bucket = self.minute_buckets.get(ip, [])
            if not bucket or now - max(bucket) > max_idle_time:
                self.minute_buckets.pop(ip, None)
                self.hour_buckets.pop(ip, None)

    def _limited(self, request: Request, client_ip: str, window: str, count: int) -> JSONResponse:
        limit, retry_after = (
            (self.requests_per_minute, 60) if window == "minute" else (self.requests_per_hour, 3600)
        )
        counter("api.rate_limited")
        log_event("api.rate_limit.request_exceeded", ip=redact(client_ip), limit=window, count=count)

        # Rejected before CORSMiddleware sees the response
        headers = {"Retry-After": str(retry_after)}
        origin = request.headers.get("origin", "")
        if origin in self.allowed_origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"

        return JSONResponse(
            status_code=429,
            content={
                "detail": f"Rate limit exceeded. Maximum {limit} requests per {window}.",
                "retry_after": retry_after,
            },
            headers=headers,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        # 1% of requests
        if secrets.randbelow(100) == 0:
            self._cleanup_old_buckets()

        client_ip = self._get_client_ip(request)
        now = time.time()

        minute_bucket = self._clean_old_requests(self.minute_buckets.get(client_ip, []), 60)
        hour_bucket = self._clean_old_requests(self.hour_buckets.get(client_ip, []), 3600)

        minute_requests = len(minute_bucket)
        if minute_requests >= self.requests_per_minute:
            self.minute_buckets[client_ip] = minute_bucket
            return self._limited(request, client_ip, "minute", minute_requests)

        hour_requests = len(hour_bucket)
        if hour_requests >= self.requests_per_hour:
            self.hour_buckets[client_ip] = hour_bucket
            return self._limited(request, client_ip, "hour", hour_requests)

        minute_bucket.append(now)
        hour_bucket.append(now)
        self.minute_buckets[client_ip] = minute_bucket
        self.hour_buckets[client_ip] = hour_bucket

        response = await call_next(request)

        response.headers["X-RateLimit-Limit-Minute"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining-Minute"] = str(
            self.requests_per_minute - minute_requests - 1
        )
        response.headers["X-RateLimit-Limit-Hour"] = str(self.requests_per_hour)
        response.headers["X-RateLimit-Remaining-Hour"] = str(
            self.requests_per_hour - hour_requests - 1
        )

        return response
