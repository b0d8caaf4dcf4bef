"""
User authentication for the Readiness API.

Verifies Supabase access tokens issued to the web client and extracts the
user identity.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import HTTPException, Request, status

from readiness.config import AUTH_TIMEOUT_SECONDS, AUTH_TOKEN_CACHE_SIZE, AUTH_TOKEN_CACHE_TTL
from readiness.infrastructure import settings
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter
from readiness.utils.redaction import redact

logger = get_logger(__name__)


@dataclass
class AuthenticatedUser:
    """A Supabase user."""

    id: str  # auth.users id (uuid)
    email: str
    name: str | None = None
    picture: str | None = None

    def __str__(self) -> str:
        return f"User({self.id})"


# Revoked tokens stay valid here for at most AUTH_TOKEN_CACHE_TTL seconds
_token_cache: TTLCache[str, AuthenticatedUser] = TTLCache(
    maxsize=AUTH_TOKEN_CACHE_SIZE, ttl=AUTH_TOKEN_CACHE_TTL
)


def _user_endpoint() -> str:
    if not settings.SUPABASE_URL:
        logger.error("SUPABASE_URL not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: authentication provider not set",
        )
    return f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/user"


async def verify_supabase_token(token: str) -> AuthenticatedUser:
    """
    Verify a Supabase access token and return the user.

    Raises:
        HTTPException: 401 for an invalid or expired token, 503 when Supabase
            cannot be reached
    """
    if token in _token_cache:
        return _token_cache[token]

    url = _user_endpoint()
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": settings.SUPABASE_ANON_KEY,
                },
                timeout=AUTH_TIMEOUT_SECONDS,
            )
        except httpx.TimeoutException:
            logger.warning("Token validation timed out")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from None
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from e

    if response.status_code != 200:
        counter("auth.invalid_token")
        logger.warning("Invalid token (status %d)", response.status_code)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    data = response.json()
    if not data.get("id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    metadata = data.get("user_metadata") or {}
    user = AuthenticatedUser(
        id=data["id"],
        email=data.get("email", ""),
        name=metadata.get("full_name") or metadata.get("name"),
        picture=metadata.get("avatar_url"),
    )
    _token_cache[token] = user

    logger.info("Authenticated user %s (cache size: %d)", redact(user.id), len(_token_cache))
    return user


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return parts[1]


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency for the authenticated caller.

    Usage:
        @router.get("/endpoint")
        def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    token = _extract_bearer_token(request.headers.get("Authorization"))
    return await verify_supabase_token(token)


async def get_optional_user(request: Request) -> AuthenticatedUser | None:
    """
    FastAPI dependency for endpoints that also serve anonymous callers.

    Returns None without an Authorization header or when the token does not
    verify.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None

    try:
        token = _extract_bearer_token(authorization)
        return await verify_supabase_token(token)
    except HTTPException:
        return None


def clear_token_cache() -> None:
    """Clear the token cache (tests)."""
    _token_cache.clear()
