"""Admin API key authentication for the Readiness API"""

from __future__ import annotations

import os
import secrets

from fastapi import Header, HTTPException, status

from readiness.observability.logging import get_logger

logger = get_logger(__name__)


class APIKeyAuth:
    """
    Bearer API key check for /api/admin endpoints.

    The key is read from READINESS_ADMIN_API_KEY. With no key configured the
    endpoints are open (local development).
    """

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else os.getenv("READINESS_ADMIN_API_KEY")
        if not self.api_key:
            logger.warning("READINESS_ADMIN_API_KEY not set - admin endpoints are unprotected!")

    def verify_api_key(self, authorization: str | None = Header(None)) -> bool:
        """
        Verify API key from Authorization header.

        Expected format: "Bearer {api_key}"
        """
        if not self.api_key:
            return True

        if not authorization:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authorization header",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            scheme, token = authorization.split()
            if scheme.lower() != "bearer":
                raise ValueError("Invalid authentication scheme")
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization header format. Expected: Bearer {api_key}",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        # Timing-safe comparison
        if not secrets.compare_digest(token, self.api_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid API key",
            )

        return True


_auth: APIKeyAuth | None = None


def get_admin_auth() -> APIKeyAuth:
    global _auth
    if _auth is None:
        _auth = APIKeyAuth()
    return _auth


def reset_admin_auth() -> None:
    """Drop the cached key so the next request re-reads the environment (tests)."""
    global _auth
    _auth = None


def require_admin_auth(authorization: str | None = Header(None)) -> bool:
    """
    Dependency for admin endpoints.

    Usage:
        @router.get("/api/admin/endpoint")
        def admin_endpoint(authenticated: bool = Depends(require_admin_auth)):
            ...
    """
    return get_admin_auth().verify_api_key(authorization)
