"""
Error message sanitization.

Unexpected exceptions reach clients only as generic per-status messages so
paths, SQL errors and keys never leak through HTTP responses.
"""

from __future__ import annotations

import re

from readiness.observability.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack traces
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"FOREIGN KEY constraint",
    r"no such table",
    r"no such column",
    # Keys and tokens
    r"[A-Za-z0-9_-]{20,}",
    r"Bearer [A-Za-z0-9._-]+",
    # Internal module names
    r"readiness\.[a-z_.]+",
]
SENSITIVE_REGEX = re.compile("|".join(SENSITIVE_PATTERNS), re.IGNORECASE)

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    402: "AI credits exhausted.",
    403: "Access denied.",
    404: "Resource not found.",
    409: "Request conflicts with the current state.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "Upstream service error.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(
    message: str,
    status_code: int = 500,
    allow_field_names: bool = True,
) -> str:
    """
    Return a client-safe version of message.

    400 responses keep short, structure-free validation messages; every other
    status falls back to the generic text.
    """
    fallback = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return fallback

    if SENSITIVE_REGEX.search(message):
        logger.warning("Sanitized sensitive error message (status=%d)", status_code)
        return fallback

    if (
        status_code == 400
        and allow_field_names
        and len(message) < 100
        and not any(c in message for c in "{}[]\n")
    ):
        return message

    return fallback
