"""Gateway POST with retry.

Network failures and 5xx responses are converted to TimeoutError /
ConnectionError and retried with exponential backoff; every other response
(including 429 and 402) is returned to the caller untouched.
"""

from __future__ import annotations

from typing import Any

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from readiness.config import LLM_MAX_RETRIES
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError)),
    reraise=True,
)
def post_completion(
    session: requests.Session,
    url: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    timeout: float,
) -> requests.Response:
    """POST a chat-completions payload.

    Raises:
        TimeoutError: Request timed out (retryable).
        ConnectionError: Network failure or 5xx response (retryable).
    """
    try:
        response = session.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.Timeout as e:
        counter("llm.gateway.timeout")
        logger.warning("Gateway call timed out after %ss", timeout)
        raise TimeoutError(f"Gateway call timed out: {e}") from e
    except requests.ConnectionError as e:
        counter("llm.gateway.connection_error")
        logger.warning("Gateway unreachable, will retry: %s", e)
        raise ConnectionError(f"Gateway unreachable: {e}") from e

    if response.status_code >= 500:
        counter("llm.gateway.server_error")
        logger.warning("Gateway returned %d, will retry", response.status_code)
        raise ConnectionError(f"Gateway server error: {response.status_code}")

    return response
