"""
Client for the OpenAI-compatible AI gateway.

All model traffic goes through AIGateway so that status mapping, retries, the
circuit breaker and per-call cost logging behave the same for every feature:

- 429 -> RateLimitedError
- 402 -> CreditsExhaustedError
- other non-2xx -> GatewayError(status_code)
- 5xx / network errors are retried before surfacing as GatewayError(503)
"""

from __future__ import annotations

import json
import os
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from readiness.config import (
    AI_GATEWAY_URL,
    LLM_CIRCUIT_FAIL_MAX,
    LLM_CIRCUIT_RESET_SECONDS,
    LLM_MODEL,
    LLM_TIMEOUT_SECONDS,
)
from readiness.infrastructure.llm_budget import record_usage
from readiness.infrastructure.retry import CircuitBreaker
from readiness.llm.retry import post_completion
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


class GatewayError(Exception):
    """Gateway call failed."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RateLimitedError(GatewayError):
    """Gateway returned 429."""

    status_code = 429


class CreditsExhaustedError(GatewayError):
    """Gateway returned 402 (workspace out of credits)."""

    status_code = 402


class GatewayConfigurationError(GatewayError):
    """No API key configured."""

    status_code = 500


class GatewayUnavailableError(GatewayError):
    """Circuit open or retries exhausted."""

    status_code = 503


@dataclass
class ChatResult:
    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    tool_arguments: dict[str, Any] | None = None


class AIGateway:
    """Synchronous chat-completions client with retry, breaker and usage logging."""

    def __init__(
        self,
        api_key: str | None = None,
        url: str = AI_GATEWAY_URL,
        model: str = LLM_MODEL,
        timeout: float = LLM_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        breaker: CircuitBreaker | None = None,
        log_usage: bool = True,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("LOVABLE_API_KEY", "")
        self.url = url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.breaker = breaker or CircuitBreaker(
            stage="ai_gateway",
            fail_max=LLM_CIRCUIT_FAIL_MAX,
            reset_timeout=LLM_CIRCUIT_RESET_SECONDS,
        )
        self.log_usage = log_usage

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        function_name: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | None = None,
    ) -> ChatResult:
        """
        Send one chat-completions request.

        Args:
            messages: OpenAI-style role/content messages
            function_name: Feature name recorded in ai_usage_logs
            model: Override for the default model
            temperature: Sampling temperature
            max_tokens: Completion token cap
            tools: Function-calling tool definitions
            tool_choice: Force a specific tool

        Raises:
            GatewayError and subclasses (see module docstring)
        """
        if not self.api_key:
            raise GatewayConfigurationError("LOVABLE_API_KEY is not configured")

        if not self.breaker.allow_request():
            raise GatewayUnavailableError("AI gateway temporarily unavailable")

        model_name = model or self.model
        payload: dict[str, Any] = {"model": model_name, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            with time_block(f"llm.{function_name}.latency"):
                response = post_completion(self.session, self.url, headers, payload, self.timeout)
        except (TimeoutError, ConnectionError) as e:
            self.breaker.record_failure()
            self._record(function_name, model_name, {}, start, "error")
            logger.error("Gateway call failed for %s after retries: %s", function_name, e)
            raise GatewayUnavailableError("AI gateway temporarily unavailable") from e
        except requests.RequestException as e:
            self.breaker.record_failure()
            self._record(function_name, model_name, {}, start, "error")
            logger.error("Gateway request failed for %s: %s", function_name, e)
            raise GatewayError("AI gateway request failed", status_code=502) from e

        if response.status_code == 429:
            counter("llm.gateway.rate_limited")
            self._record(function_name, model_name, {}, start, "error")
            raise RateLimitedError("Rate limit exceeded, please try again later.")
        if response.status_code == 402:
            counter("llm.gateway.credits_exhausted")
            self._record(function_name, model_name, {}, start, "error")
            raise CreditsExhaustedError("AI credits exhausted.")
        if response.status_code >= 400:
            self._record(function_name, model_name, {}, start, "error")
            logger.error(
                "Gateway error for %s: %d %s",
                function_name,
                response.status_code,
                response.text[:200],
            )
            raise GatewayError(
                f"AI gateway error: {response.status_code}", status_code=response.status_code
            )

        self.breaker.record_success()

        try:
            data = response.json()
            message = data["choices"][0]["message"]
            content = message.get("content") or ""
            if not isinstance(content, str):
                raise TypeError(f"content is {type(content).__name__}")
            tool_arguments = _tool_arguments(message)
            usage = data.get("usage") or {}
            if not isinstance(usage, dict):
                usage = {}
            returned_model = data.get("model") or model_name
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            self._record(function_name, model_name, {}, start, "error")
            raise GatewayError("Malformed gateway response", status_code=502) from e

        self._record(function_name, returned_model, usage, start, "success")

        return ChatResult(
            content=content,
            model=returned_model,
            usage=usage,
            tool_arguments=tool_arguments,
        )

    def chat_with_tool(
        self,
        messages: list[dict[str, str]],
        tool: dict[str, Any],
        *,
        function_name: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Force a single function call and return its parsed arguments.

        Raises:
            GatewayError: The model did not call the tool.
        """
        tool_name = tool["name"]
        result = self.chat(
            messages,
            function_name=function_name,
            tools=[{"type": "function", "function": tool}],
            tool_choice={"type": "function", "function": {"name": tool_name}},
            **kwargs,
        )
        if result.tool_arguments is None:
            raise GatewayError(f"Model did not call tool {tool_name}", status_code=502)
        return result.tool_arguments

    def _record(
        self,
        function_name: str,
        model: str,
        usage: dict[str, int],
        start: float,
        status: str,
    ) -> None:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log_event(
            "llm.call",
            function=function_name,
            model=model,
            status=status,
            duration_ms=duration_ms,
            total_tokens=usage.get("total_tokens", 0),
        )
        if not self.log_usage:
            return
        try:
            record_usage(
                function_name=function_name,
                model=model,
                prompt_tokens=int(usage.get("prompt_tokens", 0) or 0),
                completion_tokens=int(usage.get("completion_tokens", 0) or 0),
                duration_ms=duration_ms,
                status=status,
            )
        except (sqlite3.Error, FileNotFoundError, RuntimeError) as e:
            logger.warning("Could not record AI usage for %s: %s", function_name, e)


def _tool_arguments(message: dict[str, Any]) -> dict[str, Any] | None:
    tool_calls = message.get("tool_calls") or []
    if not tool_calls:
        return None
    arguments = tool_calls[0].get("function", {}).get("arguments")
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str):
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("Tool call arguments are not valid JSON")
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


_gateway: AIGateway | None = None


def get_gateway() -> AIGateway:
    """Process-wide gateway (FastAPI dependency)."""
    global _gateway
    if _gateway is None:
        _gateway = AIGateway()
        if not _gateway.configured:
            logger.warning("AI gateway initialized without LOVABLE_API_KEY")
    return _gateway
