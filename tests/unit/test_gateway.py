"""Unit tests for the AI gateway client, its circuit breaker and reply parsing"""

from __future__ import annotations

import json

import pytest
import requests

from readiness.infrastructure.llm_budget import get_usage_summary
from readiness.infrastructure.retry import AdapterError, CircuitBreaker, RetryPolicy
from readiness.llm.gateway import (
    AIGateway,
    CreditsExhaustedError,
    GatewayConfigurationError,
    GatewayError,
    GatewayUnavailableError,
    RateLimitedError,
)
from readiness.llm.parsing import extract_json, sanitize_json_string, strip_code_fences

MESSAGES = [{"role": "user", "content": "hello"}]


class FakeResponse:
    def __init__(self, status_code: int, body: dict | None = None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text or json.dumps(body or {})

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    def __init__(self, *responses: FakeResponse):
        self.responses = list(responses)
        self.requests: list[dict] = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return self.responses.pop(0)


def _completion(content: str = "hi", **message) -> dict:
    return {
        "model": "google/gemini-2.5-flash",
        "choices": [{"message": {"content": content, **message}}],
        "usage": {"prompt_tokens": 1000, "completion_tokens": 200, "total_tokens": 1200},
    }


def _gateway(*responses: FakeResponse, **kwargs) -> tuple[AIGateway, FakeSession]:
    session = FakeSession(*responses)
    return AIGateway(api_key="test-key", url="https://gateway.test/v1/chat", session=session, **kwargs), session


class TestGateway:
    def test_chat_success(self):
        gateway, session = _gateway(FakeResponse(200, _completion("Hello there")))

        result = gateway.chat(MESSAGES, function_name="vc-verdict", temperature=0.2, max_tokens=50)

        assert result.content == "Hello there"
        assert result.usage["total_tokens"] == 1200
        sent = session.requests[0]
        assert sent["headers"]["Authorization"] == "Bearer test-key"
        assert sent["json"]["temperature"] == 0.2
        assert sent["json"]["max_tokens"] == 50
        assert "tools" not in sent["json"]

    def test_usage_is_logged(self):
        gateway, _ = _gateway(FakeResponse(200, _completion()))
        gateway.chat(MESSAGES, function_name="vc-verdict")

        summary = get_usage_summary("all")
        assert summary["totalCalls"] == 1
        assert summary["functions"][0]["name"] == "vc-verdict"
        assert summary["models"][0]["name"] == "gemini-2.5-flash"

    def test_rate_limited(self):
        gateway, _ = _gateway(FakeResponse(429))
        with pytest.raises(RateLimitedError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 429
        assert str(exc_info.value) == "Rate limit exceeded, please try again later."

    def test_credits_exhausted(self):
        gateway, _ = _gateway(FakeResponse(402))
        with pytest.raises(CreditsExhaustedError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 402
        assert get_usage_summary("all")["errorCount"] == 1

    def test_client_error_keeps_status(self):
        gateway, _ = _gateway(FakeResponse(400, text="bad request"))
        with pytest.raises(GatewayError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 400

    def test_malformed_body(self):
        gateway, _ = _gateway(FakeResponse(200, {"choices": []}))
        with pytest.raises(GatewayError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 502

    @pytest.mark.parametrize(
        "body",
        [
            {"choices": [{"message": "plain text"}]},
            {"choices": [{"message": {"content": ["not", "text"]}}]},
            {"choices": [{"message": {"content": "", "tool_calls": "bad"}}]},
            ["not", "an", "object"],
        ],
    )
    def test_unexpected_reply_shapes_are_502(self, body):
        gateway, _ = _gateway(FakeResponse(200, body))
        with pytest.raises(GatewayError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 502

    def test_other_request_errors_are_converted(self):
        class RedirectLoopSession(FakeSession):
            def post(self, url, headers=None, json=None, timeout=None):
                raise requests.TooManyRedirects("Exceeded 30 redirects.")

        gateway = AIGateway(api_key="test-key", url="https://gateway.test/v1/chat", session=RedirectLoopSession())

        with pytest.raises(GatewayError) as exc_info:
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert exc_info.value.status_code == 502
        assert get_usage_summary("all")["errorCount"] == 1

    def test_missing_api_key(self):
        gateway = AIGateway(api_key="", session=FakeSession())
        assert not gateway.configured
        with pytest.raises(GatewayConfigurationError):
            gateway.chat(MESSAGES, function_name="vc-verdict")

    def test_open_breaker_rejects_without_calling(self):
        breaker = CircuitBreaker(stage="test", fail_max=1)
        breaker.record_failure()
        gateway, session = _gateway(breaker=breaker)
        with pytest.raises(GatewayUnavailableError):
            gateway.chat(MESSAGES, function_name="vc-verdict")
        assert session.requests == []

    def test_chat_with_tool_parses_arguments(self):
        tool_calls = [{"function": {"name": "score", "arguments": json.dumps({"score": 7})}}]
        gateway, session = _gateway(FakeResponse(200, _completion("", tool_calls=tool_calls)))

        args = gateway.chat_with_tool(MESSAGES, {"name": "score", "parameters": {}}, function_name="roast")

        assert args == {"score": 7}
        assert session.requests[0]["json"]["tool_choice"] == {"type": "function", "function": {"name": "score"}}

    def test_chat_with_tool_requires_call(self):
        gateway, _ = _gateway(FakeResponse(200, _completion("plain text")))
        with pytest.raises(GatewayError, match="did not call tool"):
            gateway.chat_with_tool(MESSAGES, {"name": "score"}, function_name="roast")


class TestCircuitBreaker:
    def test_opens_and_half_opens(self):
        now = [0.0]
        breaker = CircuitBreaker(stage="test", fail_max=2, reset_timeout=10, clock=lambda: now[0])

        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()
        assert breaker.state == "open"
        assert not breaker.allow_request()

        now[0] = 11
        assert breaker.allow_request()
        assert breaker.state == "half_open"
        breaker.record_failure()
        assert breaker.state == "open"

    def test_success_closes(self):
        breaker = CircuitBreaker(stage="test", fail_max=1)
        breaker.record_failure()
        breaker.record_success()
        assert breaker.state == "closed"


class TestRetryPolicy:
    def test_retries_server_errors(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise AdapterError("boom", status_code=503)
            return "ok"

        policy = RetryPolicy(stage="test", max_attempts=3, sleep_fn=lambda _: None)
        assert policy.execute(flaky) == "ok"
        assert len(calls) == 3

    def test_client_errors_are_not_retried(self):
        calls = []

        def rejected():
            calls.append(1)
            raise AdapterError("nope", status_code=404)

        policy = RetryPolicy(stage="test", sleep_fn=lambda _: None)
        with pytest.raises(AdapterError):
            policy.execute(rejected)
        assert len(calls) == 1


class TestParsing:
    def test_fenced_block(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}
        assert strip_code_fences("  plain  ") == "plain"

    def test_object_inside_prose(self):
        assert extract_json('Here you go: {"a": 1} thanks') == {"a": 1}

    def test_missing_and_trailing_commas(self):
        assert extract_json('{"a": "x"\n"b": [1, 2,],}') == {"a": "x", "b": [1, 2]}

    def test_truncated_unicode_escape(self):
        assert sanitize_json_string("caf\\u00e9 \\u12") == "café "

    @pytest.mark.parametrize("reply", ["", None, "no json here", "[1, 2]"])
    def test_unparseable(self, reply):
        with pytest.raises(ValueError):
            extract_json(reply)
