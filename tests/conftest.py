"""
Shared pytest fixtures.

Every test gets a fresh SQLite database at READINESS_DB_PATH. The gateway is
replaced with FakeGateway, which answers from a queue of canned replies.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

# Must be set before readiness modules read the environment
os.environ["READINESS_ENV"] = "test"
os.environ.setdefault("READINESS_RATE_LIMIT_RPM", "100000")
os.environ.setdefault("READINESS_RATE_LIMIT_RPH", "1000000")
os.environ.setdefault(
    "READINESS_DB_PATH", str(Path(tempfile.mkdtemp(prefix="readiness-")) / "import.db")
)
os.environ.pop("READINESS_ADMIN_API_KEY", None)

import pytest  # noqa: E402

from readiness.infrastructure.database import get_pool, init_database  # noqa: E402
from readiness.llm.gateway import ChatResult, GatewayError  # noqa: E402
from readiness.observability.telemetry import reset_counters, reset_latencies  # noqa: E402


class FakeGateway:
    """
    Stand-in for AIGateway.

    replies holds strings (returned as content), dicts (returned as JSON
    content) or GatewayError instances (raised). When the queue is empty the
    default reply is used.
    """

    def __init__(self, replies: list[Any] | None = None, default: Any = "{}"):
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return True

    def _next(self) -> Any:
        return self.replies.pop(0) if self.replies else self.default

    def chat(self, messages, *, function_name, **kwargs) -> ChatResult:
        self.calls.append({"messages": messages, "function_name": function_name, **kwargs})
        reply = self._next()
        if isinstance(reply, GatewayError):
            raise reply
        content = json.dumps(reply) if isinstance(reply, dict) else reply
        return ChatResult(content=content, model="test-model")

    def chat_with_tool(self, messages, tool, *, function_name, **kwargs) -> dict[str, Any]:
        self.calls.append({"messages": messages, "function_name": function_name, "tool": tool})
        reply = self._next()
        if isinstance(reply, GatewayError):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Fresh database per test."""
    db_path = tmp_path / "readiness.db"
    monkeypatch.setenv("READINESS_DB_PATH", str(db_path))
    get_pool.cache_clear()
    init_database()
    yield db_path
    get_pool().close_all()
    get_pool.cache_clear()


@pytest.fixture(autouse=True)
def reset_telemetry():
    reset_counters()
    reset_latencies()
    yield


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def make_gateway():
    """Factory: make_gateway([reply, ...]) -> FakeGateway."""

    def _make(replies: list[Any] | None = None, default: Any = "{}") -> FakeGateway:
        return FakeGateway(replies, default)

    return _make
