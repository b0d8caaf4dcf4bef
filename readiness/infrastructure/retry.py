"""
Retry with exponential backoff and jitter, plus a circuit breaker for
outbound HTTP dependencies (Google Calendar, AI gateway).
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from readiness.observability.telemetry import counter, log_event

T = TypeVar("T")


class AdapterError(RuntimeError):
    """Outbound call failed; status_code is None for network-level errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class RetryPolicy:
    stage: str
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 5.0
    jitter: float = 0.1
    sleep_fn: Callable[[float], None] = time.sleep

    def execute(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Call func until it succeeds or attempts run out.

        Only AdapterErrors that are network-level, 429 or 5xx are retried;
        anything else propagates on the first failure.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except AdapterError as exc:
                log_event(
                    "stage_error",
                    stage=self.stage,
                    error=str(exc),
                    status=exc.status_code,
                    attempt=attempt,
                )
                if not self._should_retry(exc) or attempt >= self.max_attempts:
                    raise
            self._backoff(attempt)

    def _should_retry(self, exc: AdapterError) -> bool:
        status = exc.status_code
        if status is None:
            return True
        return bool(status == 429 or 500 <= status < 600)

    def _backoff(self, attempt: int) -> None:
        counter("retry_count")
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        delay += random.uniform(0, self.jitter)
        log_event("retry_scheduled", stage=self.stage, attempt=attempt, delay=round(delay, 3))
        self.sleep_fn(delay)


@dataclass
class CircuitBreaker:
    stage: str
    fail_max: int = 5
    reset_timeout: float = 60.0
    clock: Callable[[], float] = time.monotonic
    _failures: int = field(default=0, init=False)
    _state: str = field(default="closed", init=False)
    _opened_at: float = field(default=0.0, init=False)

    @property
    def state(self) -> str:
        return self._state

    def allow_request(self) -> bool:
        if self._state == "open":
            if self.clock() - self._opened_at >= self.reset_timeout:
                self._state = "half_open"
                self._failures = 0
                return True
            counter("circuit_open_rate")
            log_event("circuit.open", stage=self.stage)
            return False
        return True

    def record_success(self) -> None:
        self._failures = 0
        self._state = "closed"

    def record_failure(self) -> None:
        # A failed probe in half_open reopens immediately
        self._failures += 1
        if self._state == "half_open" or self._failures >= self.fail_max:
            self._state = "open"
            self._opened_at = self.clock()
            counter("circuit_open_rate")
            log_event("circuit.opened", stage=self.stage, failures=self._failures)
