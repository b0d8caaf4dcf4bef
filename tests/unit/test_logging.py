"""Unit tests for the shared logging setup"""

from __future__ import annotations

import logging

from readiness.observability.logging import QUIET_LOGGERS, EnvironmentFilter, get_logger


def _readiness_handler() -> logging.Handler:
    return next(
        h for h in logging.getLogger().handlers if any(isinstance(f, EnvironmentFilter) for f in h.filters)
    )


def test_records_carry_environment():
    record = logging.LogRecord("readiness.test", logging.INFO, __file__, 1, "hello", None, None)

    assert EnvironmentFilter("production").filter(record) is True
    assert record.env == "production"


def test_shared_handler_formats_environment():
    get_logger("readiness.test")
    handler = _readiness_handler()
    record = logging.LogRecord("readiness.test", logging.WARNING, __file__, 1, "slot taken", None, None)

    handler.filter(record)
    line = handler.format(record)

    assert " - test - readiness.test - WARNING - slot taken" in line


def test_client_library_loggers_are_quiet():
    get_logger("readiness.test")
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level >= logging.WARNING
