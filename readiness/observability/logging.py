"""
Process-wide logging for the Readiness API.

Every record carries the deployment environment (READINESS_ENV) so logs from
staging and production can share a sink. Client libraries that log each
request at INFO are capped at WARNING.
"""

from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(env)s - %(name)s - %(levelname)s - %(message)s"

# Per-request chatter from the Google discovery client and HTTP transports
QUIET_LOGGERS: Final[tuple[str, ...]] = (
    "googleapiclient.discovery",
    "googleapiclient.discovery_cache",
    "google.auth.transport.requests",
    "urllib3.connectionpool",
    "httpx",
)


class EnvironmentFilter(logging.Filter):
    """Stamp records with the deployment environment."""

    def __init__(self, env: str | None = None):
        super().__init__()
        self.env = env or os.getenv("READINESS_ENV", "development")

    def filter(self, record: logging.LogRecord) -> bool:
        record.env = self.env
        return True


def _resolve_level() -> int:
    level_name = os.getenv("READINESS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the first call attaches the shared stream handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.addFilter(EnvironmentFilter())
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        for quiet in QUIET_LOGGERS:
            logging.getLogger(quiet).setLevel(max(level, logging.WARNING))
        _HANDLER_ATTACHED = True

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
