"""Centralized configuration for the Readiness backend.

Re-exports readiness.infrastructure.settings, then adds typed constants for
database, LLM, rate-limiting, booking and memo settings.  Every override reads
a READINESS_* environment variable and falls back to a safe default.
"""

from __future__ import annotations

import os

from readiness.infrastructure.settings import *  # noqa: F401, F403


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


# --- App ---
APP_VERSION: str = "1.0.0"
SERVICE_NAME: str = "Readiness API"

# --- Database ---
DB_POOL_SIZE: int = int(_env("READINESS_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(_env("READINESS_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = 30.0
DB_TEMP_CONN_MAX: int = 10
DB_RETRY_MAX: int = 3
DB_RETRY_BASE_DELAY: float = 0.1
DB_RETRY_MAX_DELAY: float = 2.0
DB_RETRY_JITTER: float = 0.1

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(_env("READINESS_LLM_TIMEOUT", "60"))
LLM_MAX_RETRIES: int = int(_env("READINESS_LLM_MAX_RETRIES", "3"))
LLM_CIRCUIT_FAIL_MAX: int = 5
LLM_CIRCUIT_RESET_SECONDS: float = 60.0

# Approximate USD per 1M tokens (input, output)
LLM_MODEL_PRICES: dict[str, tuple[float, float]] = {
    "google/gemini-2.5-flash": (0.30, 2.50),
    "google/gemini-2.5-flash-lite": (0.10, 0.40),
    "google/gemini-2.5-pro": (1.25, 10.00),
    "openai/gpt-5-mini": (0.25, 2.00),
    "openai/gpt-5": (1.25, 10.00),
}
LLM_DEFAULT_PRICE: tuple[float, float] = (0.30, 2.50)

# --- Rate Limiting ---
RATE_LIMIT_RPM: int = int(_env("READINESS_RATE_LIMIT_RPM", "60"))
RATE_LIMIT_RPH: int = int(_env("READINESS_RATE_LIMIT_RPH", "1000"))
RATE_LIMIT_MAX_IPS: int = 10000

# --- API ---
API_IMPORT_BATCH_MAX: int = 500

# --- LLM Budget ---
LLM_USER_DAILY_LIMIT: int = int(_env("READINESS_LLM_USER_DAILY_LIMIT", "200"))
LLM_GLOBAL_DAILY_LIMIT: int = int(_env("READINESS_LLM_GLOBAL_DAILY_LIMIT", "10000"))

# --- Auth ---
AUTH_TOKEN_CACHE_SIZE: int = 1000
AUTH_TOKEN_CACHE_TTL: int = 600
AUTH_TIMEOUT_SECONDS: float = 10.0

# --- Booking ---
BOOKING_SLOT_STEP_MINUTES: int = 30
CALENDAR_TIMEOUT_SECONDS: float = 10.0

# --- Memo ---
DEMO_COMPANY_ID: str = "00000000-0000-0000-0000-000000000001"
MEMO_MIN_SECTIONS: int = 3
MEMO_SECTION_MAX_TOKENS: int = 3000
