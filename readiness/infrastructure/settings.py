"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Environment
ENV = os.getenv("READINESS_ENV", "development")
DEBUG = ENV == "development"

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("READINESS_LOG_LEVEL", "INFO")

# AI gateway (OpenAI-compatible chat completions)
AI_GATEWAY_URL = os.getenv(
    "READINESS_AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"
)
LLM_MODEL = os.getenv("READINESS_LLM_MODEL", "google/gemini-2.5-flash")

# Supabase auth (token verification only)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

# Google Calendar OAuth client
GOOGLE_CALENDAR_CLIENT_ID = os.getenv("GOOGLE_CALENDAR_CLIENT_ID", "")
GOOGLE_CALENDAR_CLIENT_SECRET = os.getenv("GOOGLE_CALENDAR_CLIENT_SECRET", "")

# Feature Flags
CALENDAR_MOCK = os.getenv("READINESS_CALENDAR_MOCK", "false").lower() == "true"

# Browser origins allowed by CORS (comma separated)
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("READINESS_ALLOWED_ORIGINS", "").split(",")
    if origin.strip()
]


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
