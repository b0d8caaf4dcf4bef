"""FastAPI server for the Readiness API"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from readiness.api.middleware.rate_limit import RateLimitMiddleware
from readiness.api.middleware.security_headers import SecurityHeadersMiddleware
from readiness.api.routes.admin import router as admin_router
from readiness.api.routes.assessments import router as assessments_router
from readiness.api.routes.booking import router as booking_router
from readiness.api.routes.captable import router as captable_router
from readiness.api.routes.cohorts import router as cohorts_router
from readiness.api.routes.companies import router as companies_router
from readiness.api.routes.health import router as health_router
from readiness.api.routes.investors import router as investors_router
from readiness.api.routes.memos import router as memos_router
from readiness.api.routes.scorecard import router as scorecard_router
from readiness.config import APP_VERSION, RATE_LIMIT_RPH, RATE_LIMIT_RPM, SERVICE_NAME
from readiness.infrastructure import settings
from readiness.infrastructure.database import init_database
from readiness.observability.logging import get_logger
from readiness.observability.telemetry import counter, log_event
from readiness.utils.redaction import redact

load_dotenv()

app = FastAPI(title=SERVICE_NAME, version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Log validation details, return only the offending field names."""
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


ALLOWED_ORIGINS = list(settings.ALLOWED_ORIGINS)

if settings.is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:5173",
            "http://localhost:8080",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:8080",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=RATE_LIMIT_RPM,
    requests_per_hour=RATE_LIMIT_RPH,
    allowed_origins=ALLOWED_ORIGINS,
)

app.add_middleware(SecurityHeadersMiddleware)

try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

app.include_router(health_router)
app.include_router(captable_router)
app.include_router(scorecard_router)
app.include_router(assessments_router)
app.include_router(booking_router)
app.include_router(companies_router)
app.include_router(memos_router)
app.include_router(investors_router)
app.include_router(cohorts_router)
app.include_router(admin_router)

log_event("api.startup", service="readiness-api", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "captable": "/api/captable",
            "scorecard": "/api/scorecard",
            "assessments": "/api/assessments",
            "booking": "/api/booking",
            "companies": "/api/companies",
            "memos": "/api/memos",
            "investors": "/api/investors",
            "cohorts": "/api/cohorts",
            "admin": "/api/admin",
        },
    }
