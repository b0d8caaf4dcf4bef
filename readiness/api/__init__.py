"""HTTP API for the Readiness backend."""

from __future__ import annotations


def main() -> None:
    """Run the API with uvicorn (readiness-api console script)."""
    import uvicorn

    from readiness.infrastructure.settings import API_HOST, API_PORT, DEBUG, LOG_LEVEL

    uvicorn.run(
        "readiness.api.app:app",
        host=API_HOST,
        port=API_PORT,
        log_level=LOG_LEVEL.lower(),
        reload=DEBUG,
    )
