"""FastAPI application entry point — wires everything together.

Usage:
    python -m community_platform.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from community_platform.api import audit, auth, categories, reports, sessions
from community_platform.api.errors import install_error_handlers
from community_platform.config import settings
from community_platform.db.engine import db_lifespan, ping

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting community platform (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")
        try:
            yield
        finally:
            logger.info("Shutting down community platform...")

    logger.info("Community platform shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Community Platform API",
    description="Identity, session, and audit core of the community platform",
    version="0.1.0",
    lifespan=lifespan,
)

install_error_handlers(app)

app.include_router(auth.router)
app.include_router(sessions.router)
app.include_router(categories.router)
app.include_router(reports.router)
app.include_router(audit.router)


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Liveness plus PostgreSQL and Redis reachability."""
    checks = await ping()
    return {
        "status": "ok" if all(checks.values()) else "degraded",
        "environment": settings.environment,
        "checks": checks,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "community_platform.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
