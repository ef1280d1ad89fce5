"""Map domain errors to JSON responses: `{"code": ..., "detail": ...}`."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from community_platform.errors import CommunityPlatformError

logger = logging.getLogger(__name__)


async def handle_domain_error(request: Request, exc: CommunityPlatformError) -> JSONResponse:
    """Render a CommunityPlatformError with its status, stable code, and headers."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.debug("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
        headers=exc.headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CommunityPlatformError, handle_domain_error)  # type: ignore[arg-type]
