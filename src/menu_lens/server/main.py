"""ASGI app exposing the menu analysis API.

This module is a thin orchestrator that:
1. Manages FastAPI app lifecycle
2. Sets up middleware
3. Includes routers for all endpoints
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from menu_lens import __version__
from menu_lens.conf.config import settings, validate_required_settings
from menu_lens.core.logging import setup_logging
from menu_lens.server.exceptions import AnalysisError
from menu_lens.server.middleware import setup_middleware
from menu_lens.server.routers import analyze_router, health_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    validate_required_settings()

    logger.info(
        "Starting menu analysis server (model=%s, positions=%s, images=%s)",
        settings.VISION_MODEL,
        settings.REQUIRE_POSITIONS,
        settings.ENRICH_IMAGES,
    )

    yield

    logger.info("Shutting down menu analysis server")


app = FastAPI(
    title="Menu Lens",
    description="Reads menu photos and explains the dishes on them",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    """Render service errors with their own status and code."""
    retry_after = getattr(exc, "retry_after", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(retry_after)} if retry_after else None,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Failed to process image", "code": "internal_error"},
    )


setup_middleware(app, cors_origins=settings.cors_origins, enable_logging=True)

app.include_router(health_router)
app.include_router(analyze_router)
