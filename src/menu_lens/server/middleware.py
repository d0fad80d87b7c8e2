"""FastAPI middleware for request logging and CORS."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware


if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import FastAPI, Request, Response


logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging incoming requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        log_fn = logger.warning if response.status_code >= 400 else logger.info
        log_fn(
            "%s %s %d %.2fms client=%s",
            method,
            path,
            response.status_code,
            duration_ms,
            client_ip,
            extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 2)},
        )

        return response


def setup_middleware(
    app: FastAPI,
    *,
    cors_origins: list[str] | None = None,
    enable_logging: bool = True,
) -> None:
    """Configure all middleware for the FastAPI application."""
    if enable_logging:
        app.add_middleware(RequestLoggingMiddleware)

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials="*" not in cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
