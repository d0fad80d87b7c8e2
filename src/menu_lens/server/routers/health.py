"""Health check router."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from menu_lens import __version__
from menu_lens.conf.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "message": "Backend server is running",
        "version": __version__,
        "checks": {
            "vision": "configured" if settings.vision_enabled else "missing_api_key",
            "enrichment": "enabled" if settings.ENRICH_IMAGES else "disabled",
        },
    }
