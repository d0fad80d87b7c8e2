"""Routers package for the menu analysis server."""

from menu_lens.server.routers.analyze import router as analyze_router
from menu_lens.server.routers.health import router as health_router

__all__ = [
    "analyze_router",
    "health_router",
]
