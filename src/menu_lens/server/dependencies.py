"""Shared FastAPI dependencies.

Routers take these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from menu_lens.services.dictionary import MenuDictionary, load_dictionary
from menu_lens.services.pipeline import MenuAnalysisPipeline


@lru_cache(maxsize=1)
def get_pipeline() -> MenuAnalysisPipeline:
    """Get or create the analysis pipeline configured from settings."""
    return MenuAnalysisPipeline.from_settings()


def get_dictionary() -> MenuDictionary:
    return load_dictionary()
