"""Menu analysis router.

POST /api/analyze  photo -> dishes (+ images / positions depending on variant)
POST /api/match    OCR text -> dishes from the static dictionary
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from menu_lens.server.dependencies import get_dictionary, get_pipeline
from menu_lens.server.models import AnalyzeRequest, MatchRequest
from menu_lens.services.dictionary import MenuDictionary
from menu_lens.services.pipeline import MenuAnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze")
async def analyze_menu(
    payload: AnalyzeRequest,
    pipeline: MenuAnalysisPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    result = await pipeline.analyze(payload.image, payload.media_type)
    return result.to_public_dict()


@router.post("/match")
async def match_menu_text(
    payload: MatchRequest,
    dictionary: MenuDictionary = Depends(get_dictionary),
) -> dict[str, Any]:
    items = dictionary.match(payload.text)
    return {"success": True, "items": [item.to_public_dict() for item in items]}
