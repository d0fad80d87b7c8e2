"""
Menu analysis pipeline.
=======================
raw image -> (preprocess) -> vision gateway -> parser -> image enrichment

Input and upstream errors propagate to the caller; an unusable model answer
degrades to zero items and a failed image lookup to an item without image.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from menu_lens.conf.config import Settings, settings as default_settings
from menu_lens.core.logging import log_event
from menu_lens.core.models import AnalysisResult
from menu_lens.core.output_parser import VisionResponseParser
from menu_lens.services.enrichment import ImageResolver
from menu_lens.services.preprocessor import ImagePreprocessor, preprocess_image_async
from menu_lens.services.vision_gateway import AnalysisGateway, validate_analysis_request


logger = logging.getLogger(__name__)


class MenuAnalysisPipeline:
    def __init__(
        self,
        gateway: AnalysisGateway,
        resolver: ImageResolver | None = None,
        *,
        require_positions: bool = False,
        enrich_images: bool = True,
        preprocessor: ImagePreprocessor | None = None,
    ):
        self.gateway = gateway
        self.resolver = resolver
        self.require_positions = require_positions
        self.enrich_images = enrich_images and resolver is not None
        self.parser = VisionResponseParser(require_positions=require_positions)
        self.preprocessor = preprocessor

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> MenuAnalysisPipeline:
        config = config or default_settings
        return cls(
            AnalysisGateway(),
            ImageResolver() if config.ENRICH_IMAGES else None,
            require_positions=config.REQUIRE_POSITIONS,
            enrich_images=config.ENRICH_IMAGES,
        )

    async def analyze(self, image: str | None, media_type: str | None) -> AnalysisResult:
        """Analyze one base64-encoded menu photo."""
        validate_analysis_request(image, media_type)
        started = time.monotonic()

        raw_text = await self.gateway.analyze(
            image, media_type, with_positions=self.require_positions
        )
        parsed = self.parser.parse(raw_text)

        items = parsed.items
        if items and self.enrich_images:
            items = await self.resolver.enrich(items)

        result = AnalysisResult.from_parse(parsed, items)
        log_event(
            logger,
            event="analysis_done",
            items_count=len(result.items),
            images_found=sum(1 for item in result.items if item.image_url),
            failure_kind=result.failure.kind if result.failure else None,
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return result

    async def analyze_file(self, path: str | Path) -> AnalysisResult:
        """Shrink a local image to the upload size limit, then analyze it."""
        if self.preprocessor is not None:
            prepared = await asyncio.to_thread(self.preprocessor.process, path)
        else:
            prepared = await preprocess_image_async(path)
        return await self.analyze(prepared.base64, prepared.media_type)
