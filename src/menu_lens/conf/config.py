"""Configuration for the menu analysis service.

Reads environment variables for API access, pipeline tuning and server setup.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # =========================================================================
    # VISION MODEL
    # =========================================================================
    OPENAI_API_KEY: SecretStr = Field(
        default=SecretStr(""), description="API key for the vision model provider."
    )
    VISION_MODEL: str = Field(
        default="gpt-4o", description="Identifier of the multimodal model that reads menus."
    )
    LLM_MAX_TOKENS: int = Field(default=2048, gt=0, description="Max tokens for the model answer.")
    LLM_TIMEOUT_SECONDS: float = Field(
        default=60.0, gt=0, description="Timeout for a single analysis call."
    )

    # =========================================================================
    # VARIANT
    # =========================================================================
    REQUIRE_POSITIONS: bool = Field(
        default=False,
        description=(
            "Marker variant: ask the model for on-image positions and reject any "
            "item list where an item lacks numeric x/y."
        ),
    )
    ENRICH_IMAGES: bool = Field(
        default=True, description="Look up an illustrative photo for every parsed item."
    )

    # =========================================================================
    # IMAGE PREPROCESSING
    # =========================================================================
    PREPROCESS_MAX_BYTES: int = Field(
        default=3_500_000, gt=0, description="Transport byte ceiling for the encoded image."
    )
    PREPROCESS_MAX_DIMENSION: int = Field(
        default=1600, gt=0, description="Longest allowed side of the encoded image, in pixels."
    )
    PREPROCESS_START_QUALITY: float = Field(default=0.8, description="First JPEG quality tried.")
    PREPROCESS_MIN_QUALITY: float = Field(default=0.2, description="Lowest JPEG quality tried.")
    PREPROCESS_QUALITY_STEP: float = Field(
        default=0.1, description="Quality decrement between attempts."
    )

    @model_validator(mode="after")
    def _validate_quality_ladder(self) -> "Settings":
        if not 0 < self.PREPROCESS_MIN_QUALITY <= self.PREPROCESS_START_QUALITY <= 1:
            raise ValueError(
                "PREPROCESS qualities must satisfy 0 < MIN_QUALITY <= START_QUALITY <= 1"
            )
        if self.PREPROCESS_QUALITY_STEP <= 0:
            raise ValueError("PREPROCESS_QUALITY_STEP must be > 0")
        return self

    # =========================================================================
    # IMAGE ENRICHMENT
    # =========================================================================
    WIKIPEDIA_API_URL: str = Field(
        default="https://en.wikipedia.org/w/api.php",
        description="MediaWiki action API used for full-text search.",
    )
    WIKIPEDIA_SUMMARY_URL: str = Field(
        default="https://en.wikipedia.org/api/rest_v1/page/summary",
        description="REST endpoint returning page summaries with thumbnails.",
    )
    SEARCH_RESULT_LIMIT: int = Field(
        default=3, gt=0, description="Candidates requested from the search index per term."
    )
    SEARCH_QUALIFIERS: str = Field(
        default="food,dish",
        description="Comma-separated words appended to the dish name for fallback searches.",
    )
    ENRICHMENT_TIMEOUT_SECONDS: float = Field(
        default=10.0, gt=0, description="Timeout for each search/summary request."
    )
    ENRICHMENT_MAX_CONCURRENCY: int = Field(
        default=0,
        ge=0,
        description="Max items looked up at once (0 = all items in parallel).",
    )
    HTTP_USER_AGENT: str = Field(
        default="menu-lens/1.0 (https://github.com/menu-lens/menu-lens)",
        description="User-Agent sent to public APIs (Wikimedia rejects anonymous clients).",
    )

    # =========================================================================
    # SERVER / OBSERVABILITY
    # =========================================================================
    PORT: int = Field(default=3000, description="Port used by `menu-lens serve`.")
    CORS_ALLOW_ORIGINS: str = Field(
        default="*", description="Comma-separated list of origins allowed by CORS."
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level.")
    LOG_JSON: bool = Field(default=False, description="Emit JSON logs instead of pretty lines.")

    @property
    def search_qualifiers(self) -> list[str]:
        """Return parsed search qualifiers in configured order."""
        return [q.strip() for q in self.SEARCH_QUALIFIERS.split(",") if q.strip()]

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]

    @property
    def vision_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY.get_secret_value())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[arg-type]


def validate_required_settings(settings_instance: Settings | None = None) -> None:
    """Log configuration gaps that would break analysis requests.

    Missing credentials are a warning, not an error: the dictionary matcher
    and the health endpoint keep working without a model key.
    """
    if settings_instance is None:
        settings_instance = get_settings()

    if not settings_instance.vision_enabled:
        logger.warning("Configuration warning: OPENAI_API_KEY not set (analysis disabled)")

    if settings_instance.ENRICHMENT_MAX_CONCURRENCY == 0:
        logger.debug("Image enrichment runs unbounded (ENRICHMENT_MAX_CONCURRENCY=0)")


settings = get_settings()
