"""Request models for the menu analysis server."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AnalyzeRequest(BaseModel):
    """Body of POST /api/analyze.

    Fields are optional at this layer so a missing key reaches the
    gateway's own validation and yields its specific message instead of a
    generic 422.
    """

    model_config = ConfigDict(extra="ignore")

    image: str | None = Field(default=None, description="Base64 image without data-URI prefix")
    media_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("mediaType", "media_type"),
        serialization_alias="mediaType",
    )


class MatchRequest(BaseModel):
    """Body of POST /api/match (OCR text for the dictionary matcher)."""

    text: str = Field(default="", max_length=100_000)
