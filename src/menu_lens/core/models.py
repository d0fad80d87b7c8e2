"""Typed contracts shared by the parser, the resolver and the HTTP layer.

- Position / MenuItem: one extracted dish
- ParseFailure / ParseResult: parser outcome
- AnalysisResult: what one analysis request hands back to its caller
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Position(BaseModel):
    """Approximate print location of a dish, in percent from the top-left corner."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="0 = left edge, 100 = right edge")
    y: float = Field(..., description="0 = top edge, 100 = bottom edge")

    @field_validator("x", "y", mode="before")
    @classmethod
    def clamp_percent(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError("not a coordinate") from e
        if not math.isfinite(value):
            raise ValueError("coordinate must be finite")
        return min(100.0, max(0.0, value))


class MenuItem(BaseModel):
    """
    One dish or notable ingredient read from a menu.

    Instances are frozen: the resolver attaches ``image_url`` through
    ``model_copy(update=...)`` so every change produces a new object.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Name exactly as printed on the menu")
    definition: str = Field(..., min_length=1, description="Short sensory description")
    position: Position | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("name", "definition")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    def with_image(self, url: str) -> MenuItem:
        """Return a copy of this item carrying ``url`` as its image."""
        return self.model_copy(update={"image_url": url})

    def to_public_dict(self) -> dict:
        """Serialize with wire names (``imageUrl``) and without unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


ParseFailureKind = Literal["no_payload", "malformed_json", "schema_invalid"]


@dataclass(frozen=True)
class ParseFailure:
    """Why a model answer produced no items."""

    kind: ParseFailureKind
    detail: str = ""


@dataclass(frozen=True)
class ParseResult:
    items: list[MenuItem] = field(default_factory=list)
    failure: ParseFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def payload_found(self) -> bool:
        """True when the answer contained a bracketed span at all."""
        return self.failure is None or self.failure.kind != "no_payload"


@dataclass(frozen=True)
class AnalysisResult:
    items: list[MenuItem] = field(default_factory=list)
    failure: ParseFailure | None = None
    payload_found: bool = False

    @classmethod
    def from_parse(cls, parsed: ParseResult, items: list[MenuItem] | None = None) -> AnalysisResult:
        return cls(
            items=list(parsed.items if items is None else items),
            failure=parsed.failure,
            payload_found=parsed.payload_found,
        )

    def to_public_dict(self) -> dict:
        return {
            "success": True,
            "items": [item.to_public_dict() for item in self.items],
            "parseFailure": self.failure.kind if self.failure else None,
            "payloadFound": self.payload_found,
        }
