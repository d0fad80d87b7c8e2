"""
Analysis Gateway - sends a menu photo to the vision model.
==========================================================
Validates the request before any network call, forwards the image with the
variant's prompt and returns the raw assistant text. Provider failures are
translated into the API error classes; nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from menu_lens.conf.config import settings
from menu_lens.core.logging import log_event
from menu_lens.core.prompt_loader import get_analysis_prompt, get_system_prompt
from menu_lens.services.exceptions import (
    AnalysisFailedError,
    InvalidMediaTypeError,
    MissingFieldsError,
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
)


logger = logging.getLogger(__name__)

SUPPORTED_MEDIA_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif", "image/webp")


def validate_analysis_request(image: str | None, media_type: str | None) -> None:
    """Reject a request synchronously, before anything leaves the process.

    Raises:
        MissingFieldsError: image or media type missing/empty
        InvalidMediaTypeError: media type not supported by the model
    """
    if not image or not media_type:
        raise MissingFieldsError()
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise InvalidMediaTypeError(media_type)


def _retry_after(error: openai.APIStatusError) -> int | None:
    raw = error.response.headers.get("retry-after") if error.response is not None else None
    try:
        return int(float(raw)) if raw else None
    except ValueError:
        return None


def _build_client() -> AsyncOpenAI:
    api_key = settings.OPENAI_API_KEY.get_secret_value()
    if not api_key:
        raise UpstreamAuthError("OPENAI_API_KEY is not configured")
    return AsyncOpenAI(api_key=api_key, timeout=settings.LLM_TIMEOUT_SECONDS, max_retries=0)


class AnalysisGateway:
    """Thin async wrapper around the multimodal chat completion call."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
    ):
        self._client = client
        self.model = model or settings.VISION_MODEL
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = _build_client()
        return self._client

    def build_messages(
        self, image: str, media_type: str, *, with_positions: bool
    ) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": get_system_prompt()},
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{media_type};base64,{image}"},
                    },
                    {"type": "text", "text": get_analysis_prompt(with_positions=with_positions)},
                ],
            },
        ]

    async def analyze(self, image: str, media_type: str, *, with_positions: bool = False) -> str:
        """Return the model's raw answer for one menu photo.

        Raises:
            MissingFieldsError / InvalidMediaTypeError: request rejected locally
            UpstreamAuthError: provider rejected the credentials
            UpstreamRateLimitError: provider is throttling us
            UpstreamUnavailableError: provider failed (5xx) or is unreachable
            AnalysisFailedError: any other provider error
        """
        validate_analysis_request(image, media_type)

        log_event(
            logger,
            event="analysis_request_received",
            media_type=media_type,
            payload_chars=len(image),
            with_positions=with_positions,
        )

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=self.build_messages(image, media_type, with_positions=with_positions),
            )
        except openai.AuthenticationError as e:
            logger.error("Vision provider rejected credentials: %s", e)
            raise UpstreamAuthError(str(e)) from e
        except openai.RateLimitError as e:
            logger.warning("Vision provider rate limited the request")
            raise UpstreamRateLimitError(retry_after=_retry_after(e)) from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                logger.error("Vision provider error %d: %s", e.status_code, e)
                raise UpstreamUnavailableError(detail=f"upstream status {e.status_code}") from e
            logger.error("Vision provider refused request %d: %s", e.status_code, e)
            raise AnalysisFailedError(str(e) or "Failed to process image") from e
        except openai.APIConnectionError as e:
            logger.error("Vision provider unreachable: %s", e)
            raise UpstreamUnavailableError(detail=str(e)) from e
        except openai.APIError as e:
            logger.error("Vision provider error: %s", e)
            raise AnalysisFailedError(str(e) or "Failed to process image") from e

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""

        log_event(logger, event="analysis_upstream_ok", response_chars=len(text))
        return text
