"""
Tests for the analysis gateway.
===============================
The OpenAI client is replaced by a stub; provider errors are built from
real httpx responses so the SDK exception classes behave as in production.
"""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest
from pydantic import SecretStr

from menu_lens.services.exceptions import (
    AnalysisFailedError,
    InvalidMediaTypeError,
    MissingFieldsError,
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
)
from menu_lens.services.vision_gateway import (
    SUPPORTED_MEDIA_TYPES,
    AnalysisGateway,
    validate_analysis_request,
)


IMAGE = "aGVsbG8="
REQUEST = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _stub_client(*, returns=None, raises=None):
    create = AsyncMock(return_value=returns, side_effect=raises)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create))), create


def _status_error(cls, status, headers=None):
    response = httpx.Response(status, headers=headers or {}, request=REQUEST)
    return cls(f"status {status}", response=response, body=None)


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidation:
    @pytest.mark.parametrize("media_type", SUPPORTED_MEDIA_TYPES)
    def test_supported_types(self, media_type):
        validate_analysis_request(IMAGE, media_type)

    @pytest.mark.parametrize("image,media_type", [(None, "image/png"), ("", "image/png"), (IMAGE, None), (IMAGE, "")])
    def test_missing_fields(self, image, media_type):
        with pytest.raises(MissingFieldsError) as exc_info:
            validate_analysis_request(image, media_type)

        assert exc_info.value.message == "Missing required fields: image and mediaType"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("media_type", ["image/bmp", "image/tiff", "application/pdf", "IMAGE/PNG"])
    def test_invalid_media_type(self, media_type):
        with pytest.raises(InvalidMediaTypeError) as exc_info:
            validate_analysis_request(IMAGE, media_type)

        assert exc_info.value.message == "Invalid media type. Must be JPEG, PNG, GIF, or WebP"

    @pytest.mark.asyncio
    async def test_invalid_request_never_calls_provider(self):
        client, create = _stub_client(returns=_completion("[]"))

        with pytest.raises(InvalidMediaTypeError):
            await AnalysisGateway(client).analyze(IMAGE, "image/bmp")

        create.assert_not_called()


# =============================================================================
# REQUEST SHAPE
# =============================================================================


class TestRequest:
    @pytest.mark.asyncio
    async def test_returns_assistant_text(self):
        client, create = _stub_client(returns=_completion('[{"name": "Uni", "definition": "Sea urchin"}]'))

        text = await AnalysisGateway(client, model="vision-test", max_tokens=321).analyze(IMAGE, "image/png")

        assert text.startswith("[")
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "vision-test"
        assert kwargs["max_tokens"] == 321

    @pytest.mark.asyncio
    async def test_image_is_sent_as_data_uri(self):
        client, create = _stub_client(returns=_completion("[]"))

        await AnalysisGateway(client).analyze(IMAGE, "image/webp")

        system, user = create.call_args.kwargs["messages"]
        assert system["role"] == "system"
        image_part, text_part = user["content"]
        assert image_part["image_url"]["url"] == f"data:image/webp;base64,{IMAGE}"
        assert "JSON array" in text_part["text"]

    @pytest.mark.asyncio
    async def test_positions_variant_uses_its_own_prompt(self):
        gateway = AnalysisGateway(_stub_client()[0])

        plain = gateway.build_messages(IMAGE, "image/png", with_positions=False)[1]["content"][1]["text"]
        marked = gateway.build_messages(IMAGE, "image/png", with_positions=True)[1]["content"][1]["text"]

        assert '"position"' in marked
        assert '"position"' not in plain
        assert "{reading_rules}" not in marked

    @pytest.mark.asyncio
    @pytest.mark.parametrize("completion", [_completion(None), SimpleNamespace(choices=[])])
    async def test_empty_answer_becomes_empty_string(self, completion):
        client, _ = _stub_client(returns=completion)

        assert await AnalysisGateway(client).analyze(IMAGE, "image/png") == ""


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_auth_error(self):
        client, _ = _stub_client(raises=_status_error(openai.AuthenticationError, 401))

        with pytest.raises(UpstreamAuthError) as exc_info:
            await AnalysisGateway(client).analyze(IMAGE, "image/png")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid API key. Check your environment variables."

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_retry_after(self):
        error = _status_error(openai.RateLimitError, 429, headers={"retry-after": "7"})
        client, create = _stub_client(raises=error)

        with pytest.raises(UpstreamRateLimitError) as exc_info:
            await AnalysisGateway(client).analyze(IMAGE, "image/png")

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 7
        assert create.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 503, 529])
    async def test_server_errors_are_bad_gateway(self, status):
        client, _ = _stub_client(raises=_status_error(openai.APIStatusError, status))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await AnalysisGateway(client).analyze(IMAGE, "image/png")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_connection_error_is_bad_gateway(self):
        client, _ = _stub_client(raises=openai.APIConnectionError(request=REQUEST))

        with pytest.raises(UpstreamUnavailableError):
            await AnalysisGateway(client).analyze(IMAGE, "image/png")

    @pytest.mark.asyncio
    async def test_other_status_is_analysis_failure(self):
        client, _ = _stub_client(raises=_status_error(openai.BadRequestError, 400))

        with pytest.raises(AnalysisFailedError) as exc_info:
            await AnalysisGateway(client).analyze(IMAGE, "image/png")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_missing_key_is_auth_error(self, monkeypatch):
        from menu_lens.services import vision_gateway

        monkeypatch.setattr(vision_gateway.settings, "OPENAI_API_KEY", SecretStr(""))

        with pytest.raises(UpstreamAuthError):
            await AnalysisGateway().analyze(IMAGE, "image/png")


# =============================================================================
# LAYERING
# =============================================================================


class TestErrorLayering:
    def test_server_reexports_service_errors(self):
        from menu_lens.server import exceptions as server_exceptions
        from menu_lens.services import exceptions as service_exceptions

        for name in server_exceptions.__all__:
            assert getattr(server_exceptions, name) is getattr(service_exceptions, name)

    def test_services_never_import_the_server_package(self):
        import menu_lens.services

        package_dir = Path(menu_lens.services.__file__).parent
        offenders = [
            path.name for path in package_dir.glob("*.py") if "menu_lens.server" in path.read_text()
        ]

        assert offenders == []
