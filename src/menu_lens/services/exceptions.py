"""
Service Exceptions
==================
Errors raised by the analysis services. Each one carries the HTTP status
and machine-readable ``code`` the server renders, so the services never
import from the server package.
"""

from __future__ import annotations


class ImagePreprocessError(Exception):
    """Raised when the source image cannot be decoded or re-encoded."""

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        message = f"Cannot prepare image: {reason}"
        if source:
            message = f"{message} ({source})"
        super().__init__(message)


class AnalysisError(Exception):
    """Base for errors an analysis request surfaces to its caller."""

    status_code = 500
    code = "analysis_error"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "detail": self.detail, "code": self.code}


# =============================================================================
# REQUEST ERRORS (nothing was sent upstream)
# =============================================================================


class InvalidRequestError(AnalysisError):
    status_code = 400
    code = "invalid_request"


class MissingFieldsError(InvalidRequestError):
    code = "missing_fields"

    def __init__(self, message: str = "Missing required fields: image and mediaType"):
        super().__init__(message)


class InvalidMediaTypeError(InvalidRequestError):
    code = "invalid_media_type"

    def __init__(self, media_type: str | None = None):
        super().__init__(
            "Invalid media type. Must be JPEG, PNG, GIF, or WebP",
            detail=f"got {media_type!r}" if media_type else None,
        )
        self.media_type = media_type


# =============================================================================
# UPSTREAM ERRORS (vision provider)
# =============================================================================


class UpstreamAuthError(AnalysisError):
    """The vision provider rejected our credentials."""

    status_code = 401
    code = "upstream_auth"

    def __init__(self, detail: str | None = None):
        super().__init__("Invalid API key. Check your environment variables.", detail=detail)


class UpstreamRateLimitError(AnalysisError):
    status_code = 429
    code = "upstream_rate_limited"

    def __init__(self, retry_after: int | None = None):
        super().__init__("Rate limited. Please try again in a moment.")
        self.retry_after = retry_after


class UpstreamUnavailableError(AnalysisError):
    """The vision provider failed on its side (5xx or unreachable)."""

    status_code = 502
    code = "upstream_unavailable"

    def __init__(self, service: str = "vision", detail: str | None = None):
        super().__init__(
            f"{service} error: provider is experiencing issues. Please try again later.",
            detail=detail,
        )
        self.service = service


class AnalysisFailedError(AnalysisError):
    code = "analysis_failed"

    def __init__(self, message: str = "Failed to process image", detail: str | None = None):
        super().__init__(message, detail=detail)
