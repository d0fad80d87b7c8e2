"""Error types rendered by the API exception handlers.

The classes are defined next to the services that raise them; routers and
API clients import them from here.
"""

from menu_lens.services.exceptions import (
    AnalysisError,
    AnalysisFailedError,
    InvalidMediaTypeError,
    InvalidRequestError,
    MissingFieldsError,
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
)


__all__ = [
    "AnalysisError",
    "AnalysisFailedError",
    "InvalidMediaTypeError",
    "InvalidRequestError",
    "MissingFieldsError",
    "UpstreamAuthError",
    "UpstreamRateLimitError",
    "UpstreamUnavailableError",
]
