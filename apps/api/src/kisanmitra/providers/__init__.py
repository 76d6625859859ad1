"""Provider adapters for generative model access."""

from kisanmitra.providers.base import (
    CompletionRequest,
    CompletionResponse,
    InlineImage,
    ProviderAdapter,
    ProviderDownError,
    ProviderError,
    ProviderHealth,
    RateLimitError,
)
from kisanmitra.providers.gemini import GeminiAdapter

__all__ = [
    "CompletionRequest",
    "CompletionResponse",
    "GeminiAdapter",
    "InlineImage",
    "ProviderAdapter",
    "ProviderDownError",
    "ProviderError",
    "ProviderHealth",
    "RateLimitError",
]
