"""Model provider interface: one multimodal prompt in, one text answer out."""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"


@dataclass
class ProviderHealth:
    """Result of probing the model API."""

    status: HealthStatus
    latency_ms: int | None = None
    last_check: datetime | None = None
    error: str | None = None
    models_available: list[str] | None = None


@dataclass
class InlineImage:
    """Plant photo attached to a prompt."""

    mime_type: str
    data: bytes

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class CompletionRequest:
    """
    A single-turn prompt with optional images.

    Sampling defaults match what the farming prompts were tuned with
    (low temperature, topP 0.95, topK 40).
    """

    prompt: str
    model: str
    images: list[InlineImage] = field(default_factory=list)
    temperature: float = 0.2
    max_tokens: int = 2048
    top_p: float = 0.95
    top_k: int = 40
    json_mode: bool = False


@dataclass
class CompletionResponse:
    """Raw text returned by the model, before any JSON repair."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] | None = None
    latency_ms: int = 0
    finish_reason: str | None = None

    @property
    def truncated(self) -> bool:
        """True when the model stopped at the output token limit."""
        return self.finish_reason == "MAX_TOKENS"


class ProviderAdapter(ABC):
    """Generative model backend used by the farming services."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Run a prompt and return the model's text.

        Raises:
            ProviderError: the call failed or produced no text
        """
        ...

    @abstractmethod
    async def health_check(self) -> ProviderHealth: ...

    @abstractmethod
    async def list_models(self) -> list[str]: ...

    async def close(self) -> None:
        """Release HTTP resources. No-op by default."""


class ProviderError(Exception):
    """Model call failed. recoverable=False means retrying will not help."""

    def __init__(self, message: str, provider: str, recoverable: bool = True):
        super().__init__(message)
        self.provider = provider
        self.recoverable = recoverable


class RateLimitError(ProviderError):
    def __init__(self, provider: str, retry_after: int | None = None):
        super().__init__(f"Rate limit exceeded for {provider}", provider, recoverable=True)
        self.retry_after = retry_after


class ProviderDownError(ProviderError):
    """Model API unreachable, misconfigured or returning server errors."""

    def __init__(self, provider: str, message: str = "Provider unavailable"):
        super().__init__(message, provider, recoverable=True)
