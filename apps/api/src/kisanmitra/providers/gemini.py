"""Gemini provider adapter for Google's generative language API."""

import logging
import time
from datetime import datetime, timezone
from typing import Any

import httpx

from kisanmitra.providers.base import (
    CompletionRequest,
    CompletionResponse,
    HealthStatus,
    ProviderAdapter,
    ProviderDownError,
    ProviderError,
    ProviderHealth,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class GeminiAdapter(ProviderAdapter):
    """
    Adapter for the Gemini generateContent REST API.

    Sends text prompts with optional inline images and returns the
    first candidate's text. Requires an API key.
    """

    SAFETY_CATEGORIES = (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "gemini"

    def _get_params(self) -> dict[str, str]:
        """Get query params with auth."""
        if not self.api_key:
            raise ProviderDownError(self.name, "Gemini API key not configured")
        return {"key": self.api_key}

    def _build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": request.prompt}]
        for image in request.images:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": image.mime_type,
                        "data": image.base64_data,
                    }
                }
            )

        generation_config: dict[str, Any] = {
            "temperature": request.temperature,
            "maxOutputTokens": request.max_tokens,
            "topP": request.top_p,
            "topK": request.top_k,
        }
        if request.json_mode:
            generation_config["responseMimeType"] = "application/json"

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
                for category in self.SAFETY_CATEGORIES
            ],
        }

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send completion request to Gemini."""
        start_time = time.monotonic()

        try:
            response = await self._client.post(
                f"{self.base_url}/models/{request.model}:generateContent",
                params=self._get_params(),
                json=self._build_payload(request),
            )

            latency_ms = int((time.monotonic() - start_time) * 1000)

            if response.status_code == 429:
                retry_after = response.headers.get("retry-after")
                raise RateLimitError(
                    self.name,
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                )

            response.raise_for_status()
            data = response.json()

        except httpx.ConnectError:
            raise ProviderDownError(self.name, "Cannot connect to Gemini API")
        except httpx.TimeoutException:
            raise ProviderDownError(self.name, "Gemini API request timed out")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise ProviderDownError(self.name, "Invalid Gemini API key")
            if status >= 500:
                raise ProviderDownError(self.name, f"Gemini error: {status}")
            # Bad request, unknown model, oversized image
            raise ProviderError(
                f"Gemini rejected the request: {status}", self.name, recoverable=False
            )
        except ValueError:
            raise ProviderError("Gemini returned a non-JSON body", self.name)

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise ProviderError(
                f"No candidates returned by Gemini (block reason: {block_reason})",
                self.name,
                recoverable=False,
            )

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            raise ProviderError("Invalid response format from Gemini API", self.name)

        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            logger.warning("Gemini output hit the token limit for %s", request.model)

        return CompletionResponse(
            content=text,
            model=request.model,
            provider=self.name,
            usage=data.get("usageMetadata"),
            latency_ms=latency_ms,
            finish_reason=finish_reason,
        )

    async def health_check(self) -> ProviderHealth:
        """Check Gemini API availability."""
        if not self.api_key:
            return ProviderHealth(
                status=HealthStatus.UNHEALTHY,
                last_check=datetime.now(timezone.utc),
                error="API key not configured",
            )

        start_time = time.monotonic()

        try:
            response = await self._client.get(
                f"{self.base_url}/models",
                params=self._get_params(),
            )
            latency_ms = int((time.monotonic() - start_time) * 1000)

            if response.status_code == 200:
                return ProviderHealth(
                    status=HealthStatus.HEALTHY,
                    latency_ms=latency_ms,
                    last_check=datetime.now(timezone.utc),
                    models_available=self._model_names(response.json())[:10],
                )

            return ProviderHealth(
                status=HealthStatus.DEGRADED,
                latency_ms=latency_ms,
                last_check=datetime.now(timezone.utc),
                error=f"Unexpected status: {response.status_code}",
            )

        except httpx.ConnectError:
            return ProviderHealth(
                status=HealthStatus.UNHEALTHY,
                last_check=datetime.now(timezone.utc),
                error="Cannot connect to Gemini API",
            )
        except httpx.HTTPError as e:
            return ProviderHealth(
                status=HealthStatus.UNHEALTHY,
                last_check=datetime.now(timezone.utc),
                error=str(e),
            )

    async def list_models(self) -> list[str]:
        """List available Gemini models."""
        if not self.api_key:
            return []

        try:
            response = await self._client.get(
                f"{self.base_url}/models",
                params=self._get_params(),
            )
            if response.status_code == 200:
                return self._model_names(response.json())
        except httpx.HTTPError as e:
            logger.warning("Listing Gemini models failed: %s", e)
        return []

    @staticmethod
    def _model_names(data: dict[str, Any]) -> list[str]:
        names = [m.get("name", "") for m in data.get("models", [])]
        return [name.removeprefix("models/") for name in names if "gemini" in name]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
