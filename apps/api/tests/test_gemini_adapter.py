"""Tests for the Gemini provider adapter."""

import base64
import json

import httpx
import pytest

from kisanmitra.providers import GeminiAdapter, InlineImage
from kisanmitra.providers.base import (
    CompletionRequest,
    HealthStatus,
    ProviderDownError,
    ProviderError,
    RateLimitError,
)

BASE_URL = "https://gemini.test/v1beta"


def make_adapter(handler, api_key: str | None = "test-key") -> GeminiAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiAdapter(api_key=api_key, base_url=BASE_URL, client=client)


def candidate_response(text: str, finish_reason: str = "STOP") -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "candidates": [
                {
                    "content": {"role": "model", "parts": [{"text": text}]},
                    "finishReason": finish_reason,
                }
            ],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 34},
        },
    )


class TestGeminiComplete:
    """Test generateContent requests and responses."""

    async def test_sends_prompt_image_and_config(self) -> None:
        """The payload carries text, inline image, generation config and safety settings."""
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return candidate_response('{"plantName": "Tomato"}')

        adapter = make_adapter(handler)
        response = await adapter.complete(
            CompletionRequest(
                prompt="Analyze this plant",
                model="gemini-2.5-flash",
                images=[InlineImage(mime_type="image/png", data=b"\x89PNG")],
                temperature=0.2,
                max_tokens=2048,
            )
        )

        assert response.content == '{"plantName": "Tomato"}'
        assert response.provider == "gemini"
        assert response.usage == {"promptTokenCount": 12, "candidatesTokenCount": 34}

        assert seen["url"].path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert seen["url"].params["key"] == "test-key"

        body = seen["body"]
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "Analyze this plant"}
        assert parts[1]["inlineData"] == {
            "mimeType": "image/png",
            "data": base64.b64encode(b"\x89PNG").decode(),
        }
        assert body["generationConfig"] == {
            "temperature": 0.2,
            "maxOutputTokens": 2048,
            "topP": 0.95,
            "topK": 40,
        }
        assert len(body["safetySettings"]) == 4
        assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}

        await adapter.close()

    async def test_json_mode_sets_response_mime_type(self) -> None:
        """json_mode asks Gemini for application/json output."""
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return candidate_response("{}")

        adapter = make_adapter(handler)
        await adapter.complete(CompletionRequest(prompt="p", model="m", json_mode=True))

        assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"

    async def test_joins_text_parts(self) -> None:
        """Multiple text parts are concatenated."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "{\"a\":"}, {"text": "1}"}]}}]},
            )

        adapter = make_adapter(handler)
        response = await adapter.complete(CompletionRequest(prompt="p", model="m"))

        assert response.content == '{"a":1}'

    async def test_max_tokens_marks_truncated(self) -> None:
        """finishReason MAX_TOKENS is surfaced on the response."""
        adapter = make_adapter(lambda request: candidate_response('{"a": [1,', "MAX_TOKENS"))

        response = await adapter.complete(CompletionRequest(prompt="p", model="m"))

        assert response.truncated

    async def test_rate_limit(self) -> None:
        """429 raises RateLimitError with retry-after."""
        adapter = make_adapter(
            lambda request: httpx.Response(429, headers={"retry-after": "30"}, json={})
        )

        with pytest.raises(RateLimitError) as exc_info:
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

        assert exc_info.value.retry_after == 30

    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_invalid_key(self, status_code: int) -> None:
        """Auth failures raise ProviderDownError."""
        adapter = make_adapter(lambda request: httpx.Response(status_code, json={}))

        with pytest.raises(ProviderDownError, match="Invalid Gemini API key"):
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

    async def test_server_error(self) -> None:
        """5xx raises ProviderDownError."""
        adapter = make_adapter(lambda request: httpx.Response(500, json={}))

        with pytest.raises(ProviderDownError):
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

    @pytest.mark.parametrize("status_code", [400, 404])
    async def test_rejected_request(self, status_code: int) -> None:
        """Other 4xx responses are non-recoverable, not an outage."""
        adapter = make_adapter(lambda request: httpx.Response(status_code, json={}))

        with pytest.raises(ProviderError) as exc_info:
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

        assert not isinstance(exc_info.value, ProviderDownError)
        assert not exc_info.value.recoverable
        assert str(status_code) in str(exc_info.value)

    async def test_connect_error(self) -> None:
        """Connection failures raise ProviderDownError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = make_adapter(handler)

        with pytest.raises(ProviderDownError, match="Cannot connect"):
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

    async def test_blocked_prompt(self) -> None:
        """No candidates raises a non-recoverable ProviderError."""
        adapter = make_adapter(
            lambda request: httpx.Response(
                200, json={"promptFeedback": {"blockReason": "SAFETY"}}
            )
        )

        with pytest.raises(ProviderError) as exc_info:
            await adapter.complete(CompletionRequest(prompt="p", model="m"))

        assert not exc_info.value.recoverable
        assert "SAFETY" in str(exc_info.value)

    async def test_missing_key(self) -> None:
        """Calls without an API key fail before any request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return candidate_response("{}")

        adapter = make_adapter(handler, api_key=None)

        with pytest.raises(ProviderDownError):
            await adapter.complete(CompletionRequest(prompt="p", model="m"))
        assert calls == []


class TestGeminiHealth:
    """Test health checks and model listing."""

    async def test_healthy(self) -> None:
        """200 from /models is healthy and lists Gemini models."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1beta/models"
            return httpx.Response(
                200,
                json={
                    "models": [
                        {"name": "models/gemini-2.5-pro"},
                        {"name": "models/gemini-2.5-flash"},
                        {"name": "models/embedding-001"},
                    ]
                },
            )

        adapter = make_adapter(handler)

        health = await adapter.health_check()
        models = await adapter.list_models()

        assert health.status == HealthStatus.HEALTHY
        assert models == ["gemini-2.5-pro", "gemini-2.5-flash"]

    async def test_no_key_unhealthy(self) -> None:
        """Without a key the provider is unhealthy and lists nothing."""
        adapter = make_adapter(lambda request: httpx.Response(200, json={}), api_key=None)

        assert (await adapter.health_check()).status == HealthStatus.UNHEALTHY
        assert await adapter.list_models() == []

    async def test_degraded_on_error_status(self) -> None:
        """Non-200 responses are degraded."""
        adapter = make_adapter(lambda request: httpx.Response(503, json={}))

        assert (await adapter.health_check()).status == HealthStatus.DEGRADED
