"""Shared test fixtures."""

import pytest

from kisanmitra.providers.base import (
    CompletionRequest,
    CompletionResponse,
    HealthStatus,
    ProviderAdapter,
    ProviderHealth,
)


class FakeProvider(ProviderAdapter):
    """Provider that replays canned responses and records requests."""

    def __init__(self, responses: list[str | Exception] | None = None):
        self.responses = list(responses or [])
        self.requests: list[CompletionRequest] = []

    @property
    def name(self) -> str:
        return "fake"

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        response = self.responses.pop(0) if self.responses else ""
        if isinstance(response, Exception):
            raise response
        return CompletionResponse(content=response, model=request.model, provider=self.name)

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(status=HealthStatus.HEALTHY)

    async def list_models(self) -> list[str]:
        return ["fake-model"]


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
