"""Tests for the HTTP API."""

import io
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import Headers, UploadFile

from kisanmitra import main
from kisanmitra.clients import GeocodingClient
from kisanmitra.providers import GeminiAdapter
from kisanmitra.providers.base import ProviderDownError, ProviderError, RateLimitError
from kisanmitra.services.language import get_language_instructions
from kisanmitra.storage.cache import InMemoryKeyValueStore

from conftest import FakeProvider

IMAGE = ("leaf.jpg", b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")

ANALYSIS = {
    "identification": {
        "isHealthy": False,
        "diseaseName": "Bacterial Leaf Blight",
        "scientificName": "Xanthomonas oryzae",
        "confidenceScore": 91,
        "shortDescription": "Yellowing and drying of leaf tips.",
    },
    "solutionTabs": {
        "aboutDisease": {"title": "About", "content": []},
        "organicSolutions": {"title": "Organic", "content": []},
        "chemicalSolutions": {"title": "Chemical", "content": []},
        "preventiveMeasures": {"title": "Prevention", "content": []},
    },
}

WEATHER = {
    "temperature": 27,
    "humidity": 82,
    "rainfall": 210,
    "season": "Kharif",
    "location": "Kolhapur, Maharashtra",
}


def geo_handler(request: httpx.Request) -> httpx.Response:
    if request.url.params.get("q") == "Nowhere":
        return httpx.Response(200, json=[])
    return httpx.Response(
        200,
        json=[
            {
                "name": "Kolhapur",
                "state": "Maharashtra",
                "country": "IN",
                "lat": 16.705,
                "lon": 74.2433,
            }
        ],
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def client(provider: FakeProvider, store: InMemoryKeyValueStore):
    """TestClient with the provider, cache and geocoder replaced."""
    geocoder = GeocodingClient(
        api_key="geo-key",
        base_url="https://geo.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(geo_handler)),
    )
    main.app.dependency_overrides[main.get_provider] = lambda: provider
    main.app.dependency_overrides[main.get_store] = lambda: store
    main.app.dependency_overrides[main.get_geocoder] = lambda: geocoder
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class TestHealth:
    """Test health and status endpoints."""

    def test_health(self, client: TestClient) -> None:
        """Health reports the version."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "KisanMitra"

    def test_status_reports_config(self, client: TestClient) -> None:
        """Status lists the configured models."""
        body = client.get("/api/status").json()

        assert body["config"]["models"]["analysis"] == "gemini-2.5-pro"
        assert body["config"]["default_language"] == "en"

    def test_uninitialized_service(self) -> None:
        """Without startup the model endpoints are unavailable."""
        client = TestClient(main.app)

        response = client.post("/api/advice/general", json={"question": "When to sow?"})

        assert response.status_code == 503


class TestAnalyzeEndpoint:
    """Test /api/analyze."""

    def test_success(self, client: TestClient, provider: FakeProvider) -> None:
        """A valid upload returns the analysis in camelCase."""
        provider.responses = [json.dumps(ANALYSIS)]

        response = client.post(
            "/api/analyze",
            files={"image": IMAGE},
            data={"plantName": "Rice", "language": "hi"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analysis"]["identification"]["diseaseName"] == "Bacterial Leaf Blight"
        assert "Plant name: Rice" in provider.requests[0].prompt

    def test_missing_image(self, client: TestClient) -> None:
        """No image is a 400."""
        response = client.post("/api/analyze", data={"plantName": "Rice"})

        assert response.status_code == 400
        assert response.json() == {"error": "No image file provided"}

    def test_missing_plant_name(self, client: TestClient) -> None:
        """No plant name is a 400."""
        response = client.post("/api/analyze", files={"image": IMAGE})

        assert response.status_code == 400
        assert response.json()["error"] == "Plant name is required"

    def test_non_image_upload(self, client: TestClient) -> None:
        """Non-image MIME types are a 400."""
        response = client.post(
            "/api/analyze",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            data={"plantName": "Rice"},
        )

        assert response.status_code == 400

    def test_oversized_upload(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        """Images over the size limit are a 400."""
        monkeypatch.setattr(main.get_settings(), "max_image_bytes", 8)

        response = client.post(
            "/api/analyze",
            files={"image": ("big.jpg", b"\xff" * 64, "image/jpeg")},
            data={"plantName": "Rice"},
        )

        assert response.status_code == 400
        assert "too large" in response.json()["error"]

    async def test_upload_read_is_bounded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Only one byte past the limit is read from the upload."""
        monkeypatch.setattr(main.get_settings(), "max_image_bytes", 8)
        image = UploadFile(
            io.BytesIO(b"\xff" * 64),
            filename="big.jpg",
            headers=Headers({"content-type": "image/jpeg"}),
        )

        upload = await main._read_upload(image)

        assert len(upload.data) == 9
        assert upload.mime_type == "image/jpeg"

    def test_default_language_from_settings(
        self, client: TestClient, provider: FakeProvider, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Requests without a language use the configured default."""
        monkeypatch.setattr(main.get_settings(), "default_language", "mr")
        provider.responses = [json.dumps(ANALYSIS)]

        client.post("/api/analyze", files={"image": IMAGE}, data={"plantName": "Rice"})

        assert get_language_instructions("mr") in provider.requests[0].prompt

    def test_unparsable_output(self, client: TestClient, provider: FakeProvider) -> None:
        """Unusable model text is a 500 carrying the raw response."""
        provider.responses = ["I am unable to identify this plant."]

        response = client.post(
            "/api/analyze", files={"image": IMAGE}, data={"plantName": "Rice"}
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to parse Gemini response"
        assert body["failure"] == "NO_JSON_FOUND"
        assert body["rawResponse"] == "I am unable to identify this plant."

    def test_provider_down(self, client: TestClient, provider: FakeProvider) -> None:
        """An unavailable provider is a 503."""
        provider.responses = [ProviderDownError("gemini", "Cannot connect to Gemini API")]

        response = client.post(
            "/api/analyze", files={"image": IMAGE}, data={"plantName": "Rice"}
        )

        assert response.status_code == 503
        assert response.json()["details"] == "Cannot connect to Gemini API"


class TestDetectEndpoint:
    """Test /api/detect."""

    def test_detection_record(self, client: TestClient, provider: FakeProvider) -> None:
        """The normalized record is returned in wire shape."""
        provider.responses = ['{"plantName": "Wheat", "confidence": 77, "diseases": [{"name": "Rust"}]}']

        response = client.post("/api/detect", files={"image": IMAGE}, data={"plantName": "Wheat"})

        assert response.status_code == 200
        body = response.json()
        assert body["plantName"] == "Wheat"
        assert body["diseases"][0]["name"] == "Rust"
        assert body["diseases"][0]["treatment"] == {"organic": [], "chemical": []}
        assert body["plantDetails"]["careInstructions"] == []

    def test_failure_sentinel(self, client: TestClient, provider: FakeProvider) -> None:
        """Unusable output still returns a complete record."""
        provider.responses = ["no idea"]

        response = client.post("/api/detect", files={"image": IMAGE}, data={"plantName": "Wheat"})

        assert response.status_code == 200
        assert response.json()["diseases"][0]["name"] == "Analysis Failed"


class TestAdviceEndpoints:
    """Test advice endpoints."""

    def test_general_advice(self, client: TestClient, provider: FakeProvider) -> None:
        """The advice text is returned."""
        provider.responses = ["Sow in mid-June."]

        response = client.post(
            "/api/advice/general", json={"question": "When to sow rice?", "language": "mr"}
        )

        assert response.json() == {"advice": "Sow in mid-June."}

    def test_disease_advice(self, client: TestClient, provider: FakeProvider) -> None:
        """camelCase request fields are accepted."""
        provider.responses = ["Use copper fungicide."]

        response = client.post(
            "/api/advice/disease",
            json={"diseaseName": "Blast", "plantName": "Rice"},
        )

        assert response.status_code == 200
        assert '"Blast" on Rice' in provider.requests[0].prompt

    def test_blank_question_rejected(self, client: TestClient) -> None:
        """Empty questions fail validation."""
        response = client.post("/api/advice/general", json={"question": ""})

        assert response.status_code == 422

    def test_rate_limited(self, client: TestClient, provider: FakeProvider) -> None:
        """Rate limits are a 503 with Retry-After."""
        provider.responses = [RateLimitError("gemini", retry_after=30)]

        response = client.post("/api/advice/general", json={"question": "?"})

        assert response.status_code == 503
        assert response.headers["retry-after"] == "30"

    def test_other_provider_error(self, client: TestClient, provider: FakeProvider) -> None:
        """Other provider failures are a 502."""
        provider.responses = [ProviderError("Gemini returned no candidates", "gemini", False)]

        response = client.post("/api/advice/general", json={"question": "?"})

        assert response.status_code == 502
        assert response.json()["error"] == "Model request failed"

    def test_gemini_bad_request(self, client: TestClient) -> None:
        """A 400 from Gemini is a 502, not a provider outage."""
        gemini = GeminiAdapter(
            api_key="test-key",
            base_url="https://gemini.test/v1beta",
            client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(400, json={}))
            ),
        )
        main.app.dependency_overrides[main.get_provider] = lambda: gemini

        response = client.post("/api/advice/general", json={"question": "?"})

        assert response.status_code == 502
        assert "400" in response.json()["details"]


class TestCropEndpoints:
    """Test crop recommendation and catalog endpoints."""

    def test_recommend(self, client: TestClient, provider: FakeProvider) -> None:
        """Recommendations come back in camelCase."""
        provider.responses = [
            '{"recommendations": [{"cropName": "Sugarcane", "suitabilityScore": 90}], '
            '"bestSeason": "Adsali"}'
        ]

        response = client.post(
            "/api/crops/recommend",
            json={"weather": WEATHER, "preferences": {"cropType": "all", "farmSize": "small"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["recommendations"][0]["cropName"] == "Sugarcane"
        assert body["bestSeason"] == "Adsali"

    def test_recommend_fallback(self, client: TestClient, provider: FakeProvider) -> None:
        """Provider failure still returns the fallback."""
        provider.responses = [ProviderDownError("gemini")]

        response = client.post("/api/crops/recommend", json={"weather": WEATHER})

        assert response.status_code == 200
        assert response.json()["recommendations"][0]["cropName"] == "Rice"

    def test_invalid_preferences(self, client: TestClient) -> None:
        """Unknown enum values fail validation."""
        response = client.post(
            "/api/crops/recommend",
            json={"weather": WEATHER, "preferences": {"budget": "unlimited"}},
        )

        assert response.status_code == 422

    def test_details(self, client: TestClient, provider: FakeProvider) -> None:
        """Details echo the crop name."""
        provider.responses = ["Jowar grows well in black soil."]

        response = client.post(
            "/api/crops/details", json={"cropName": "Jowar", "weather": WEATHER}
        )

        assert response.json() == {
            "cropName": "Jowar",
            "details": "Jowar grows well in black soil.",
        }

    def test_catalog(self, client: TestClient) -> None:
        """The catalog can be listed, filtered, grouped and searched."""
        assert len(client.get("/api/crops").json()) == 259

        cereals = client.get("/api/crops", params={"category": "cereals"}).json()
        assert cereals and {c["category"] for c in cereals} == {"Cereals"}

        categories = client.get("/api/crops/categories").json()
        assert len(categories) == 13

        results = client.get("/api/crops/search", params={"q": "wheat"}).json()
        assert "Wheat" in [c["name"] for c in results]


class TestFertilizerEndpoints:
    """Test fertilizer endpoints."""

    DATA = {
        "cropName": "Cotton",
        "growthStage": "flowering",
        "soilPh": 7.2,
        "soilType": "clay",
        "nutrients": {"nitrogen": 150, "phosphorus": 20, "potassium": 250, "organicMatter": 0.5},
        "weatherConditions": {"temperature": 30, "humidity": 55, "rainfall": 20},
    }

    def test_recommend(self, client: TestClient, provider: FakeProvider) -> None:
        """Valid output is returned."""
        provider.responses = ['{"recommendations": [{"fertilizerName": "MOP"}]}']

        response = client.post(
            "/api/fertilizer/recommend",
            json={"data": self.DATA, "additionalInfo": {"irrigationType": "drip"}},
        )

        assert response.status_code == 200
        assert response.json()["recommendations"][0]["fertilizerName"] == "MOP"
        assert "- Irrigation: drip" in provider.requests[0].prompt

    def test_details(self, client: TestClient, provider: FakeProvider) -> None:
        """Details echo the fertilizer name."""
        provider.responses = ["MOP supplies potassium."]

        response = client.post(
            "/api/fertilizer/details", json={"fertilizerName": "MOP", "cropName": "Cotton"}
        )

        assert response.json()["fertilizerName"] == "MOP"


class TestLocationEndpoints:
    """Test geocoding endpoints and the last-location record."""

    def test_resolve_saves_last_location(self, client: TestClient) -> None:
        """Resolving a city makes it the last location."""
        response = client.get("/api/location/resolve", params={"city": "Kolhapur"})

        assert response.status_code == 200
        assert response.json()["label"] == "Kolhapur, Maharashtra, IN"

        last = client.get("/api/location/last").json()
        assert last["coordinates"] == {"latitude": 16.705, "longitude": 74.2433}

    def test_resolve_not_found(self, client: TestClient) -> None:
        """Unknown cities are a 404."""
        response = client.get("/api/location/resolve", params={"city": "Nowhere"})

        assert response.status_code == 404
        assert response.json() == {"error": "Location not found", "query": "Nowhere"}

    def test_no_last_location(self, client: TestClient) -> None:
        """Nothing saved is a 404."""
        assert client.get("/api/location/last").status_code == 404

    def test_search(self, client: TestClient) -> None:
        """Suggestions include a display label."""
        places = client.get("/api/location/search", params={"q": "Kol"}).json()

        assert places[0]["label"] == "Kolhapur, Maharashtra, IN"

    def test_reverse(self, client: TestClient) -> None:
        """Coordinates resolve to a label."""
        response = client.get("/api/location/reverse", params={"lat": 16.705, "lon": 74.2433})

        assert response.json() == {"label": "Kolhapur, Maharashtra, IN"}

    def test_reverse_out_of_range(self, client: TestClient) -> None:
        """Latitude outside -90..90 fails validation."""
        response = client.get("/api/location/reverse", params={"lat": 91, "lon": 0})

        assert response.status_code == 422


class TestWeatherCacheEndpoints:
    """Test the forecast cache endpoints."""

    def test_empty_cache_is_stale(self, client: TestClient) -> None:
        """No entry is reported as stale."""
        body = client.get("/api/weather/cache", params={"lat": 16.7, "lon": 74.24}).json()

        assert body == {"key": "16.700,74.240", "entry": None, "stale": True}

    def test_put_then_get(self, client: TestClient) -> None:
        """A stored forecast is fresh and keyed by rounded coordinates."""
        put = client.put(
            "/api/weather/cache",
            json={
                "lat": 16.70512,
                "lon": 74.24331,
                "locationLabel": "Kolhapur, Maharashtra, IN",
                "forecast": [
                    {"date": "2024-07-02", "min": 22, "max": 28, "description": "rain", "rainLikely": True}
                ],
            },
        )

        assert put.status_code == 200
        assert put.json()["key"] == "16.705,74.243"
        assert put.json()["savedAt"] > 0

        body = client.get("/api/weather/cache", params={"lat": 16.7051, "lon": 74.2433}).json()
        assert body["stale"] is False
        assert body["entry"]["forecast"][0]["rainLikely"] is True

    def test_negative_max_age_rejected(self, client: TestClient) -> None:
        """maxAgeSeconds must not be negative."""
        client.put("/api/weather/cache", json={"lat": 1, "lon": 2})

        body = client.get(
            "/api/weather/cache", params={"lat": 1, "lon": 2, "maxAgeSeconds": -1}
        )

        assert body.status_code == 422


class TestLanguageEndpoints:
    """Test language lookups."""

    def test_list(self, client: TestClient) -> None:
        """All supported codes are listed."""
        languages = client.get("/api/languages").json()["languages"]

        assert len(languages) == 23
        assert "kok" in languages

    def test_supported_language(self, client: TestClient) -> None:
        """Known codes report their instructions and locale."""
        body = client.get("/api/languages/TA").json()

        assert body["code"] == "ta"
        assert body["supported"] is True
        assert body["speechLocale"] == "ta-IN"

    def test_unsupported_language(self, client: TestClient) -> None:
        """Unknown codes fall back to English."""
        body = client.get("/api/languages/fr").json()

        assert body["code"] == "en"
        assert body["supported"] is False
        assert body["instructions"].startswith("Respond ONLY in ENGLISH")
