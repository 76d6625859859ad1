"""
KisanMitra API - Main FastAPI application.

Entry point for the KisanMitra backend server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field

from kisanmitra import __version__
from kisanmitra.clients import GeocodingClient, LocationNotFoundError
from kisanmitra.config import get_settings
from kisanmitra.core.models import (
    AdditionalFertilizerInfo,
    CachedForecast,
    CamelModel,
    Crop,
    CropCategory,
    CropPreferences,
    CropRecommendationResponse,
    CurrentWeather,
    DailyForecast,
    DiseaseDetectionResult,
    FertilizerData,
    FertilizerResponse,
    ResolvedLocation,
    SoilData,
    WeatherData,
)
from kisanmitra.middleware.auth import APITokenMiddleware
from kisanmitra.providers import GeminiAdapter, ProviderAdapter
from kisanmitra.providers.base import ProviderDownError, ProviderError, RateLimitError
from kisanmitra.services import (
    AdvisorService,
    AnalysisParseError,
    CropRecommendationService,
    DiseaseAnalysisService,
    DiseaseDetectionService,
    FertilizerRecommendationService,
    ImageUpload,
    ImageValidationError,
    validate_image_upload,
)
from kisanmitra.services import crop_catalog
from kisanmitra.services.language import (
    LANGUAGE_INSTRUCTIONS,
    get_language_instructions,
    get_speech_locale,
    normalize_language,
)
from kisanmitra.storage import (
    ForecastCache,
    KeyValueStore,
    LocationCache,
    SQLiteKeyValueStore,
    close_database,
    get_database,
)

logger = logging.getLogger(__name__)


# Global instances
gemini_adapter: GeminiAdapter | None = None
key_value_store: KeyValueStore | None = None
geocoding_client: GeocodingClient | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - setup and teardown."""
    global gemini_adapter, key_value_store, geocoding_client

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database-backed cache
    database = await get_database()
    key_value_store = SQLiteKeyValueStore(database)

    gemini_adapter = GeminiAdapter(
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout_seconds,
    )
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; model endpoints will fall back")

    geocoding_client = GeocodingClient(
        api_key=settings.openweather_api_key,
        base_url=settings.openweather_base_url,
        cache=key_value_store,
        cache_ttl_seconds=settings.geocoding_cache_ttl_seconds,
    )

    yield

    # Cleanup
    await gemini_adapter.close()
    await geocoding_client.close()
    await close_database()


settings = get_settings()

app = FastAPI(
    title=f"{settings.app_name} API",
    description="Farming assistant: plant disease detection, crop and fertilizer advice",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(APITokenMiddleware, api_token=settings.api_token)

# CORS for the web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Dependencies
# =============================================================================


def get_provider() -> ProviderAdapter:
    if gemini_adapter is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return gemini_adapter


def get_store() -> KeyValueStore:
    if key_value_store is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return key_value_store


def get_geocoder() -> GeocodingClient:
    if geocoding_client is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return geocoding_client


def get_detection_service(provider: ProviderAdapter = Depends(get_provider)):
    s = get_settings()
    return DiseaseDetectionService(
        provider, model=s.detection_model, max_tokens=s.detection_max_tokens
    )


def get_analysis_service(provider: ProviderAdapter = Depends(get_provider)):
    s = get_settings()
    return DiseaseAnalysisService(
        provider,
        model=s.analysis_model,
        max_tokens=s.analysis_max_tokens,
        default_location=s.default_location,
    )


def get_advisor_service(provider: ProviderAdapter = Depends(get_provider)):
    return AdvisorService(provider, model=get_settings().advice_model)


def get_crop_service(provider: ProviderAdapter = Depends(get_provider)):
    s = get_settings()
    return CropRecommendationService(
        provider, model=s.recommendation_model, max_tokens=s.recommendation_max_tokens
    )


def get_fertilizer_service(provider: ProviderAdapter = Depends(get_provider)):
    s = get_settings()
    return FertilizerRecommendationService(
        provider, model=s.recommendation_model, max_tokens=s.recommendation_max_tokens
    )


# =============================================================================
# Error Handlers
# =============================================================================


@app.exception_handler(ImageValidationError)
async def image_validation_handler(request: Request, exc: ImageValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(AnalysisParseError)
async def analysis_parse_handler(request: Request, exc: AnalysisParseError):
    return JSONResponse(
        status_code=500,
        content={
            "error": "Failed to parse Gemini response",
            "failure": exc.failure.value,
            "rawResponse": exc.raw_response,
        },
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.error("Provider %s failed on %s: %s", exc.provider, request.url.path, exc)
    status_code = 503 if isinstance(exc, (ProviderDownError, RateLimitError)) else 502
    headers = {}
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=status_code,
        content={"error": "Model request failed", "details": str(exc)},
        headers=headers,
    )


@app.exception_handler(LocationNotFoundError)
async def location_not_found_handler(request: Request, exc: LocationNotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc), "query": exc.query})


# =============================================================================
# Request Models
# =============================================================================


class DiseaseAdviceRequest(CamelModel):
    disease_name: str = Field(min_length=1)
    plant_name: str | None = None
    additional_context: str | None = None
    language: str | None = None


class FarmingAdviceRequest(CamelModel):
    question: str = Field(min_length=1)
    language: str | None = None


class CropRecommendRequest(CamelModel):
    weather: WeatherData
    soil: SoilData | None = None
    preferences: CropPreferences | None = None
    language: str | None = None


class CropDetailsRequest(CamelModel):
    crop_name: str = Field(min_length=1)
    weather: WeatherData
    language: str | None = None


class FertilizerRecommendRequest(CamelModel):
    data: FertilizerData
    additional_info: AdditionalFertilizerInfo | None = None
    language: str | None = None


class FertilizerDetailsRequest(CamelModel):
    fertilizer_name: str = Field(min_length=1)
    crop_name: str = Field(min_length=1)
    language: str | None = None


class WeatherCacheUpdate(CamelModel):
    lat: float
    lon: float
    location_label: str | None = None
    current: CurrentWeather | None = None
    forecast: list[DailyForecast] | None = None


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get("/health")
async def health() -> dict[str, str]:
    """Basic health check."""
    return {"status": "healthy", "service": get_settings().app_name, "version": __version__}


@app.get("/api/status")
async def status() -> dict[str, Any]:
    """Detailed system status including the model provider."""
    settings = get_settings()

    providers: dict[str, Any] = {}
    if gemini_adapter:
        health_result = await gemini_adapter.health_check()
        providers[gemini_adapter.name] = {
            "status": health_result.status.value,
            "latency_ms": health_result.latency_ms,
            "error": health_result.error,
        }

    return {
        "version": __version__,
        "providers": providers,
        "config": {
            "models": {
                "detection": settings.detection_model,
                "analysis": settings.analysis_model,
                "advice": settings.advice_model,
                "recommendation": settings.recommendation_model,
            },
            "max_image_bytes": settings.max_image_bytes,
            "default_language": settings.default_language,
            "auth_enabled": bool(settings.api_token),
        },
    }


# =============================================================================
# Plant Disease Endpoints
# =============================================================================


def _language(value: str | None) -> str:
    """Requested language, or the configured default when none was sent."""
    return value or get_settings().default_language


async def _read_upload(image: UploadFile | None) -> ImageUpload | None:
    """Read at most one byte past the size limit."""
    if image is None:
        return None
    return ImageUpload(
        data=await image.read(get_settings().max_image_bytes + 1),
        mime_type=image.content_type or "",
        filename=image.filename,
    )


@app.post("/api/analyze")
async def analyze(
    image: UploadFile | None = File(None),
    plant_name: str | None = Form(None, alias="plantName"),
    location: str | None = Form(None),
    language: str | None = Form(None),
    service: DiseaseAnalysisService = Depends(get_analysis_service),
) -> dict[str, Any]:
    """
    Full disease analysis with solution tabs.

    Returns {success, analysis}; 400 on a bad upload, 500 with the raw
    model text when the output cannot be parsed.
    """
    upload = await _read_upload(image)
    name = validate_image_upload(upload, plant_name, get_settings().max_image_bytes)

    analysis = await service.analyze(
        upload.data,
        name,
        mime_type=upload.mime_type,
        location=location,
        language=_language(language),
    )
    return {"success": True, "analysis": analysis.model_dump(by_alias=True)}


@app.post("/api/detect", response_model=DiseaseDetectionResult)
async def detect(
    image: UploadFile | None = File(None),
    plant_name: str | None = Form(None, alias="plantName"),
    language: str | None = Form(None),
    service: DiseaseDetectionService = Depends(get_detection_service),
) -> DiseaseDetectionResult:
    """Brief disease detection. Always a complete record for valid uploads."""
    upload = await _read_upload(image)
    name = validate_image_upload(upload, plant_name, get_settings().max_image_bytes)
    return await service.detect(
        upload.data, name, mime_type=upload.mime_type, language=_language(language)
    )


# =============================================================================
# Advice Endpoints
# =============================================================================


@app.post("/api/advice/disease")
async def disease_advice(
    request: DiseaseAdviceRequest,
    service: AdvisorService = Depends(get_advisor_service),
) -> dict[str, str]:
    advice = await service.get_disease_advice(
        request.disease_name,
        plant_name=request.plant_name,
        additional_context=request.additional_context,
        language=_language(request.language),
    )
    return {"advice": advice}


@app.post("/api/advice/general")
async def general_advice(
    request: FarmingAdviceRequest,
    service: AdvisorService = Depends(get_advisor_service),
) -> dict[str, str]:
    advice = await service.get_farming_advice(
        request.question, language=_language(request.language)
    )
    return {"advice": advice}


# =============================================================================
# Crop Endpoints
# =============================================================================


@app.post("/api/crops/recommend", response_model=CropRecommendationResponse)
async def recommend_crops(
    request: CropRecommendRequest,
    service: CropRecommendationService = Depends(get_crop_service),
) -> CropRecommendationResponse:
    return await service.get_recommendations(
        request.weather,
        soil=request.soil,
        preferences=request.preferences,
        language=_language(request.language),
    )


@app.post("/api/crops/details")
async def crop_details(
    request: CropDetailsRequest,
    service: CropRecommendationService = Depends(get_crop_service),
) -> dict[str, str]:
    details = await service.get_crop_details(
        request.crop_name, request.weather, language=_language(request.language)
    )
    return {"cropName": request.crop_name, "details": details}


@app.get("/api/crops", response_model=list[Crop])
async def list_crops(category: str | None = Query(default=None)) -> list[Crop]:
    """All crops, optionally limited to one category (case-insensitive)."""
    crops = crop_catalog.all_crops()
    if category:
        wanted = category.strip().lower()
        return [crop for crop in crops if crop.category.lower() == wanted]
    return list(crops)


@app.get("/api/crops/categories", response_model=list[CropCategory])
async def list_crop_categories() -> list[CropCategory]:
    return crop_catalog.crops_by_category()


@app.get("/api/crops/search", response_model=list[Crop])
async def search_crops(q: str = Query(default="")) -> list[Crop]:
    return crop_catalog.search_crops(q)


# =============================================================================
# Fertilizer Endpoints
# =============================================================================


@app.post("/api/fertilizer/recommend", response_model=FertilizerResponse)
async def recommend_fertilizer(
    request: FertilizerRecommendRequest,
    service: FertilizerRecommendationService = Depends(get_fertilizer_service),
) -> FertilizerResponse:
    return await service.get_recommendations(
        request.data,
        additional=request.additional_info,
        language=_language(request.language),
    )


@app.post("/api/fertilizer/details")
async def fertilizer_details(
    request: FertilizerDetailsRequest,
    service: FertilizerRecommendationService = Depends(get_fertilizer_service),
) -> dict[str, str]:
    details = await service.get_fertilizer_details(
        request.fertilizer_name, request.crop_name, language=_language(request.language)
    )
    return {"fertilizerName": request.fertilizer_name, "details": details}


# =============================================================================
# Location Endpoints
# =============================================================================


@app.get("/api/location/search")
async def search_locations(
    q: str = Query(default=""),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> list[dict[str, Any]]:
    """City suggestions while typing."""
    places = await geocoder.suggest_cities(q)
    return [{**place.model_dump(by_alias=True), "label": place.label} for place in places]


@app.get("/api/location/resolve", response_model=ResolvedLocation)
async def resolve_location(
    city: str = Query(min_length=1),
    geocoder: GeocodingClient = Depends(get_geocoder),
    store: KeyValueStore = Depends(get_store),
) -> ResolvedLocation:
    """Resolve a city name and remember it as the last location."""
    location = await geocoder.resolve_city(city)
    await LocationCache(store).save(location)
    return location


@app.get("/api/location/reverse")
async def reverse_location(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> dict[str, str]:
    return {"label": await geocoder.reverse(lat, lon)}


@app.get("/api/location/last", response_model=ResolvedLocation)
async def last_location(store: KeyValueStore = Depends(get_store)) -> ResolvedLocation:
    location = await LocationCache(store).load()
    if location is None:
        raise HTTPException(status_code=404, detail="No location saved")
    return location


# =============================================================================
# Weather Cache Endpoints
# =============================================================================


@app.get("/api/weather/cache")
async def get_weather_cache(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
    max_age_seconds: int | None = Query(default=None, alias="maxAgeSeconds", ge=0),
    store: KeyValueStore = Depends(get_store),
) -> dict[str, Any]:
    """Cached forecast for coordinates, with a staleness flag."""
    cache = ForecastCache(store)
    key = cache.build_key(lat, lon)
    entry = await cache.load(key)
    max_age = (
        max_age_seconds if max_age_seconds is not None else get_settings().forecast_max_age_seconds
    )
    return {
        "key": key,
        "entry": entry.model_dump(by_alias=True) if entry else None,
        "stale": cache.is_stale(entry, max_age),
    }


@app.put("/api/weather/cache", response_model=CachedForecast)
async def put_weather_cache(
    update: WeatherCacheUpdate,
    store: KeyValueStore = Depends(get_store),
) -> CachedForecast:
    cache = ForecastCache(store)
    entry = CachedForecast(
        key=cache.build_key(update.lat, update.lon),
        location_label=update.location_label,
        current=update.current,
        forecast=update.forecast,
    )
    return await cache.save(entry)


# =============================================================================
# Language Endpoints
# =============================================================================


@app.get("/api/languages")
async def list_languages() -> dict[str, list[str]]:
    return {"languages": sorted(LANGUAGE_INSTRUCTIONS)}


@app.get("/api/languages/{code}")
async def language_info(code: str) -> dict[str, Any]:
    """Model instruction and speech locale for a language code."""
    resolved = normalize_language(code)
    return {
        "code": resolved,
        "requested": code,
        "supported": resolved == code.strip().lower(),
        "instructions": get_language_instructions(code),
        "speechLocale": get_speech_locale(code),
    }


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "kisanmitra.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
