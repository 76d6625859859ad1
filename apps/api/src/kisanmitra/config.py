"""KisanMitra configuration management."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "KisanMitra"
    debug: bool = False

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Cache database (weather, geocoding)
    database_url: str = "sqlite+aiosqlite:///./kisanmitra.db"

    # Security - API token for /api/* routes
    api_token: str | None = None

    # CORS - comma-separated list of allowed origins (Vite dev server by default)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Gemini
    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 120.0

    # Models per job
    detection_model: str = "gemini-2.5-flash"
    detection_max_tokens: int = 2048
    analysis_model: str = "gemini-2.5-pro"
    analysis_max_tokens: int = 8192
    advice_model: str = "gemini-2.5-flash"
    recommendation_model: str = "gemini-1.5-pro"
    recommendation_max_tokens: int = 2048

    # Geocoding
    openweather_api_key: str | None = None
    openweather_base_url: str = "https://api.openweathermap.org"
    geocoding_cache_ttl_seconds: int = 7 * 24 * 3600

    # Weather forecast cache
    forecast_max_age_seconds: int = 3 * 3600

    # Uploads
    max_image_bytes: int = 5 * 1024 * 1024

    # Defaults
    default_location: str = "Ichalkaranji, Maharashtra, India"
    default_language: str = "en"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
