"""
Geocoding Client - OpenWeather geo API over HTTP.

Resolves city names to coordinates, suggests places while typing, and
turns coordinates back into a display label. Successful lookups are
cached in a KeyValueStore.
"""

import logging
from typing import Any

import httpx

from kisanmitra.core.models import Coordinates, Place, ResolvedLocation
from kisanmitra.storage.cache import KeyValueStore

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"


class LocationNotFoundError(Exception):
    """No place matched the requested name."""

    def __init__(self, query: str):
        super().__init__("Location not found")
        self.query = query


class GeocodingClient:
    """
    HTTP client for the OpenWeather geocoding endpoints.

    resolve_city raises when nothing matches; suggest_cities and reverse
    degrade to an empty list and "Unknown" respectively.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://api.openweathermap.org",
        cache: KeyValueStore | None = None,
        cache_ttl_seconds: float | None = 7 * 24 * 3600,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def resolve_city(self, name: str) -> ResolvedLocation:
        """
        Resolve a city name to coordinates and a label.

        Raises:
            LocationNotFoundError: blank name, no match, or lookup failure
        """
        query = name.strip()
        if not query:
            raise LocationNotFoundError(name)

        try:
            places = await self._direct(query, limit=1)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("City lookup failed for %r: %s", query, e)
            raise LocationNotFoundError(query) from e

        if not places:
            raise LocationNotFoundError(query)
        return self.to_location(places[0])

    async def suggest_cities(self, query: str) -> list[Place]:
        """Up to five places matching a partial name; [] on any failure."""
        query = query.strip()
        if not query:
            return []
        try:
            return await self._direct(query, limit=5)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("City suggestions failed for %r: %s", query, e)
            return []

    async def reverse(self, lat: float, lon: float) -> str:
        """Label for coordinates, or "Unknown"."""
        cache_key = f"geo:reverse:{lat:.3f},{lon:.3f}"
        cached = await self._cache_get(cache_key)
        if isinstance(cached, str):
            return cached

        try:
            data = await self._get("/geo/1.0/reverse", {"lat": lat, "lon": lon, "limit": 1})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lon, e)
            return UNKNOWN_LOCATION

        places = self._parse_places(data)
        if not places:
            return UNKNOWN_LOCATION

        label = places[0].label
        await self._cache_set(cache_key, label)
        return label

    @staticmethod
    def to_location(place: Place) -> ResolvedLocation:
        return ResolvedLocation(
            label=place.label,
            coordinates=Coordinates(latitude=place.lat, longitude=place.lon),
        )

    async def _direct(self, query: str, limit: int) -> list[Place]:
        cache_key = f"geo:direct:{limit}:{query.lower()}"
        cached = await self._cache_get(cache_key)
        if isinstance(cached, list):
            return self._parse_places(cached)

        data = await self._get("/geo/1.0/direct", {"q": query, "limit": limit})
        places = self._parse_places(data)
        if places:
            await self._cache_set(cache_key, [p.model_dump() for p in places])
        return places

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        if not self.api_key:
            raise httpx.RequestError("OpenWeather API key not configured")

        response = await self._client.get(
            f"{self.base_url}{path}",
            params={**params, "appid": self.api_key},
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse_places(data: Any) -> list[Place]:
        if not isinstance(data, list):
            return []

        places = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                places.append(
                    Place(
                        name=item.get("name") or "",
                        state=item.get("state") or None,
                        country=item.get("country") or None,
                        lat=item["lat"],
                        lon=item["lon"],
                    )
                )
            except (KeyError, ValueError):
                logger.debug("Skipping malformed geocoding entry: %s", item)
        return places

    async def _cache_get(self, key: str) -> Any | None:
        if self.cache is None:
            return None
        value = await self.cache.get(key)
        if value is not None:
            logger.info("Geocoding cache hit: %s", key)
        return value

    async def _cache_set(self, key: str, value: Any) -> None:
        if self.cache is not None:
            await self.cache.set(key, value, self.cache_ttl_seconds)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
