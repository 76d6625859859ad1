"""Clients for external HTTP services."""

from kisanmitra.clients.geocoding import GeocodingClient, LocationNotFoundError

__all__ = ["GeocodingClient", "LocationNotFoundError"]
