"""KisanMitra Storage Layer - Database and caches."""

from kisanmitra.storage.cache import InMemoryKeyValueStore, KeyValueStore, SQLiteKeyValueStore
from kisanmitra.storage.database import Database, close_database, create_database, get_database
from kisanmitra.storage.forecast import ForecastCache, LocationCache

__all__ = [
    "Database",
    "ForecastCache",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "LocationCache",
    "SQLiteKeyValueStore",
    "close_database",
    "create_database",
    "get_database",
]
