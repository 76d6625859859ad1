"""Weather forecast and last-location caches on top of a KeyValueStore."""

import logging
import time

from kisanmitra.core.models import CachedForecast, ResolvedLocation
from kisanmitra.storage.cache import Clock, KeyValueStore

logger = logging.getLogger(__name__)


class ForecastCache:
    """
    Forecasts keyed by coordinates rounded to 3 decimals (about 100 m).

    Entries are kept until overwritten; staleness is the reader's call
    via is_stale.
    """

    PREFIX = "weather:"

    def __init__(self, store: KeyValueStore, clock: Clock = time.time):
        self.store = store
        self._clock = clock

    @staticmethod
    def build_key(lat: float, lon: float) -> str:
        return f"{lat:.3f},{lon:.3f}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def save(self, entry: CachedForecast) -> CachedForecast:
        """Store an entry, stamping saved_at with the current time."""
        stamped = entry.model_copy(update={"saved_at": self._now_ms()})
        await self.store.set(self.PREFIX + stamped.key, stamped.model_dump(by_alias=True))
        return stamped

    async def load(self, key: str) -> CachedForecast | None:
        data = await self.store.get(self.PREFIX + key)
        if data is None:
            return None
        try:
            return CachedForecast.model_validate(data)
        except ValueError:
            logger.warning("Discarding malformed forecast cache entry %s", key)
            return None

    def is_stale(self, entry: CachedForecast | None, max_age_seconds: float) -> bool:
        """True when there is no entry or it is older than max_age_seconds."""
        if entry is None or not entry.saved_at:
            return True
        return self._now_ms() - entry.saved_at > max_age_seconds * 1000


class LocationCache:
    """The last location the user resolved."""

    KEY = "location:last"

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def save(self, location: ResolvedLocation) -> None:
        await self.store.set(self.KEY, location.model_dump(by_alias=True))

    async def load(self) -> ResolvedLocation | None:
        data = await self.store.get(self.KEY)
        if data is None:
            return None
        try:
            return ResolvedLocation.model_validate(data)
        except ValueError:
            logger.warning("Discarding malformed location cache entry")
            return None

    async def clear(self) -> None:
        await self.store.delete(self.KEY)
