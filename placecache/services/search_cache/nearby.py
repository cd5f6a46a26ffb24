"""Cache for nearby (radius) searches around an origin.

Keys are the origin rounded to three decimals (about 100 m) plus the radius.
An exact-key miss falls back to any fresh durable entry whose origin lies
within ``proximity_m`` of the requested one and whose radius differs by at
most ``radius_tolerance_m``. Unlike text similarity, the fallback honours the
durable freshness window.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

from placecache.core.logging import get_logger
from placecache.services.search_cache.engine import CacheHit, TieredCache, now_ms
from placecache.services.search_cache.key_generator import GeoPoint
from placecache.services.search_cache.stores.base import ISearchStore
from placecache.utils.geo import haversine_distance

logger = get_logger(__name__)

T = TypeVar("T")

TIER_PROXIMITY = "proximity"

DEFAULT_PROXIMITY_M = 100.0
DEFAULT_RADIUS_TOLERANCE_M = 100


@dataclass
class NearbyCacheConfig:
    """Freshness windows and proximity thresholds for nearby searches."""

    fast_window_ms: int = 300000  # 5 minutes
    durable_window_ms: int = 900000  # 15 minutes

    proximity_m: float = DEFAULT_PROXIMITY_M
    radius_tolerance_m: int = DEFAULT_RADIUS_TOLERANCE_M

    repopulate_fast_tier: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "NearbyCacheConfig":
        return cls(
            fast_window_ms=settings.fast_cache_window_ms,
            durable_window_ms=settings.durable_cache_window_ms,
            proximity_m=settings.nearby_proximity_m,
            radius_tolerance_m=settings.nearby_radius_tolerance_m,
        )


class NearbySearchCache(TieredCache[T]):
    """Two-tier cache for nearby searches with a proximity fallback.

    Counters come from the shared stats type; ``similar_hits`` counts
    proximity matches here.

    Usage:
        cache = NearbySearchCache(MemorySearchStore(), RedisSearchStore(url, namespace="nearby"))

        places = await cache.lookup(origin, 500)
        if places is None:
            places = await provider.nearby_search(origin, 500)
            await cache.store(origin, 500, places)
    """

    def __init__(
        self,
        fast_store: ISearchStore,
        durable_store: ISearchStore,
        config: Optional[NearbyCacheConfig] = None,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(fast_store, durable_store, config or NearbyCacheConfig(), clock)

    async def lookup(self, location: Any, radius_m: Any) -> Optional[List[T]]:
        """Get cached nearby results, or None on a miss.

        Raises:
            ValidationError: If the location or radius is malformed.
        """
        hit = await self.resolve(location, radius_m)
        return hit.results if hit is not None else None

    async def resolve(self, location: Any, radius_m: Any) -> Optional[CacheHit[T]]:
        """Like ``lookup`` but reports which path answered."""
        origin = self.key_generator.validate_location(location)
        key = self.key_generator.nearby_key(origin, radius_m)
        radius = self.key_generator.nearby_radius(key)
        generation = self._generation
        now = self.clock()

        hit = await self._exact(key, now, generation)
        if hit is None:
            hit = await self._closest(origin, radius, now)

        if hit is None:
            self._counters.misses += 1
            logger.debug(f"Nearby cache miss at {key.latitude},{key.longitude} ({radius}m)")
        return hit

    async def _closest(self, origin: GeoPoint, radius: int, now: int) -> Optional[CacheHit[T]]:
        for stored_key, entry in await self._durable_entries():
            stored_radius = self.key_generator.nearby_radius(stored_key)
            if stored_radius is None or abs(stored_radius - radius) > self.config.radius_tolerance_m:
                continue
            if not entry.is_fresh(now, self.config.durable_window_ms):
                continue

            distance = haversine_distance(
                origin.latitude, origin.longitude, stored_key.latitude, stored_key.longitude
            )
            if distance <= self.config.proximity_m:
                self._counters.similar_hits += 1
                logger.debug(
                    f"Nearby search answered by entry {round(distance)}m away "
                    f"({stored_radius}m radius, {len(entry.results)} results)"
                )
                return CacheHit(entry.results, TIER_PROXIMITY, entry.stored_at, stored_key.query)
        return None

    async def store(self, location: Any, radius_m: Any, results: List[T]) -> None:
        """Record fresh nearby results in both tiers.

        Raises:
            ValidationError: If the location or radius is malformed.
        """
        key = self.key_generator.nearby_key(location, radius_m)
        await self._write(key, results, key.query)
