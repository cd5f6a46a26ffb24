"""Cache-first place text and nearby search.

Consults the search cache, falls back to the paid provider on a miss and
writes the fresh results back through both cache tiers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from placecache.core.logging import get_logger
from placecache.services.search_cache.engine import SearchCacheEngine
from placecache.services.search_cache.key_generator import CacheKeyGenerator, GeoPoint
from placecache.services.search_cache.nearby import NearbySearchCache

logger = get_logger(__name__)

SOURCE_PROVIDER = "provider"
SOURCE_SKIPPED = "skipped"


class PlaceSearchProvider(Protocol):
    """Anything that can run a text search around an origin."""

    async def text_search(self, query: str, origin: GeoPoint) -> List[Dict[str, Any]]:
        ...

    async def nearby_search(self, origin: GeoPoint, radius_m: int) -> List[Dict[str, Any]]:
        ...


@dataclass
class PlaceSearchOutcome:
    """Results of one search and where they came from."""

    query: str
    source: str
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def cached(self) -> bool:
        return self.source not in (SOURCE_PROVIDER, SOURCE_SKIPPED)


class PlaceSearchService:
    """Cache-first text and nearby search.

    Queries shorter than ``min_query_length`` are skipped entirely. Provider
    errors propagate to the caller and nothing is cached for them. Nearby
    searches go through ``nearby_cache`` when one is configured.
    """

    def __init__(
        self,
        cache: SearchCacheEngine,
        provider: PlaceSearchProvider,
        min_query_length: int = 3,
        nearby_cache: Optional[NearbySearchCache] = None,
    ):
        self.cache = cache
        self.provider = provider
        self.min_query_length = min_query_length
        self.nearby_cache = nearby_cache

    async def search(self, query: str, location: Any) -> PlaceSearchOutcome:
        """Search places for ``query`` around ``location``.

        Raises:
            ValidationError: If the query or location is malformed.
            ProviderError: If the provider call fails on a cache miss.
        """
        origin = CacheKeyGenerator.validate_location(location)
        text = query.strip() if isinstance(query, str) else query

        if isinstance(text, str) and len(text) < self.min_query_length:
            logger.debug(f"Skipped search for '{text}' (too short)")
            return PlaceSearchOutcome(query=text, source=SOURCE_SKIPPED)

        hit = await self.cache.resolve(text, origin)
        if hit is not None:
            return PlaceSearchOutcome(query=text, source=hit.tier, results=hit.results)

        results = await self.provider.text_search(text, origin)
        await self.cache.store(text, origin, results)
        logger.info(f"Provider search for '{text}' returned {len(results)} results")
        return PlaceSearchOutcome(query=text, source=SOURCE_PROVIDER, results=results)

    async def nearby(self, location: Any, radius_m: Any) -> PlaceSearchOutcome:
        """List places within ``radius_m`` of ``location``.

        Raises:
            ValidationError: If the location or radius is malformed.
            ProviderError: If the provider call fails on a cache miss.
        """
        origin = CacheKeyGenerator.validate_location(location)
        radius = CacheKeyGenerator.validate_radius(radius_m)

        if self.nearby_cache is not None:
            hit = await self.nearby_cache.resolve(origin, radius)
            if hit is not None:
                return PlaceSearchOutcome(query="", source=hit.tier, results=hit.results)

        results = await self.provider.nearby_search(origin, radius)
        if self.nearby_cache is not None:
            await self.nearby_cache.store(origin, radius, results)
        logger.info(f"Provider nearby search ({radius}m) returned {len(results)} results")
        return PlaceSearchOutcome(query="", source=SOURCE_PROVIDER, results=results)
