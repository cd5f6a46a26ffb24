"""Two-tier, similarity-aware search cache for place autocomplete.

Tiers:
- Fast: in-process store, 5 minute freshness window
- Durable: Redis-backed store, 15 minute freshness window
- Similarity: cached results of a shorter prefix query (e.g. "Coffee" for "Coffee S")

Nearby (radius) searches use NearbySearchCache on the same kind of tiers, under
the ``nearby`` key namespace, with a 100 m proximity fallback.

Usage:
    from placecache.services.search_cache import SearchCacheEngine, GeoPoint
    from placecache.services.search_cache.stores import MemorySearchStore, RedisSearchStore

    engine = SearchCacheEngine(MemorySearchStore(), RedisSearchStore(redis_url))

    origin = GeoPoint(13.7563, 100.5018)
    places = await engine.lookup("Coffee", origin)
    if places is None:
        places = await provider.text_search("Coffee", origin)
        await engine.store("Coffee", origin, places)
"""

from placecache.services.search_cache.key_generator import CacheKey, CacheKeyGenerator, GeoPoint
from placecache.services.search_cache.similarity import is_similar
from placecache.services.search_cache.engine import (
    CacheHit,
    SearchCacheConfig,
    SearchCacheEngine,
    SearchCacheStats,
    TieredCache,
)
from placecache.services.search_cache.nearby import NearbyCacheConfig, NearbySearchCache

__all__ = [
    "CacheHit",
    "CacheKey",
    "CacheKeyGenerator",
    "GeoPoint",
    "NearbyCacheConfig",
    "NearbySearchCache",
    "SearchCacheConfig",
    "SearchCacheEngine",
    "SearchCacheStats",
    "TieredCache",
    "is_similar",
]
