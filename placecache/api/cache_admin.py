"""Search cache management endpoints for admin API."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from placecache.api.deps import get_container, get_search_cache
from placecache.api.security import verify_admin_bearer_token
from placecache.core.container import ServiceContainer
from placecache.core.logging import get_logger
from placecache.models.places import CacheStatsResponse
from placecache.services.search_cache.engine import SearchCacheEngine

logger = get_logger(__name__)
router = APIRouter(tags=["cache"])


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(
    _: bool = Depends(verify_admin_bearer_token),
    search_cache: SearchCacheEngine = Depends(get_search_cache),
    container: ServiceContainer = Depends(get_container),
) -> CacheStatsResponse:
    """Report search cache contents and hit counters."""
    stats = await search_cache.stats()
    nearby = await container.nearby_cache.stats()
    return CacheStatsResponse(
        durable_entries=stats.durable_entries,
        fast_entries=stats.fast_entries,
        total_size_kb=stats.total_size_kb,
        approximate_size_bytes=stats.approximate_size_bytes,
        oldest_entry=stats.oldest_entry.isoformat() if stats.oldest_entry else None,
        newest_entry=stats.newest_entry.isoformat() if stats.newest_entry else None,
        counters={
            "fast_hits": stats.fast_hits,
            "durable_hits": stats.durable_hits,
            "similar_hits": stats.similar_hits,
            "misses": stats.misses,
            "stores": stats.stores,
            "durable_errors": stats.durable_errors,
            "hit_rate": stats.hit_rate,
        },
        nearby={
            "durable_entries": nearby.durable_entries,
            "fast_entries": nearby.fast_entries,
            "fast_hits": nearby.fast_hits,
            "durable_hits": nearby.durable_hits,
            "proximity_hits": nearby.similar_hits,
            "misses": nearby.misses,
            "stores": nearby.stores,
            "hit_rate": nearby.hit_rate,
        },
    )


@router.post("/cache/clear")
async def clear_cache(
    _: bool = Depends(verify_admin_bearer_token),
    search_cache: SearchCacheEngine = Depends(get_search_cache),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    """Empty the text and nearby search caches."""
    await search_cache.clear()
    await container.nearby_cache.clear()
    logger.info("Search caches cleared via admin API")
    return {"status": "success", "action": "clear", "message": "Search cache cleared"}
