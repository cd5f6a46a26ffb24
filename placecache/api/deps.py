"""Shared dependencies for API endpoints."""

from fastapi import Request

from placecache.core.container import ServiceContainer
from placecache.services.place_search import PlaceSearchService
from placecache.services.search_cache.engine import SearchCacheEngine


def get_container(request: Request) -> ServiceContainer:
    """Get service container from app state."""
    return request.app.state.container


async def get_search_cache(request: Request) -> SearchCacheEngine:
    """Get the search cache engine from the container."""
    return request.app.state.container.search_cache


async def get_place_search(request: Request) -> PlaceSearchService:
    """Get the cache-first place search service from the container."""
    return request.app.state.container.place_search
