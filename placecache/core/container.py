"""Dependency injection container for service management.

Owns the text search cache engine and its two store tiers, the nearby search
cache, the place search provider and the cache-first search service. Durable
tiers fall back to process memory when Redis is not configured or unreachable.
One container is created per process by the application lifespan and stored
on ``app.state``; tests build their own isolated containers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from placecache.core.logging import get_logger

if TYPE_CHECKING:
    from placecache.core.config import Settings
    from placecache.services.place_search import PlaceSearchService
    from placecache.services.places_provider import GooglePlacesProvider
    from placecache.services.search_cache.engine import SearchCacheEngine
    from placecache.services.search_cache.nearby import NearbySearchCache
    from placecache.services.search_cache.stores.base import ISearchStore

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        outcome = await container.place_search.search("Coffee", origin)

        await container.shutdown()
    """

    _fast_store: Optional[ISearchStore] = field(default=None, repr=False)
    _durable_store: Optional[ISearchStore] = field(default=None, repr=False)
    _search_cache: Optional[SearchCacheEngine] = field(default=None, repr=False)
    _provider: Optional[GooglePlacesProvider] = field(default=None, repr=False)
    _place_search: Optional[PlaceSearchService] = field(default=None, repr=False)
    _nearby_cache: Optional[NearbySearchCache] = field(default=None, repr=False)
    _durable_fallback: bool = field(default=False, repr=True)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings) -> None:
        """Initialize all services.

        Args:
            settings: Application settings.

        Raises:
            Exception: If any service fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            from placecache.services.place_search import PlaceSearchService
            from placecache.services.places_provider import GooglePlacesProvider
            from placecache.services.search_cache.engine import SearchCacheConfig, SearchCacheEngine
            from placecache.services.search_cache.key_generator import NEARBY_NAMESPACE
            from placecache.services.search_cache.nearby import NearbyCacheConfig, NearbySearchCache
            from placecache.services.search_cache.stores import MemorySearchStore

            self._fast_store = MemorySearchStore(max_entries=settings.fast_max_entries, name="fast")
            self._durable_store = await self._connect_durable_store(settings, name="durable")
            logger.info(
                f"Search cache stores initialized (durable enabled: {self._durable_store.enabled}, "
                f"fallback: {self._durable_fallback})"
            )

            self._search_cache = SearchCacheEngine(
                self._fast_store,
                self._durable_store,
                SearchCacheConfig.from_settings(settings),
            )

            self._nearby_cache = NearbySearchCache(
                MemorySearchStore(max_entries=settings.fast_max_entries, name="nearby-fast"),
                await self._connect_durable_store(
                    settings, name="nearby-durable", namespace=NEARBY_NAMESPACE
                ),
                NearbyCacheConfig.from_settings(settings),
            )

            self._provider = GooglePlacesProvider(
                api_key=settings.google_places_api_key,
                base_url=settings.google_places_base_url,
                radius_m=settings.places_search_radius_m,
                timeout=settings.places_provider_timeout,
            )
            await self._provider.connect()
            if not settings.google_places_api_key:
                logger.warning("Google Places API key not configured, cache misses will fail")

            self._place_search = PlaceSearchService(
                self._search_cache,
                self._provider,
                min_query_length=settings.min_query_length,
                nearby_cache=self._nearby_cache,
            )

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def _connect_durable_store(
        self, settings: Settings, name: str, namespace: Optional[str] = None
    ) -> ISearchStore:
        """Connect a Redis durable store, falling back to process memory.

        The fallback is used when no Redis URL is configured or when the
        configured Redis cannot be reached at startup.
        """
        from placecache.services.search_cache.stores import MemorySearchStore, RedisSearchStore

        if settings.redis_url:
            store = RedisSearchStore(
                redis_url=settings.redis_url,
                max_entries=settings.durable_max_entries,
                ttl_seconds=settings.durable_ttl_seconds,
                namespace=namespace,
            )
            await store.connect()
            if store.enabled:
                return store
            logger.warning(f"Redis unreachable, {name} tier kept in process memory")
            self._durable_fallback = True
        else:
            logger.warning(f"Redis URL not configured, {name} tier kept in process memory")

        store = MemorySearchStore(max_entries=settings.durable_max_entries, name=name)
        await store.connect()
        return store

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._provider:
            try:
                await self._provider.close()
                logger.info("Places provider closed")
            except Exception as e:
                logger.error(f"Error closing places provider: {e}")

        if self._durable_store:
            try:
                await self._durable_store.disconnect()
                logger.info("Durable search store disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting durable store: {e}")

        if self._nearby_cache:
            try:
                await self._nearby_cache.durable_store.disconnect()
                logger.info("Nearby durable store disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting nearby durable store: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def search_cache(self) -> SearchCacheEngine:
        """Get the search cache engine."""
        if self._search_cache is None:
            raise ServiceNotInitializedError("search_cache")
        return self._search_cache

    @property
    def place_search(self) -> PlaceSearchService:
        """Get the cache-first place search service."""
        if self._place_search is None:
            raise ServiceNotInitializedError("place_search")
        return self._place_search

    @property
    def nearby_cache(self) -> NearbySearchCache:
        """Get the nearby search cache."""
        if self._nearby_cache is None:
            raise ServiceNotInitializedError("nearby_cache")
        return self._nearby_cache

    @property
    def durable_fallback(self) -> bool:
        """True when Redis was configured but unreachable at startup."""
        return self._durable_fallback

    @property
    def durable_store(self) -> ISearchStore:
        """Get the durable store tier."""
        if self._durable_store is None:
            raise ServiceNotInitializedError("durable_store")
        return self._durable_store

    def set_search_cache(self, engine: SearchCacheEngine) -> None:
        """Set the search cache engine (for testing)."""
        self._search_cache = engine
        self._fast_store = engine.fast_store
        self._durable_store = engine.durable_store

    def set_nearby_cache(self, cache: NearbySearchCache) -> None:
        """Set the nearby search cache (for testing)."""
        self._nearby_cache = cache

    def set_place_search(self, service: PlaceSearchService) -> None:
        """Set the place search service (for testing)."""
        self._place_search = service

    def set_settings(self, settings: Settings) -> None:
        """Set application settings (for testing)."""
        self._settings = settings


def create_container() -> ServiceContainer:
    """Create a new service container instance.

    This is useful for creating isolated containers in tests.

    Returns:
        A new ServiceContainer instance.
    """
    return ServiceContainer()
