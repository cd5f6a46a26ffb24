"""Two-tier search cache engine for place autocomplete.

Lookups go fast tier -> durable tier -> similarity scan -> miss. On a miss the
caller fetches fresh results from the place search provider and hands them
back through ``store``, which writes both tiers.

- Fast tier: in-process, 5 minute freshness window
- Durable tier: persistent, 15 minute freshness window
- Similarity: prefix refinement of any durable entry, freshness not checked
"""

import asyncio
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

from placecache.core.logging import get_logger
from placecache.services.search_cache.key_generator import CacheKey, CacheKeyGenerator
from placecache.services.search_cache.similarity import (
    DEFAULT_MAX_EXTRA_CHARS,
    DEFAULT_MIN_STORED_LENGTH,
    is_similar,
)
from placecache.services.search_cache.stores.base import CacheEntry, ISearchStore
from placecache.utils.geo import haversine_distance

logger = get_logger(__name__)

T = TypeVar("T")

TIER_FAST = "fast"
TIER_DURABLE = "durable"
TIER_SIMILAR = "similar"


def now_ms() -> int:
    """Wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


@dataclass
class SearchCacheConfig:
    """Freshness windows and similarity thresholds."""

    fast_window_ms: int = 300000  # 5 minutes
    durable_window_ms: int = 900000  # 15 minutes

    similarity_min_stored_length: int = DEFAULT_MIN_STORED_LENGTH
    similarity_max_extra_chars: int = DEFAULT_MAX_EXTRA_CHARS

    # Only reuse similar queries searched within this distance (meters); None disables the check
    similarity_radius_m: Optional[float] = None

    # Copy durable exact hits into the fast tier, keeping their stored_at
    repopulate_fast_tier: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "SearchCacheConfig":
        """Build the engine config from application settings."""
        return cls(
            fast_window_ms=settings.fast_cache_window_ms,
            durable_window_ms=settings.durable_cache_window_ms,
            similarity_min_stored_length=settings.similarity_min_stored_length,
            similarity_max_extra_chars=settings.similarity_max_extra_chars,
            similarity_radius_m=settings.similarity_radius_m,
        )


@dataclass
class CacheHit(Generic[T]):
    """A lookup answered from the cache."""

    results: List[T]
    tier: str
    stored_at: int
    matched_query: str


@dataclass
class SearchCacheStats:
    """Snapshot of cache contents and lookup counters."""

    durable_entries: int = 0
    fast_entries: int = 0
    approximate_size_bytes: int = 0
    oldest_stored_at: Optional[int] = None
    newest_stored_at: Optional[int] = None

    fast_hits: int = 0
    durable_hits: int = 0
    similar_hits: int = 0
    misses: int = 0
    stores: int = 0
    durable_errors: int = 0

    @property
    def total_size_kb(self) -> int:
        """Approximate durable size in kilobytes."""
        return round(self.approximate_size_bytes / 1024)

    @property
    def oldest_entry(self) -> Optional[datetime]:
        if self.oldest_stored_at is None:
            return None
        return datetime.fromtimestamp(self.oldest_stored_at / 1000, tz=timezone.utc)

    @property
    def newest_entry(self) -> Optional[datetime]:
        if self.newest_stored_at is None:
            return None
        return datetime.fromtimestamp(self.newest_stored_at / 1000, tz=timezone.utc)

    @property
    def total_hits(self) -> int:
        return self.fast_hits + self.durable_hits + self.similar_hits

    @property
    def total_requests(self) -> int:
        return self.total_hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Share of lookups answered without a provider call."""
        if self.total_requests == 0:
            return 0.0
        return self.total_hits / self.total_requests


def _estimate_size(key: CacheKey, entry: CacheEntry[Any]) -> int:
    """Rough serialized size of an entry in bytes."""
    try:
        return len(json.dumps(entry.results, default=str)) + len(key.query)
    except (TypeError, ValueError):
        return len(repr(entry.results)) + len(key.query)


class TieredCache(Generic[T]):
    """Fast/durable tier plumbing shared by the text and nearby caches.

    Covers exact-key lookups with fast-tier repopulation, writes to both
    tiers, clearing and stats. ``clear`` bumps a generation counter under the
    write lock; a lookup that started before a clear never copies what it
    read back into the fast tier.
    """

    def __init__(
        self,
        fast_store: ISearchStore,
        durable_store: ISearchStore,
        config: Any,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the cache.

        Args:
            fast_store: Process-local tier checked first.
            durable_store: Persistent tier, also scanned for fallback matches.
            config: Provides ``fast_window_ms``, ``durable_window_ms`` and
                ``repopulate_fast_tier``.
            clock: Returns the current time in milliseconds.
        """
        self.fast_store = fast_store
        self.durable_store = durable_store
        self.config = config
        self.clock = clock
        self.key_generator = CacheKeyGenerator

        self._counters = SearchCacheStats()
        self._write_lock = asyncio.Lock()
        self._generation = 0

    # =========================================================================
    # Exact lookup
    # =========================================================================

    async def _exact(self, key: CacheKey, now: int, generation: int) -> Optional[CacheHit[T]]:
        entry = await self.fast_store.get(key)
        if entry is not None and entry.is_fresh(now, self.config.fast_window_ms):
            self._counters.fast_hits += 1
            logger.debug(
                f"Fast tier hit for '{key.query}' "
                f"({len(entry.results)} results, {entry.age_ms(now) // 1000}s old)"
            )
            return CacheHit(entry.results, TIER_FAST, entry.stored_at, key.query)

        entry = await self._durable_get(key)
        if entry is None or not entry.is_fresh(now, self.config.durable_window_ms):
            return None

        if self.config.repopulate_fast_tier:
            await self._repopulate_fast(key, entry, generation)

        self._counters.durable_hits += 1
        logger.debug(
            f"Durable tier hit for '{key.query}' "
            f"({len(entry.results)} results, {entry.age_ms(now) // 1000}s old)"
        )
        return CacheHit(entry.results, TIER_DURABLE, entry.stored_at, key.query)

    async def _repopulate_fast(self, key: CacheKey, entry: CacheEntry[T], generation: int) -> None:
        """Copy a durable hit into the fast tier unless a clear or newer store got there first."""
        async with self._write_lock:
            if generation != self._generation:
                logger.debug(f"Cache cleared during lookup of '{key.query}', fast tier left empty")
                return

            current = await self.fast_store.get(key)
            if current is not None and current.stored_at >= entry.stored_at:
                return

            await self.fast_store.set(key, entry)

    async def _durable_get(self, key: CacheKey) -> Optional[CacheEntry[T]]:
        try:
            return await self.durable_store.get(key)
        except Exception as e:
            self._counters.durable_errors += 1
            logger.warning(f"Durable tier read failed, treating as miss: {e}")
            return None

    async def _durable_entries(self) -> List[Tuple[CacheKey, CacheEntry[T]]]:
        try:
            return await self.durable_store.all_entries()
        except Exception as e:
            self._counters.durable_errors += 1
            logger.warning(f"Durable tier scan failed, skipping fallback match: {e}")
            return []

    # =========================================================================
    # Write / Clear
    # =========================================================================

    async def _write(self, key: CacheKey, results: List[T], query: str) -> None:
        """Write one entry to both tiers; durable failures are counted, not raised."""
        async with self._write_lock:
            entry = CacheEntry(results=results, stored_at=self.clock(), query=query)

            await self.fast_store.set(key, entry)
            self._counters.stores += 1

            try:
                stored = await self.durable_store.set(key, entry)
            except Exception as e:
                self._counters.durable_errors += 1
                logger.error(f"Durable tier write failed for '{key.query}': {e}")
                return

            if not stored and self.durable_store.enabled:
                self._counters.durable_errors += 1
                logger.warning(f"Durable tier rejected write for '{key.query}'")

        logger.debug(f"Stored {len(results)} results for '{key.query}'")

    async def clear(self) -> None:
        """Empty both tiers and reset counters."""
        async with self._write_lock:
            self._generation += 1
            await self.fast_store.clear()
            try:
                await self.durable_store.clear()
            except Exception as e:
                self._counters.durable_errors += 1
                logger.error(f"Durable tier clear failed: {e}")
            self._counters = SearchCacheStats()
        logger.info(f"{type(self).__name__} cleared")

    # =========================================================================
    # Introspection
    # =========================================================================

    async def stats(self) -> SearchCacheStats:
        """Describe the durable tier contents and lookup counters.

        Never raises; on backend errors the content fields stay empty.
        """
        counters = self._counters
        snapshot = SearchCacheStats(
            fast_hits=counters.fast_hits,
            durable_hits=counters.durable_hits,
            similar_hits=counters.similar_hits,
            misses=counters.misses,
            stores=counters.stores,
            durable_errors=counters.durable_errors,
        )

        try:
            snapshot.fast_entries = await self.fast_store.count()
            entries = await self.durable_store.all_entries()
        except Exception as e:
            logger.warning(f"Failed to collect search cache stats: {e}")
            return snapshot

        timestamps = [entry.stored_at for _, entry in entries]
        snapshot.durable_entries = len(entries)
        snapshot.approximate_size_bytes = sum(_estimate_size(k, e) for k, e in entries)
        snapshot.oldest_stored_at = min(timestamps) if timestamps else None
        snapshot.newest_stored_at = max(timestamps) if timestamps else None
        return snapshot

    def reset_stats(self) -> None:
        """Reset lookup counters without touching cached entries."""
        self._counters = SearchCacheStats()


class SearchCacheEngine(TieredCache[T]):
    """Two-tier, similarity-aware cache for place text searches.

    Place records are opaque to the engine and returned exactly as stored.
    One engine instance is built per process and handed to its callers;
    tests build their own isolated instances.

    Usage:
        engine = SearchCacheEngine(MemorySearchStore(), RedisSearchStore(url))

        results = await engine.lookup("Coffee", GeoPoint(13.7563, 100.5018))
        if results is None:
            results = await provider.text_search("Coffee", origin)
            await engine.store("Coffee", origin, results)
    """

    def __init__(
        self,
        fast_store: ISearchStore,
        durable_store: ISearchStore,
        config: Optional[SearchCacheConfig] = None,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(fast_store, durable_store, config or SearchCacheConfig(), clock)

    async def lookup(self, query: str, location: Any) -> Optional[List[T]]:
        """Get cached results for a query at a location.

        Args:
            query: The search text; blank queries are rejected.
            location: Object with finite ``latitude`` and ``longitude``.

        Returns:
            The cached place records, or None on a miss.

        Raises:
            ValidationError: If the query or location is malformed.
        """
        hit = await self.resolve(query, location)
        return hit.results if hit is not None else None

    async def resolve(self, query: str, location: Any) -> Optional[CacheHit[T]]:
        """Like ``lookup`` but reports which path answered."""
        key = self.key_generator.search_key(query, location)
        generation = self._generation
        now = self.clock()

        hit = await self._exact(key, now, generation)
        if hit is None:
            hit = await self._similar(key)

        if hit is None:
            self._counters.misses += 1
            logger.debug(f"Search cache miss for '{key.query}'")
        return hit

    async def _similar(self, key: CacheKey) -> Optional[CacheHit[T]]:
        # No freshness check on similarity matches
        for stored_key, entry in await self._durable_entries():
            if not self._is_nearby(key, stored_key):
                continue
            if is_similar(
                key.query,
                stored_key.query,
                self.config.similarity_min_stored_length,
                self.config.similarity_max_extra_chars,
            ):
                self._counters.similar_hits += 1
                logger.debug(
                    f"Similar query hit: '{key.query}' answered by '{stored_key.query}' "
                    f"({len(entry.results)} results)"
                )
                return CacheHit(entry.results, TIER_SIMILAR, entry.stored_at, stored_key.query)
        return None

    def _is_nearby(self, key: CacheKey, stored_key: CacheKey) -> bool:
        radius = self.config.similarity_radius_m
        if radius is None:
            return True
        distance = haversine_distance(
            key.latitude, key.longitude, stored_key.latitude, stored_key.longitude
        )
        return distance <= radius

    async def store(self, query: str, location: Any, results: List[T]) -> None:
        """Record fresh provider results in both tiers.

        The fast-tier write always happens first and is never rolled back;
        a durable-tier failure is logged and counted but not raised.

        Raises:
            ValidationError: If the query or location is malformed.
        """
        key = self.key_generator.search_key(query, location)
        await self._write(key, results, query.strip())
