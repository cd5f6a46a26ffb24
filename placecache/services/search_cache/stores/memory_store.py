"""In-memory search store, used as the fast tier."""

from typing import Any, Dict, List, Optional, Tuple

from placecache.core.logging import get_logger
from placecache.services.search_cache.key_generator import CacheKey
from placecache.services.search_cache.stores.base import CacheEntry, ISearchStore, StoreStats

logger = get_logger(__name__)


class MemorySearchStore(ISearchStore):
    """Process-local search store.

    Entries live in a dict keyed by CacheKey and are lost when the process
    exits. Iteration follows insertion order; overwriting a key moves it to
    the end. Freshness is the engine's concern, so expired entries stay here
    until overwritten, evicted or cleared.

    Features:
    - Optional size cap evicting the oldest ``stored_at`` first
    - Statistics tracking
    """

    def __init__(self, max_entries: Optional[int] = None, name: str = "memory"):
        """Initialize memory store.

        Args:
            max_entries: Maximum entries kept; None for unbounded.
            name: Label used in log messages.
        """
        self._storage: Dict[CacheKey, CacheEntry[Any]] = {}
        self._enabled = True
        self._stats = StoreStats()
        self._max_entries = max_entries
        self.name = name

    @property
    def enabled(self) -> bool:
        """Check if the store is enabled."""
        return self._enabled

    @property
    def stats(self) -> StoreStats:
        """Get store statistics."""
        return self._stats

    async def connect(self) -> None:
        """Enable the store."""
        self._enabled = True

    async def disconnect(self) -> None:
        """Disable the store and drop its contents."""
        self._enabled = False
        self._storage.clear()

    def _evict_oldest(self) -> None:
        """Drop the oldest entries beyond ``max_entries``."""
        if self._max_entries is None or len(self._storage) <= self._max_entries:
            return

        overflow = len(self._storage) - self._max_entries
        oldest = sorted(self._storage.items(), key=lambda item: item[1].stored_at)[:overflow]
        for key, _ in oldest:
            del self._storage[key]
            self._stats.evictions += 1

        logger.debug(f"{self.name}: evicted {overflow} oldest entries")

    async def get(self, key: CacheKey) -> Optional[CacheEntry[Any]]:
        """Get an entry from the store."""
        if not self._enabled:
            return None

        entry = self._storage.get(key)
        if entry is None:
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        return entry

    async def set(self, key: CacheKey, entry: CacheEntry[Any]) -> bool:
        """Store an entry, replacing any previous one."""
        if not self._enabled:
            return False

        self._storage.pop(key, None)
        self._storage[key] = entry
        self._evict_oldest()
        return True

    async def all_entries(self) -> List[Tuple[CacheKey, CacheEntry[Any]]]:
        """Snapshot of all entries in insertion order."""
        if not self._enabled:
            return []
        return list(self._storage.items())

    async def count(self) -> int:
        """Number of entries held."""
        return len(self._storage)

    async def clear(self) -> bool:
        """Remove every entry."""
        self._storage.clear()
        return True
