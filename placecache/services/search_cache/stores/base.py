"""Base interface for search cache store tiers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Tuple, TypeVar

from placecache.services.search_cache.key_generator import CacheKey

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached search result.

    ``stored_at`` is set by the engine when the entry is created and never
    changes; a newer store for the same key replaces the entry wholesale.
    """

    results: List[T]
    stored_at: int  # milliseconds since epoch
    query: str = ""  # caller's query text, case preserved

    def age_ms(self, now_ms: int) -> int:
        """Age of the entry at ``now_ms``."""
        return now_ms - self.stored_at

    def is_fresh(self, now_ms: int, window_ms: int) -> bool:
        """Check whether the entry is inside a freshness window."""
        return self.age_ms(now_ms) < window_ms


@dataclass
class StoreStats:
    """Per-store operation counters."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of get requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate store hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_error(self) -> None:
        self.errors += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.evictions = 0


class ISearchStore(ABC):
    """Abstract base class for search cache tiers.

    Both the fast and the durable tier implement this interface. A store must
    return None for a missing key rather than raising, and must tolerate
    being empty on first use.
    """

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Check if the store is enabled and connected."""
        ...

    @property
    @abstractmethod
    def stats(self) -> StoreStats:
        """Get store statistics."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the underlying storage."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the underlying storage."""
        ...

    @abstractmethod
    async def get(self, key: CacheKey) -> Optional[CacheEntry[Any]]:
        """Get the entry stored under ``key``.

        Returns:
            The entry regardless of its age, or None if absent.
        """
        ...

    @abstractmethod
    async def set(self, key: CacheKey, entry: CacheEntry[Any]) -> bool:
        """Store ``entry`` under ``key``, replacing any previous entry.

        Returns:
            True if stored, False otherwise.
        """
        ...

    @abstractmethod
    async def all_entries(self) -> List[Tuple[CacheKey, CacheEntry[Any]]]:
        """Snapshot of every (key, entry) pair currently held."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of entries currently held."""
        ...

    @abstractmethod
    async def clear(self) -> bool:
        """Remove every entry.

        Returns:
            True if successful, False otherwise.
        """
        ...
