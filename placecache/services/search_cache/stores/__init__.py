"""Store tiers for the search cache.

- MemorySearchStore: process-local fast tier
- RedisSearchStore: persistent durable tier
"""

from placecache.services.search_cache.stores.base import CacheEntry, ISearchStore, StoreStats
from placecache.services.search_cache.stores.memory_store import MemorySearchStore
from placecache.services.search_cache.stores.redis_store import RedisSearchStore

__all__ = [
    "CacheEntry",
    "ISearchStore",
    "StoreStats",
    "MemorySearchStore",
    "RedisSearchStore",
]
