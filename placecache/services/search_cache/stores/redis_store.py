"""Redis search store, used as the durable tier."""

import json
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis

from placecache.core.logging import get_logger
from placecache.services.search_cache.key_generator import CacheKey, CacheKeyGenerator
from placecache.services.search_cache.stores.base import CacheEntry, ISearchStore, StoreStats

logger = get_logger(__name__)


def encode_record(key: CacheKey, entry: CacheEntry[Any]) -> str:
    """Serialize a key/entry pair into the durable JSON record."""
    return json.dumps({
        "query": entry.query,
        "normalized_query": key.query,
        "latitude": key.latitude,
        "longitude": key.longitude,
        "results": entry.results,
        "stored_at": entry.stored_at,
    })


def decode_record(raw: str) -> Tuple[CacheKey, CacheEntry[Any]]:
    """Rebuild a key/entry pair from a durable JSON record.

    Raises:
        ValueError: If the record is not valid JSON.
        KeyError: If a required field is missing.
        TypeError: If a field has the wrong type.
    """
    data = json.loads(raw)
    key = CacheKey(
        query=data["normalized_query"],
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
    )
    entry = CacheEntry(
        results=list(data["results"]),
        stored_at=int(data["stored_at"]),
        query=data.get("query", data["normalized_query"]),
    )
    return key, entry


class RedisSearchStore(ISearchStore):
    """Redis-based durable search store.

    One JSON record per cache key under ``placesearch:v1:*`` (or
    ``placesearch:v1:<namespace>:*``), surviving
    process restarts. Graceful error handling: read failures degrade to a
    miss, write failures are logged and reported as False.

    Housekeeping:
    - ``max_entries`` trims the oldest records after each write
    - ``ttl_seconds`` sets a physical Redis expiry on each record
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
        namespace: Optional[str] = None,
    ):
        """Initialize Redis store.

        Args:
            redis_url: Redis connection URL; ignored if ``client`` is given.
            client: Pre-built async Redis client.
            max_entries: Maximum records kept; None for unbounded.
            ttl_seconds: Physical expiry per record; None to keep until cleared.
            namespace: Key namespace, e.g. "nearby"; None for text searches.
        """
        self._redis_url = redis_url
        self._client = client
        self._enabled = client is not None
        self._stats = StoreStats()
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds
        self._namespace = namespace

    @property
    def enabled(self) -> bool:
        """Check if Redis is enabled and connected."""
        return self._enabled and self._client is not None

    @property
    def stats(self) -> StoreStats:
        """Get store statistics."""
        return self._stats

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the Redis client (for advanced operations)."""
        return self._client

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._client is not None:
            self._enabled = True
            return

        if not self._redis_url:
            logger.info("Redis URL not configured, durable search cache disabled")
            self._enabled = False
            return

        try:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            # Test connection
            await self._client.ping()
            self._enabled = True
            logger.info("Connected to Redis search cache")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._enabled = False
            self._client = None

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._enabled = False
            logger.info("Disconnected from Redis search cache")

    async def get(self, key: CacheKey) -> Optional[CacheEntry[Any]]:
        """Get an entry from Redis."""
        if not self.enabled:
            return None

        storage_key = CacheKeyGenerator.storage_key(key, self._namespace)
        try:
            raw = await self._client.get(storage_key)
        except Exception as e:
            logger.error(f"Redis GET error for key {storage_key}: {e}")
            self._stats.record_error()
            return None

        if raw is None:
            self._stats.record_miss()
            return None

        try:
            _, entry = decode_record(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding undecodable search record {storage_key}: {e}")
            self._stats.record_error()
            return None

        self._stats.record_hit()
        return entry

    async def set(self, key: CacheKey, entry: CacheEntry[Any]) -> bool:
        """Store an entry in Redis."""
        if not self.enabled:
            return False

        storage_key = CacheKeyGenerator.storage_key(key, self._namespace)
        try:
            serialized = encode_record(key, entry)
            if self._ttl_seconds:
                await self._client.set(storage_key, serialized, ex=self._ttl_seconds)
            else:
                await self._client.set(storage_key, serialized)
        except Exception as e:
            logger.error(f"Redis SET error for key {storage_key}: {e}")
            self._stats.record_error()
            return False

        if self._max_entries is not None:
            await self._trim_oldest()
        return True

    async def _scan_keys(self) -> List[str]:
        """Durable keys of this store's namespace."""
        pattern = CacheKeyGenerator.storage_pattern(self._namespace)
        return [
            k async for k in self._client.scan_iter(match=pattern)
            if CacheKeyGenerator.in_namespace(k, self._namespace)
        ]

    async def _load_records(self) -> Dict[str, Tuple[CacheKey, CacheEntry[Any]]]:
        """Load and decode every search record, skipping bad ones."""
        keys = await self._scan_keys()
        if not keys:
            return {}

        values = await self._client.mget(keys)
        records = {}
        for storage_key, raw in zip(keys, values):
            if raw is None:
                continue
            try:
                records[storage_key] = decode_record(raw)
            except (ValueError, KeyError, TypeError):
                logger.debug(f"Skipping undecodable search record {storage_key}")
        return records

    async def _trim_oldest(self) -> None:
        """Delete the oldest records beyond ``max_entries``."""
        try:
            records = await self._load_records()
            overflow = len(records) - self._max_entries
            if overflow <= 0:
                return

            by_age = sorted(records.items(), key=lambda item: item[1][1].stored_at)
            stale_keys = [storage_key for storage_key, _ in by_age[:overflow]]
            await self._client.delete(*stale_keys)
            self._stats.evictions += len(stale_keys)
            logger.info(f"Cleaned up {len(stale_keys)} old search cache entries")
        except Exception as e:
            logger.warning(f"Redis search cache cleanup failed: {e}")
            self._stats.record_error()

    async def all_entries(self) -> List[Tuple[CacheKey, CacheEntry[Any]]]:
        """Snapshot of all records, oldest first."""
        if not self.enabled:
            return []

        try:
            records = await self._load_records()
        except Exception as e:
            logger.error(f"Redis SCAN error: {e}")
            self._stats.record_error()
            return []

        return sorted(records.values(), key=lambda pair: pair[1].stored_at)

    async def count(self) -> int:
        """Number of search records held."""
        if not self.enabled:
            return 0

        try:
            return len(await self._scan_keys())
        except Exception as e:
            logger.error(f"Redis SCAN error: {e}")
            self._stats.record_error()
            return 0

    async def clear(self) -> bool:
        """Delete every search record (other keys in the db are untouched)."""
        if not self.enabled:
            return True

        try:
            keys = await self._scan_keys()
            if keys:
                await self._client.delete(*keys)
            logger.info(f"Cleared {len(keys)} search cache entries")
            return True
        except Exception as e:
            logger.error(f"Redis clear error: {e}")
            self._stats.record_error()
            return False
