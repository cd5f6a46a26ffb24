"""Shared test fixtures for the place search cache tests."""

import asyncio
import fnmatch
from typing import Any, Dict, List, Optional

import pytest

from placecache.services.search_cache.engine import SearchCacheEngine, SearchCacheConfig
from placecache.services.search_cache.key_generator import GeoPoint
from placecache.services.search_cache.nearby import NearbySearchCache
from placecache.services.search_cache.stores.memory_store import MemorySearchStore


BANGKOK = GeoPoint(latitude=13.7563, longitude=100.5018)
CHATUCHAK = GeoPoint(latitude=13.8000, longitude=100.5500)

START_MS = 1_700_000_000_000


# ============================================================================
# Test doubles
# ============================================================================

class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, start_ms: int = START_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FailingStore(MemorySearchStore):
    """Memory store whose reads and/or writes raise."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False, fail_scan: bool = False):
        super().__init__(name="failing")
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.fail_scan = fail_scan

    async def get(self, key):
        if self.fail_get:
            raise OSError("simulated durable read failure")
        return await super().get(key)

    async def set(self, key, entry):
        if self.fail_set:
            raise OSError("simulated durable write failure")
        return await super().set(key, entry)

    async def all_entries(self):
        if self.fail_scan:
            raise OSError("simulated durable scan failure")
        return await super().all_entries()


class GatedStore(MemorySearchStore):
    """Memory store whose reads pause after fetching until ``gate`` is set.

    ``read_done`` is set once a read has fetched its entry, so a test can act
    while that read is still in flight.
    """

    def __init__(self):
        super().__init__(name="gated")
        self.gate = asyncio.Event()
        self.gate.set()
        self.read_done = asyncio.Event()

    async def get(self, key):
        entry = await super().get(key)
        self.read_done.set()
        await self.gate.wait()
        return entry


class FakeRedis:
    """Minimal async stand-in for the redis.asyncio client used in tests."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        return [self.data.get(key) for key in keys]

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str = "*"):
        for key in list(self.data):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def fast_store():
    """Fresh fast tier."""
    return MemorySearchStore(name="fast")


@pytest.fixture
def durable_store():
    """Fresh durable tier kept in memory."""
    return MemorySearchStore(name="durable")


@pytest.fixture
def engine(fast_store, durable_store, clock):
    """Search cache engine with memory tiers and a fake clock."""
    return SearchCacheEngine(fast_store, durable_store, SearchCacheConfig(), clock=clock)


@pytest.fixture
def nearby_cache(clock):
    """Nearby search cache with its own memory tiers and the fake clock."""
    return NearbySearchCache(
        MemorySearchStore(name="nearby-fast"), MemorySearchStore(name="nearby-durable"), clock=clock
    )


@pytest.fixture
def gated_store():
    """Durable store whose reads can be held open."""
    return GatedStore()


@pytest.fixture
def fake_redis():
    """In-memory fake Redis client."""
    return FakeRedis()


# ============================================================================
# Sample Data Fixtures
# ============================================================================

def make_place(place_id: str, name: str, distance: int = 100) -> Dict[str, Any]:
    return {
        "id": place_id,
        "name": name,
        "address": "Sukhumvit Rd",
        "types": ["cafe"],
        "distance": distance,
        "coordinates": [100.5018, 13.7563],
    }


@pytest.fixture
def place_a():
    return make_place("place_a", "Roast Coffee", 120)


@pytest.fixture
def place_b():
    return make_place("place_b", "Coffee Beans by Dao", 340)


@pytest.fixture
def place_c():
    return make_place("place_c", "Ari Coffee House", 800)


@pytest.fixture
def bangkok():
    """Search origin in central Bangkok."""
    return BANGKOK


@pytest.fixture
def chatuchak():
    """A second origin roughly 7km north."""
    return CHATUCHAK


@pytest.fixture
def failing_store():
    """Factory for durable stores that raise on demand."""
    return FailingStore


@pytest.fixture
def place_factory():
    """Factory for sample place records."""
    return make_place
