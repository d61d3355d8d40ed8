"""Tests for the in-memory cache."""

import pytest

from ripexplorer.services.cache import CacheKeys, MemoryCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


class TestMemoryCache:
    """Tests for MemoryCache commands."""

    async def test_get_missing(self, cache: MemoryCache) -> None:
        """Missing keys read as None."""
        assert await cache.get("nope") is None

    async def test_set_and_get(self, cache: MemoryCache) -> None:
        """Values come back as equal copies."""
        value = {"cards": [1, 2]}
        await cache.set("k", value)

        cached = await cache.get("k")
        cached["cards"].append(3)

        assert await cache.get("k") == {"cards": [1, 2]}

    async def test_expiry(self, cache: MemoryCache, clock: FakeClock) -> None:
        """Keys with a TTL disappear once it elapses."""
        await cache.set("k", "v", ttl=60)

        clock.now += 59
        assert await cache.get("k") == "v"
        assert await cache.ttl("k") == 1

        clock.now += 1
        assert await cache.get("k") is None
        assert await cache.exists("k") is False

    async def test_ttl_sentinels(self, cache: MemoryCache) -> None:
        """-2 for missing keys, -1 for keys without expiry."""
        await cache.set("forever", 1)

        assert await cache.ttl("missing") == -2
        assert await cache.ttl("forever") == -1

    async def test_unserializable_value(self, cache: MemoryCache) -> None:
        """Values must be JSON-serializable."""
        with pytest.raises(TypeError):
            await cache.set("k", object())

    async def test_ping(self, cache: MemoryCache) -> None:
        """ping answers while the store is usable."""
        assert await cache.ping() is True

    async def test_expired_keys_swept_on_write(self, clock: FakeClock) -> None:
        """Expired keys that are never read again are swept by later writes."""
        cache = MemoryCache(clock=clock, sweep_interval=3)
        await cache.set("rip:search:a", [1], ttl=300)
        await cache.set("rip:set:sv4", {"cards": []})
        assert cache.size == 2

        clock.now += 300
        await cache.set("rip:search:b", [2], ttl=300)

        assert cache.size == 2
        assert await cache.exists("rip:set:sv4") is True
        assert await cache.get("rip:search:b") == [2]

    async def test_sweep(self, cache: MemoryCache, clock: FakeClock) -> None:
        """sweep removes only expired entries and reports how many."""
        await cache.set("short", 1, ttl=10)
        await cache.set("long", 2, ttl=100)
        await cache.set("forever", 3)

        clock.now += 50

        assert cache.sweep() == 1
        assert cache.size == 2
        assert cache.sweep() == 0


class TestCacheKeys:
    """Tests for key namespacing."""

    def test_keys(self) -> None:
        """Keys are namespaced under rip:."""
        assert CacheKeys.set_data("sv4") == "rip:set:sv4"
        assert CacheKeys.extraction("ash") == "rip:extract:ash"
        assert CacheKeys.user_search("Ash") == "rip:search:ash"
