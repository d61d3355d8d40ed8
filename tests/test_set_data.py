"""Tests for set catalog caching and completion."""

import httpx
import pytest
import respx

from ripexplorer.models.card import TradeCard
from ripexplorer.models.failure import FetchError
from ripexplorer.services.cache import CacheKeys, MemoryCache
from ripexplorer.services.dedup import RequestCoalescer
from ripexplorer.services.set_data import (
    build_user_set_summary,
    calculate_completion_percentage,
    fetch_set_totals,
    get_set_data,
    set_total,
    warm_cache,
)

BASE = "https://www.rip.fun"


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def coalescer() -> RequestCoalescer:
    return RequestCoalescer()


def catalog(n: int) -> dict:
    return {"cards": [{"id": f"c{i}"} for i in range(n)]}


class TestGetSetData:
    """Tests for cached set lookups."""

    @respx.mock
    async def test_miss_fetches_and_caches(
        self, cache: MemoryCache, coalescer: RequestCoalescer
    ) -> None:
        """A miss fetches the catalog and stores it without expiry."""
        route = respx.get(f"{BASE}/api/set/sv4/cards").mock(
            return_value=httpx.Response(200, json=catalog(2))
        )

        data = await get_set_data("sv4", cache, coalescer)

        assert data == catalog(2)
        assert route.call_count == 1
        assert await cache.get(CacheKeys.set_data("sv4")) == catalog(2)
        assert await cache.ttl(CacheKeys.set_data("sv4")) == -1

    @respx.mock
    async def test_hit_skips_upstream(
        self, cache: MemoryCache, coalescer: RequestCoalescer
    ) -> None:
        """A cached set never reaches rip.fun."""
        route = respx.get(f"{BASE}/api/set/sv4/cards").mock(
            return_value=httpx.Response(200, json=catalog(9))
        )
        await cache.set(CacheKeys.set_data("sv4"), catalog(1))

        assert await get_set_data("sv4", cache, coalescer) == catalog(1)
        assert route.call_count == 0

    @respx.mock
    async def test_upstream_error_not_cached(
        self, cache: MemoryCache, coalescer: RequestCoalescer
    ) -> None:
        """Failures raise and leave the cache empty."""
        respx.get(f"{BASE}/api/set/sv4/cards").mock(return_value=httpx.Response(503))

        with pytest.raises(FetchError):
            await get_set_data("sv4", cache, coalescer)
        assert await cache.exists(CacheKeys.set_data("sv4")) is False


class TestWarmCache:
    """Tests for cache warming."""

    @respx.mock
    async def test_warm_cache(self, cache: MemoryCache, coalescer: RequestCoalescer) -> None:
        """Cached sets are skipped, others fetched, failures collected."""
        await cache.set(CacheKeys.set_data("base1"), catalog(1))
        respx.get(f"{BASE}/api/set/sv4/cards").mock(
            return_value=httpx.Response(200, json=catalog(3))
        )
        respx.get(f"{BASE}/api/set/sv5/cards").mock(return_value=httpx.Response(500))

        result = await warm_cache(["base1", "sv4", "sv5", "sv4"], cache, coalescer, delay=0)

        assert result.skipped == ["base1"]
        assert result.cached == ["sv4"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("sv5: ")
        assert result.success_count == 2
        assert result.fail_count == 1
        assert await cache.exists(CacheKeys.set_data("sv4"))


class TestSetTotals:
    """Tests for per-set card totals."""

    def test_set_total(self) -> None:
        """Totals count catalog cards; odd payloads count zero."""
        assert set_total(catalog(4)) == 4
        assert set_total({"cards": None}) == 0
        assert set_total({}) == 0

    @respx.mock
    async def test_fetch_set_totals(
        self, cache: MemoryCache, coalescer: RequestCoalescer
    ) -> None:
        """Failed sets count as zero; "all" and blanks are ignored."""
        await cache.set(CacheKeys.set_data("sv4"), catalog(5))
        respx.get(f"{BASE}/api/set/sv5/cards").mock(return_value=httpx.Response(500))

        totals = await fetch_set_totals(["sv4", "sv5", "all", "", "sv4"], cache, coalescer)

        assert totals == {"sv4": 5, "sv5": 0}


class TestCompletion:
    """Tests for completion percentages and summaries."""

    def test_percentage_rounds_half_up(self) -> None:
        """Halves round up rather than to even."""
        assert calculate_completion_percentage(1, 8) == 13
        assert calculate_completion_percentage(1, 40) == 3
        assert calculate_completion_percentage(1, 3) == 33

    def test_percentage_unknown_total(self) -> None:
        """An unknown total is 0 percent."""
        assert calculate_completion_percentage(5, 0) == 0

    def test_summary(self) -> None:
        """Rows are sorted by percent, then name, and capped at 100."""
        cards = [
            TradeCard(id="1", name="a", set_id="sv4", set_name="Paradox Rift"),
            TradeCard(id="2", name="b", set_id="sv4", set_name="Paradox Rift"),
            TradeCard(id="3", name="c", set_id="base1", set_name="Base Set"),
            TradeCard(id="4", name="d", set_id="neo1", set_name="Neo Genesis"),
            TradeCard(id="5", name="e", set_id=""),
        ]

        rows = build_user_set_summary(cards, {"sv4": 4, "base1": 1}, {"neo1": "Neo"})

        assert [(r.set_id, r.set_name, r.owned, r.total, r.percent) for r in rows] == [
            ("base1", "Base Set", 1, 1, 100),
            ("sv4", "Paradox Rift", 2, 4, 50),
            ("neo1", "Neo", 1, 0, 0),
        ]
