"""
Set catalog data.

Set catalogs change rarely and are large, so they are cached without
expiry under rip:set:<id>. Concurrent lookups of an uncached set share
one upstream request. warm_cache() pre-populates popular sets.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from ripexplorer.config import WARM_CACHE_BATCH_DELAY, WARM_CACHE_BATCH_SIZE
from ripexplorer.models.card import TradeCard
from ripexplorer.scrapers.ripfun import fetch_set_cards
from ripexplorer.services.batching import run_in_batches
from ripexplorer.services.cache import CacheKeys, MemoryCache
from ripexplorer.services.dedup import RequestCoalescer

logger = logging.getLogger(__name__)

# Sets kept warm by the warm-cache job
POPULAR_SETS = (
    "sv3pt5",  # Pokemon 151
    "sv1-151",
    "sv2-151",
    "sv4",  # Paradox Rift
    "sv5",  # Temporal Forces
    "sv6",  # Twilight Masquerade
    "sv7",  # Stellar Crown
    "sv8",  # Surging Sparks
    "sv09",  # Prismatic Evolutions
    "swsh12pt5",  # Crown Zenith
    "swsh11",  # Lost Origin
    "swsh10",  # Astral Radiance
    "swsh9",  # Brilliant Stars
    "cel25",  # Celebrations
    "base1",
    "base2",  # Jungle
    "base3",  # Fossil
    "base4",  # Base Set 2
    "neo1",  # Neo Genesis
)


async def get_set_data(
    set_id: str,
    cache: MemoryCache,
    coalescer: RequestCoalescer,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    Set catalog payload, from cache when possible.

    Raises:
        FetchError: Upstream request failed
        ExtractionError: Upstream returned an unexpected payload
    """
    key = CacheKeys.set_data(set_id)
    cached = await cache.get(key)
    if cached is not None:
        logger.debug("Set %s served from cache", set_id)
        return cached

    async def load() -> dict[str, Any]:
        data = await fetch_set_cards(set_id, client)
        await cache.set(key, data)
        logger.info("Cached set %s (%d cards)", set_id, len(data.get("cards") or []))
        return data

    return await coalescer.run(key, load)


@dataclass
class WarmCacheResult:
    """Outcome of a warm_cache run."""

    cached: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.cached) + len(self.skipped)

    @property
    def fail_count(self) -> int:
        return len(self.errors)


async def warm_cache(
    set_ids: Iterable[str],
    cache: MemoryCache,
    coalescer: RequestCoalescer,
    client: httpx.AsyncClient | None = None,
    batch_size: int = WARM_CACHE_BATCH_SIZE,
    delay: float = WARM_CACHE_BATCH_DELAY,
) -> WarmCacheResult:
    """
    Fetch and cache every set not cached yet.

    Sets are fetched `batch_size` at a time with `delay` seconds between
    batches. Individual failures are collected, not raised.
    """
    result = WarmCacheResult()
    set_ids = list(dict.fromkeys(set_ids))

    to_fetch: list[str] = []
    for set_id in set_ids:
        if await cache.exists(CacheKeys.set_data(set_id)):
            logger.info("Skipping %s (already cached)", set_id)
            result.skipped.append(set_id)
        else:
            to_fetch.append(set_id)

    async def warm_one(set_id: str) -> dict[str, Any]:
        return await get_set_data(set_id, cache, coalescer, client)

    outcomes = await run_in_batches(to_fetch, warm_one, batch_size, delay)
    for set_id, outcome in zip(to_fetch, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.error("Failed to cache %s: %s", set_id, outcome)
            result.errors.append(f"{set_id}: {outcome}")
        else:
            result.cached.append(set_id)

    logger.info(
        "cache_warm_complete",
        extra={
            "cached": len(result.cached),
            "skipped": len(result.skipped),
            "failed": result.fail_count,
        },
    )
    return result


def set_total(data: dict[str, Any]) -> int:
    """Number of cards in a set catalog payload."""
    cards = data.get("cards")
    return len(cards) if isinstance(cards, list) else 0


async def fetch_set_totals(
    set_ids: Iterable[str],
    cache: MemoryCache,
    coalescer: RequestCoalescer,
    client: httpx.AsyncClient | None = None,
    batch_size: int = WARM_CACHE_BATCH_SIZE,
) -> dict[str, int]:
    """
    Card count of each set.

    Sets whose catalog cannot be loaded count as 0 so completion for the
    remaining sets can still be shown.
    """
    ids = [set_id for set_id in dict.fromkeys(set_ids) if set_id and set_id != "all"]

    async def load(set_id: str) -> dict[str, Any]:
        return await get_set_data(set_id, cache, coalescer, client)

    outcomes = await run_in_batches(ids, load, batch_size, 0)
    totals: dict[str, int] = {}
    for set_id, outcome in zip(ids, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.warning("Error fetching set %s total: %s", set_id, outcome)
            totals[set_id] = 0
        else:
            totals[set_id] = set_total(outcome)
    return totals


def calculate_completion_percentage(owned: int, total: int) -> int:
    """Rounded percent of a set owned; 0 when the total is unknown."""
    if total <= 0:
        return 0
    # Half-up, not banker's rounding
    return math.floor(owned / total * 100 + 0.5)


@dataclass(frozen=True)
class UserSetRow:
    """Completion of one set within a collection."""

    set_id: str
    set_name: str
    owned: int
    total: int
    percent: int


def build_user_set_summary(
    cards: Iterable[TradeCard],
    set_totals: dict[str, int],
    set_names: dict[str, str] | None = None,
) -> list[UserSetRow]:
    """
    Per-set completion for a collection.

    Args:
        cards: Deduplicated owned cards
        set_totals: Cards in each full set (missing sets count as 0)
        set_names: Display names overriding the cards' own set names

    Returns:
        Rows sorted by percent (highest first), then name
    """
    set_names = set_names or {}
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for card in cards:
        if not card.set_id:
            continue
        counts[card.set_id] = counts.get(card.set_id, 0) + 1
        names.setdefault(card.set_id, card.set_name or card.set_id)

    rows = []
    for set_id, owned in counts.items():
        total = max(0, set_totals.get(set_id, 0))
        rows.append(
            UserSetRow(
                set_id=set_id,
                set_name=set_names.get(set_id, names[set_id]),
                owned=owned,
                total=total,
                percent=min(100, calculate_completion_percentage(owned, total)),
            )
        )
    return sorted(rows, key=lambda r: (-r.percent, r.set_name.casefold()))
