"""Tests for username resolution and collection extraction."""

import httpx
import pytest
import respx
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.db.operations import upsert_rip_user
from ripexplorer.models.failure import InvalidInputError, UserNotFoundError
from ripexplorer.models.raw import RawV1Shape
from ripexplorer.parsers.page_data import ExtractionStrategy
from ripexplorer.services.cache import CacheKeys, MemoryCache
from ripexplorer.services.extraction import (
    build_api_profile,
    extract_profile_page,
    extract_user_profile,
    resolve_username,
)

BASE = "https://www.rip.fun"

OWNED = {
    "cards": [
        {
            "token_id": 5,
            "card": {"id": "c1", "name": "Pikachu", "raw_price": "2.50", "clip_embedding": [1.0]},
        },
        {"token_id": 6, "card": {"id": "c2", "name": "Mew", "raw_price": 10}},
    ]
}


class TestResolveUsername:
    """Tests for mapping input to a user id."""

    async def test_numeric_input(self) -> None:
        """Digits are used as the id without any lookup."""
        resolution = await resolve_username("12345", None)

        assert resolution.user_id == 12345
        assert resolution.method == "numeric"

    async def test_database_lookup(self, session: AsyncSession) -> None:
        """Synced users resolve case-insensitively from the database."""
        await upsert_rip_user(session, {"id": 42, "username": "Ash"})

        resolution = await resolve_username("ash", session)

        assert resolution.user_id == 42
        assert resolution.username == "Ash"
        assert resolution.method == "database"

    @respx.mock
    async def test_profile_page_fallback(self, session: AsyncSession) -> None:
        """Unknown usernames are resolved from the profile page."""
        respx.get(f"{BASE}/profile/misty").mock(
            return_value=httpx.Response(200, html='<script>{"user_id": 77}</script>')
        )

        resolution = await resolve_username("misty", session)

        assert resolution.user_id == 77
        assert resolution.method == "profile_page"

    @respx.mock
    async def test_unresolved(self) -> None:
        """A missing profile leaves the user unresolved."""
        respx.get(f"{BASE}/profile/ghost").mock(return_value=httpx.Response(404))

        resolution = await resolve_username("ghost", None)

        assert resolution.user_id is None
        assert resolution.method == "unresolved"

    @respx.mock
    async def test_profile_page_error_is_unresolved(self) -> None:
        """Upstream failures during resolution do not raise."""
        respx.get(f"{BASE}/profile/brock").mock(return_value=httpx.Response(500))

        resolution = await resolve_username("brock", None)

        assert resolution.method == "unresolved"


class TestBuildApiProfile:
    """Tests for shaping owned-card records into a profile."""

    def test_profile_totals(self) -> None:
        """Cards are transformed and their prices totalled."""
        extracted = build_api_profile(42, OWNED["cards"])

        profile = extracted["profile"]
        assert profile["id"] == 42
        assert profile["username"] == "User 42"
        assert profile["total_cards"] == 2
        assert profile["total_value"] == "12.50"
        assert profile["digital_cards"][0]["id"] == 5
        assert extracted["stats"] == {"totalCards": 2, "totalPacks": 0, "totalValue": "$12.50"}
        assert extracted["extraction_method"] == "api_direct"

    def test_empty(self) -> None:
        """No cards is a zero-value profile."""
        extracted = build_api_profile(1, [])

        assert extracted["profile"]["total_value"] == "0.00"
        assert extracted["profile"]["digital_cards"] == []


class TestExtractUserProfile:
    """Tests for full user extraction."""

    @respx.mock
    async def test_extract_and_cache(self) -> None:
        """Results are cached for an hour and served from cache next time."""
        cache = MemoryCache()
        route = respx.get(f"{BASE}/api/user/42/owned-cards").mock(
            return_value=httpx.Response(200, json=OWNED)
        )

        first = await extract_user_profile("42", session=None, cache=cache)
        second = await extract_user_profile(" 42 ", session=None, cache=cache)

        assert route.call_count == 1
        assert first.from_cache is False
        assert first.resolution_method == "numeric"
        assert first.target_url == f"{BASE}/profile/42"
        assert first.extraction_method == "api"
        assert first.extracted_data["profile"]["total_cards"] == 2
        assert "clip_embedding" not in first.extracted_data["profile"]["digital_cards"][0]["card"]
        assert second.from_cache is True
        assert second.extracted_data == first.extracted_data
        assert 0 < await cache.ttl(CacheKeys.extraction("42")) <= 3600

    @respx.mock
    async def test_force_refresh(self) -> None:
        """force_refresh bypasses the cached result."""
        cache = MemoryCache()
        route = respx.get(f"{BASE}/api/user/42/owned-cards").mock(
            return_value=httpx.Response(200, json=OWNED)
        )

        await extract_user_profile("42", session=None, cache=cache)
        result = await extract_user_profile("42", session=None, cache=cache, force_refresh=True)

        assert route.call_count == 2
        assert result.from_cache is False

    async def test_blank_input(self) -> None:
        """Empty input is rejected."""
        with pytest.raises(InvalidInputError):
            await extract_user_profile("   ", session=None, cache=MemoryCache())

    @respx.mock
    async def test_unresolvable_user(self) -> None:
        """Usernames that cannot be resolved raise UserNotFoundError."""
        respx.get(f"{BASE}/profile/ghost").mock(return_value=httpx.Response(404))

        with pytest.raises(UserNotFoundError) as exc_info:
            await extract_user_profile("ghost", session=None, cache=MemoryCache())

        assert "Could not resolve username 'ghost'" in exc_info.value.detail


class TestExtractProfilePage:
    """Tests for scraping a profile page."""

    @respx.mock
    async def test_extract_page(self, bootstrap_html: str) -> None:
        """Page data comes back tagged with its strategy and shape."""
        url = f"{BASE}/profile/ash"
        respx.get(url).mock(return_value=httpx.Response(200, html=bootstrap_html))

        extraction = await extract_profile_page(url)

        assert extraction.strategy is ExtractionStrategy.BOOTSTRAP_LITERAL
        assert isinstance(extraction.shape, RawV1Shape)
        assert extraction.data[1]["data"]["profile"]["id"] == 42
        assert extraction.profile["username"] == "ash"
        assert extraction.cards[0]["set"] == {"id": "sv3pt5", "name": "Pokemon 151"}
