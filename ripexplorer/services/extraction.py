"""
User collection extraction.

Resolves a username or numeric id to a rip.fun user, pulls the user's
owned cards from the JSON API, and shapes them into a profile. Results
are cached for an hour per input. Profile pages can also be scraped
directly through the structured-data extractor.
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.config import settings
from ripexplorer.db.operations import get_user_by_username
from ripexplorer.models.card import to_float
from ripexplorer.models.failure import FetchError, InvalidInputError, UserNotFoundError
from ripexplorer.models.raw import transform_owned_card
from ripexplorer.parsers.js_literal import to_iso_timestamp
from ripexplorer.parsers.page_data import PageExtraction, extract_page_data
from ripexplorer.scrapers.fetcher import FetchOptions, fetch_html
from ripexplorer.scrapers.ripfun import fetch_owned_cards, fetch_profile_user_id, profile_url
from ripexplorer.services.cache import CacheKeys, MemoryCache
from ripexplorer.services.normalizer import clean_rip_fun_data

logger = logging.getLogger(__name__)

# Profile pages are data-heavy; allow more time than the defaults
PROFILE_PAGE_FETCH_OPTIONS = FetchOptions(
    max_retries=3,
    initial_timeout=20.0,
    max_timeout=60.0,
    retry_delay=2.0,
)

_NUMERIC_ID = re.compile(r"^\d+$")


@dataclass
class Resolution:
    """How a user input was mapped to a rip.fun user id."""

    username: str
    user_id: int | None
    method: str  # numeric | database | profile_page | unresolved


@dataclass
class ExtractionResult:
    """A user's extracted collection plus resolution metadata."""

    username: str
    original_input: str
    resolved_user_id: int | None
    resolution_method: str
    target_url: str
    extracted_data: dict[str, Any]
    extraction_method: str
    api_calls_made: int
    timestamp: str
    from_cache: bool = False


async def resolve_username(
    user_input: str,
    session: AsyncSession | None,
    client: httpx.AsyncClient | None = None,
) -> Resolution:
    """
    Map a username or numeric id to a user id.

    Numeric input is taken as the id. Usernames are looked up in the
    synced users table, then on the public profile page. Lookup failures
    are logged and leave the user unresolved.
    """
    if _NUMERIC_ID.match(user_input):
        logger.info("Using numeric input as user ID: %s", user_input)
        return Resolution(username=user_input, user_id=int(user_input), method="numeric")

    if session is not None:
        try:
            user = await get_user_by_username(session, user_input)
        except SQLAlchemyError as e:
            logger.warning("Username lookup failed for %s: %s", user_input, e)
            user = None
        if user is not None:
            logger.info("Username resolved: %s -> ID: %d", user_input, user.id)
            return Resolution(username=user.username, user_id=user.id, method="database")

    logger.info("Username not in database: %s, trying profile page", user_input)
    try:
        user_id = await fetch_profile_user_id(user_input, client)
    except FetchError as e:
        logger.warning("Profile page resolution failed for %s: %s", user_input, e.message)
        user_id = None

    if user_id is not None:
        return Resolution(username=user_input, user_id=user_id, method="profile_page")
    return Resolution(username=user_input, user_id=None, method="unresolved")


def build_api_profile(user_id: int, records: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Profile structure for owned-card API records.

    The owned-cards endpoint carries no profile fields, so the username
    is a placeholder and products are empty.
    """
    cards = [transform_owned_card(record) for record in records if isinstance(record, dict)]
    total_value = sum(to_float(card["card"].get("raw_price")) for card in cards)

    profile = {
        "id": user_id,
        "username": f"User {user_id}",
        "digital_cards": cards,
        "digital_products": [],
        "total_cards": len(cards),
        "total_packs": 0,
        "total_value": f"{total_value:.2f}",
    }
    return {
        "profile": profile,
        "stats": {
            "totalCards": len(cards),
            "totalPacks": 0,
            "totalValue": f"${total_value:.2f}",
        },
        "extraction_method": "api_direct",
        "api_calls_made": 1,
    }


async def extract_user_profile(
    user_input: str,
    *,
    session: AsyncSession | None,
    cache: MemoryCache,
    client: httpx.AsyncClient | None = None,
    force_refresh: bool = False,
) -> ExtractionResult:
    """
    Extract a user's collection through the owned-cards API.

    Args:
        user_input: Username or numeric rip.fun user id
        session: Database session for username lookup (optional)
        cache: Result cache
        client: Optional httpx client for connection reuse
        force_refresh: Skip the cached result

    Raises:
        InvalidInputError: Empty input
        UserNotFoundError: The input could not be resolved to a user id,
            or rip.fun does not know the id
        FetchError: The owned-cards request failed
        ExtractionError: The owned-cards response was malformed
    """
    trimmed = (user_input or "").strip()
    if not trimmed:
        raise InvalidInputError("Username or user ID is required")

    cache_key = CacheKeys.extraction(trimmed)
    if not force_refresh:
        cached = await cache.get(cache_key)
        if cached is not None:
            logger.info("Extraction cache hit for %s", trimmed)
            return ExtractionResult(**{**cached, "from_cache": True})

    resolution = await resolve_username(trimmed, session, client)
    if resolution.user_id is None:
        raise UserNotFoundError(
            trimmed,
            detail=(
                f"Could not resolve username '{trimmed}' to a user ID. The user may "
                "not exist or may not be synced yet."
            ),
        )

    records = await fetch_owned_cards(resolution.user_id, client)
    extracted = build_api_profile(resolution.user_id, records)

    result = ExtractionResult(
        username=resolution.username,
        original_input=trimmed,
        resolved_user_id=resolution.user_id,
        resolution_method=resolution.method,
        target_url=profile_url(resolution.username),
        extracted_data=extracted,
        extraction_method="api",
        api_calls_made=extracted["api_calls_made"],
        timestamp=to_iso_timestamp(datetime.now(UTC)),
    )
    logger.info(
        "user_extraction_complete",
        extra={
            "input": trimmed,
            "user_id": resolution.user_id,
            "resolution_method": resolution.method,
            "cards": extracted["profile"]["total_cards"],
        },
    )

    await cache.set(cache_key, asdict(result), ttl=settings.extraction_cache_ttl)
    return result


async def extract_profile_page(
    url: str, client: httpx.AsyncClient | None = None
) -> PageExtraction:
    """
    Scrape a profile page and return its embedded state.

    Raises:
        InvalidUrlError, FetchError: The page could not be fetched
        ExtractionError: No strategy found structured data
    """
    html = await fetch_html(url, PROFILE_PAGE_FETCH_OPTIONS, client)
    extraction = extract_page_data(html)
    logger.info(
        "page_extraction_complete",
        extra={
            "url": url,
            "strategy": extraction.strategy.value,
            "fragments_skipped": extraction.fragments_skipped,
        },
    )
    extraction.data = clean_rip_fun_data(extraction.data)
    return extraction
