"""
rip.fun JSON endpoints.

Owned cards per user, set catalogs, user lookup by wallet address, and
user-id resolution from a profile page. The endpoints are undocumented;
shapes are validated loosely and embedding vectors are dropped.
"""

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from ripexplorer.config import settings
from ripexplorer.models.failure import ExtractionError, FetchError, UserNotFoundError
from ripexplorer.models.raw import strip_embeddings

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
JSON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Referer": "https://www.rip.fun/",
}

# Tried in order against profile page HTML
USER_ID_PATTERNS = (
    re.compile(r"\"user_id\":\s*(\d+)", re.IGNORECASE),
    re.compile(r"\"id\":\s*(\d+)", re.IGNORECASE),
    re.compile(r"user[_-]?id[\"']?:\s*[\"']?(\d+)", re.IGNORECASE),
)


def _url(path: str) -> str:
    return f"{settings.ripfun_base_url.rstrip('/')}{path}"


def _segment(value: object) -> str:
    """One URL path segment; `/`, `?` and `#` in the value are escaped."""
    return quote(str(value), safe="")


def profile_url(username: str) -> str:
    return _url(f"/profile/{_segment(username)}")


async def _get(
    url: str,
    client: httpx.AsyncClient | None,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    headers = headers or JSON_HEADERS
    if client:
        return await client.get(url, params=params, headers=headers)
    async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as temp:
        return await temp.get(url, params=params, headers=headers)


def _json_body(response: httpx.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ExtractionError(f"Invalid {what} response from rip.fun", detail=str(e)) from e


async def fetch_owned_cards(
    user_id: int | str, client: httpx.AsyncClient | None = None
) -> list[dict[str, Any]]:
    """
    Fetch every card a user owns.

    Args:
        user_id: Numeric rip.fun user id
        client: Optional httpx client for connection reuse

    Returns:
        Raw owned-card records (embedding vectors removed)

    Raises:
        UserNotFoundError: rip.fun answered 404
        FetchError: Request failed or rip.fun answered another error status
        ExtractionError: Body had no cards array
    """
    url = _url(f"/api/user/{_segment(user_id)}/owned-cards")
    logger.info("Fetching owned cards from: %s", url)

    try:
        response = await _get(url, client)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to get owned cards for user {user_id}", detail=str(e)) from e

    if response.status_code == 404:
        raise UserNotFoundError(str(user_id), detail=url)
    if not response.is_success:
        raise FetchError(
            f"Failed to get owned cards: {response.status_code} {response.reason_phrase}",
            detail=url,
        )

    data = _json_body(response, "owned cards")
    cards = data.get("cards") if isinstance(data, dict) else None
    if not isinstance(cards, list):
        raise ExtractionError("Invalid cards data structure received from API", detail=url)

    logger.info("Fetched %d owned cards for user %s", len(cards), user_id)
    return strip_embeddings(cards)


async def fetch_set_cards(
    set_id: str,
    client: httpx.AsyncClient | None = None,
    page: int = 1,
    limit: int = 1000,
    sort: str = "number-asc",
    include_all: bool = True,
) -> dict[str, Any]:
    """
    Fetch a set's card catalog.

    Returns:
        The catalog payload with embedding vectors removed

    Raises:
        FetchError: Request failed or rip.fun answered an error status
        ExtractionError: Body was not a JSON object
    """
    url = _url(f"/api/set/{_segment(set_id)}/cards")
    params = {
        "page": page,
        "limit": limit,
        "sort": sort,
        "all": "true" if include_all else "false",
    }

    try:
        response = await _get(url, client, params=params)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to fetch set {set_id} data", detail=str(e)) from e

    if not response.is_success:
        raise FetchError(
            f"rip.fun API returned {response.status_code}: {response.reason_phrase}",
            detail=url,
        )

    data = _json_body(response, "set")
    if not isinstance(data, dict):
        raise ExtractionError(f"Unexpected set payload for {set_id}", detail=url)
    return strip_embeddings(data)


async def fetch_user_by_address(
    address: str, client: httpx.AsyncClient | None = None
) -> dict[str, Any] | None:
    """
    Look up the rip.fun user owning a wallet address.

    Returns None when the address has no account or the lookup fails;
    a sync run keeps going past individual bad addresses.
    """
    url = _url(f"/api/auth/{_segment(address)}")
    try:
        response = await _get(url, client)
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch user data for address %s: %s", address, e)
        return None

    if response.status_code == 404:
        return None
    if not response.is_success:
        logger.warning(
            "rip.fun API returned %d for address %s", response.status_code, address
        )
        return None

    try:
        data = response.json()
    except ValueError as e:
        logger.warning("Invalid user payload for address %s: %s", address, e)
        return None
    return data if isinstance(data, dict) else None


def resolve_user_id_from_html(html: str) -> int | None:
    """First user id embedded in a profile page, or None."""
    for pattern in USER_ID_PATTERNS:
        match = pattern.search(html)
        if match:
            return int(match.group(1))
    return None


async def fetch_profile_user_id(
    username: str, client: httpx.AsyncClient | None = None
) -> int | None:
    """
    Resolve a username to a user id by scraping its profile page.

    Returns:
        The user id, or None if the profile does not exist or has no id

    Raises:
        FetchError: Request failed or rip.fun answered a non-404 error
    """
    url = profile_url(username)
    logger.info("Attempting to resolve username '%s' via profile page: %s", username, url)

    try:
        response = await _get(url, client, headers={"User-Agent": USER_AGENT})
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to fetch profile page for {username}", detail=str(e)) from e

    if response.status_code == 404:
        logger.info("Profile not found for username: %s", username)
        return None
    if not response.is_success:
        raise FetchError(f"Profile page returned {response.status_code}", detail=url)

    user_id = resolve_user_id_from_html(response.text)
    if user_id is None:
        logger.info("Could not find user ID in profile page for username: %s", username)
    else:
        logger.info("Extracted user ID %d from profile page for %s", user_id, username)
    return user_id
