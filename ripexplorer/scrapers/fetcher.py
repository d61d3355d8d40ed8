"""
HTML fetcher with retries.

Each attempt gets a longer timeout than the last (capped), and failed
attempts back off exponentially. Server errors and network failures are
retried; a bad URL scheme, a 4xx status, or a non-HTML response fails
immediately.
"""

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from ripexplorer.config import TIMEOUT_INCREMENT, settings
from ripexplorer.models.failure import (
    FetchError,
    FetchHTTPError,
    FetchTimeoutError,
    InvalidUrlError,
    NotHtmlError,
)

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


@dataclass(frozen=True)
class FetchOptions:
    """
    Retry policy for fetch_html.

    Attributes:
        max_retries: Retries after the first attempt
        initial_timeout: Seconds allowed for the whole first attempt
        max_timeout: Upper bound on any attempt's timeout
        retry_delay: Base of the exponential backoff, in seconds
    """

    max_retries: int = 3
    initial_timeout: float = 15.0
    max_timeout: float = 45.0
    retry_delay: float = 1.0

    @classmethod
    def from_settings(cls) -> "FetchOptions":
        return cls(
            max_retries=settings.fetch_max_retries,
            initial_timeout=settings.fetch_initial_timeout,
            max_timeout=settings.fetch_max_timeout,
            retry_delay=settings.fetch_retry_delay,
        )

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def timeout_for(self, attempt: int) -> float:
        """Timeout for a zero-based attempt number."""
        return min(self.initial_timeout + attempt * TIMEOUT_INCREMENT, self.max_timeout)

    def backoff_for(self, attempt: int) -> float:
        """Delay after a failed zero-based attempt."""
        return self.retry_delay * 2**attempt


def validate_url(url: str) -> None:
    """Raise InvalidUrlError unless `url` is an absolute HTTP(S) URL."""
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidUrlError(url)


async def fetch_html(
    url: str,
    options: FetchOptions | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """
    Fetch a page body as text.

    Args:
        url: Absolute HTTP(S) URL
        options: Retry policy (defaults from settings)
        client: Optional httpx client for connection reuse

    Returns:
        The HTML body

    Raises:
        InvalidUrlError: Scheme is not HTTP(S); nothing is requested
        FetchHTTPError: Upstream answered 4xx
        NotHtmlError: Upstream answered without a text/html content type
        FetchTimeoutError: Every attempt failed and the last one timed out
        FetchError: Every attempt failed for any other reason
    """
    validate_url(url)
    options = options or FetchOptions.from_settings()

    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True)

    last_error = "Unknown error"
    timed_out = False
    try:
        for attempt in range(options.attempts):
            timeout = options.timeout_for(attempt)
            logger.info(
                "Attempt %d/%d - Fetching %s with %.0fs timeout",
                attempt + 1,
                options.attempts,
                url,
                timeout,
            )

            try:
                # Deadline for the whole attempt; httpx times each phase separately
                async with asyncio.timeout(timeout):
                    response = await http.get(url, headers=BROWSER_HEADERS, timeout=timeout)
            except (httpx.TimeoutException, TimeoutError) as e:
                timed_out = True
                last_error = f"Request timed out after {timeout:.0f}s ({type(e).__name__})"
            except httpx.TransportError as e:
                timed_out = False
                last_error = str(e) or type(e).__name__
            else:
                if response.is_server_error:
                    timed_out = False
                    last_error = f"HTTP error! status: {response.status_code}"
                elif not response.is_success:
                    raise FetchHTTPError(url, response.status_code)
                else:
                    content_type = response.headers.get("content-type")
                    if not content_type or "text/html" not in content_type:
                        raise NotHtmlError(url, content_type)
                    logger.info("Successfully fetched %s on attempt %d", url, attempt + 1)
                    return response.text

            if attempt < options.max_retries:
                delay = options.backoff_for(attempt)
                logger.warning(
                    "Attempt %d failed: %s. Retrying in %.1fs...", attempt + 1, last_error, delay
                )
                await asyncio.sleep(delay)
    finally:
        if owns_client:
            await http.aclose()

    logger.error("fetch_failed", extra={"url": url, "attempts": options.attempts})
    if timed_out:
        raise FetchTimeoutError(url, options.attempts)
    raise FetchError(
        f"Failed to fetch HTML from {url} after {options.attempts} attempts: {last_error}",
        detail=last_error,
    )
