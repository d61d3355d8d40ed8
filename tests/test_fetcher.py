"""Tests for the retrying HTML fetcher."""

import asyncio

import httpx
import pytest
import respx

from ripexplorer.models.failure import (
    FailureKind,
    FetchError,
    FetchHTTPError,
    FetchTimeoutError,
    InvalidUrlError,
    NotHtmlError,
)
from ripexplorer.scrapers.fetcher import FetchOptions, fetch_html, validate_url

URL = "https://www.rip.fun/profile/ash"
FAST = FetchOptions(max_retries=2, initial_timeout=1.0, max_timeout=3.0, retry_delay=0)

HTML_HEADERS = {"content-type": "text/html; charset=utf-8"}


class TestFetchOptions:
    """Tests for the retry schedule."""

    def test_timeout_escalates_and_caps(self) -> None:
        """Each attempt gets 5s more, up to the maximum."""
        options = FetchOptions(initial_timeout=15.0, max_timeout=25.0)
        assert [options.timeout_for(n) for n in range(4)] == [15.0, 20.0, 25.0, 25.0]

    def test_backoff_doubles(self) -> None:
        """Backoff grows exponentially from the base delay."""
        options = FetchOptions(retry_delay=1.0)
        assert [options.backoff_for(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_attempts_include_first_try(self) -> None:
        """Three retries mean four attempts."""
        assert FetchOptions(max_retries=3).attempts == 4


class TestValidateUrl:
    """Tests for URL validation."""

    def test_accepts_http_and_https(self) -> None:
        """HTTP(S) URLs pass."""
        validate_url("http://example.com")
        validate_url("HTTPS://example.com/x")

    @pytest.mark.parametrize("url", ["ftp://example.com/file", "file:///etc/passwd", "/relative"])
    def test_rejects_other_schemes(self, url: str) -> None:
        """Anything else is rejected before a request is made."""
        with pytest.raises(InvalidUrlError):
            validate_url(url)


class TestFetchHtml:
    """Tests for fetch_html (mocked HTTP)."""

    @respx.mock
    async def test_returns_body(self) -> None:
        """A 200 text/html response returns its body."""
        route = respx.get(URL).mock(
            return_value=httpx.Response(200, text="<html>ok</html>", headers=HTML_HEADERS)
        )

        assert await fetch_html(URL, FAST) == "<html>ok</html>"
        assert route.call_count == 1

    @respx.mock
    async def test_sends_browser_headers(self) -> None:
        """Requests look like a browser navigation."""
        route = respx.get(URL).mock(
            return_value=httpx.Response(200, text="<html></html>", headers=HTML_HEADERS)
        )

        await fetch_html(URL, FAST)

        request = route.calls.last.request
        assert "Mozilla/5.0" in request.headers["user-agent"]
        assert request.headers["accept"].startswith("text/html")

    @respx.mock
    async def test_retries_server_errors(self) -> None:
        """5xx responses are retried until one succeeds."""
        route = respx.get(URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(503),
                httpx.Response(200, text="<html>third</html>", headers=HTML_HEADERS),
            ]
        )

        assert await fetch_html(URL, FAST) == "<html>third</html>"
        assert route.call_count == 3

    @respx.mock
    async def test_client_error_not_retried(self) -> None:
        """A 404 fails immediately."""
        route = respx.get(URL).mock(return_value=httpx.Response(404))

        with pytest.raises(FetchHTTPError) as exc_info:
            await fetch_html(URL, FAST)

        assert route.call_count == 1
        assert exc_info.value.http_status == 404
        assert exc_info.value.kind is FailureKind.NOT_FOUND

    @respx.mock
    async def test_non_html_not_retried(self) -> None:
        """A JSON response is rejected without retrying."""
        route = respx.get(URL).mock(return_value=httpx.Response(200, json={"a": 1}))

        with pytest.raises(NotHtmlError):
            await fetch_html(URL, FAST)
        assert route.call_count == 1

    @respx.mock
    async def test_missing_content_type_rejected(self) -> None:
        """A response without a content type is not HTML."""
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"<html></html>"))

        with pytest.raises(NotHtmlError):
            await fetch_html(URL, FAST)

    @respx.mock
    async def test_timeouts_exhaust_attempts(self) -> None:
        """Repeated timeouts end in FetchTimeoutError."""
        route = respx.get(URL).mock(side_effect=httpx.ConnectTimeout("slow"))

        with pytest.raises(FetchTimeoutError) as exc_info:
            await fetch_html(URL, FAST)

        assert route.call_count == FAST.attempts
        assert exc_info.value.status_code == 504
        assert "timed out after 3 attempts" in exc_info.value.message

    async def test_slow_response_hits_attempt_deadline(self) -> None:
        """The timeout bounds the whole attempt, not each transfer phase."""
        calls = 0

        async def trickle(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await asyncio.sleep(5)
            return httpx.Response(200, html="<html></html>")

        options = FetchOptions(
            max_retries=1, initial_timeout=0.05, max_timeout=0.05, retry_delay=0
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(trickle)) as client:
            with pytest.raises(FetchTimeoutError):
                await fetch_html(URL, options, client)

        assert calls == 2

    @respx.mock
    async def test_final_server_error_is_generic_failure(self) -> None:
        """Exhausted 5xx retries carry the last status in the message."""
        respx.get(URL).mock(return_value=httpx.Response(502))

        with pytest.raises(FetchError) as exc_info:
            await fetch_html(URL, FAST)

        assert not isinstance(exc_info.value, FetchTimeoutError)
        assert not isinstance(exc_info.value, FetchHTTPError)
        assert exc_info.value.detail == "HTTP error! status: 502"
        assert "after 3 attempts" in exc_info.value.message

    @respx.mock
    async def test_network_error_then_success(self) -> None:
        """Transport errors are retried."""
        route = respx.get(URL).mock(
            side_effect=[
                httpx.ConnectError("refused"),
                httpx.Response(200, text="<html>ok</html>", headers=HTML_HEADERS),
            ]
        )

        assert await fetch_html(URL, FAST) == "<html>ok</html>"
        assert route.call_count == 2

    @respx.mock
    async def test_invalid_url_makes_no_request(self) -> None:
        """Bad schemes fail before any network access."""
        with pytest.raises(InvalidUrlError):
            await fetch_html("ftp://example.com/file", FAST)
        assert respx.calls.call_count == 0
