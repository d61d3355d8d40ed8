"""Tests for command-line jobs."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import respx

from ripexplorer.jobs.sync_users import run_user_sync
from ripexplorer.jobs.warm_cache import run_warm_cache
from ripexplorer.models.failure import FetchError
from ripexplorer.services.set_data import POPULAR_SETS
from ripexplorer.services.user_sync import SyncResult

SERVICE = "http://ripexplorer.test"


class TestRunWarmCache:
    @respx.mock
    async def test_posts_popular_sets(self) -> None:
        """Without set ids the popular sets are requested."""
        route = respx.post(f"{SERVICE}/sets/warm-cache").mock(
            return_value=httpx.Response(
                200, json={"success_count": 2, "fail_count": 0, "errors": []}
            )
        )

        report = await run_warm_cache(service_url=SERVICE)

        assert report["success_count"] == 2
        assert json.loads(route.calls.last.request.content) == {"set_ids": list(POPULAR_SETS)}

    @respx.mock
    async def test_explicit_sets(self) -> None:
        """Explicit set ids are sent as given."""
        route = respx.post(f"{SERVICE}/sets/warm-cache").mock(
            return_value=httpx.Response(200, json={"success_count": 1, "fail_count": 0})
        )

        await run_warm_cache(["sv4"], service_url=SERVICE + "/")

        assert json.loads(route.calls.last.request.content) == {"set_ids": ["sv4"]}

    @respx.mock
    async def test_service_error(self) -> None:
        """A failing service call returns None."""
        respx.post(f"{SERVICE}/sets/warm-cache").mock(return_value=httpx.Response(500))

        assert await run_warm_cache(service_url=SERVICE) is None


class TestRunUserSync:
    async def test_sync_success(self) -> None:
        """A successful run returns its counters."""
        mock_session = AsyncMock()
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)
        expected = SyncResult(
            addresses_processed=3, users_found=2, users_updated=2, last_block_number=99
        )
        service = MagicMock()
        service.sync_users_from_blockchain = AsyncMock(return_value=expected)

        with (
            patch("ripexplorer.jobs.sync_users.init_db", new_callable=AsyncMock),
            patch(
                "ripexplorer.jobs.sync_users.async_session_factory",
                return_value=mock_session,
            ),
            patch("ripexplorer.jobs.sync_users.UserSyncService", return_value=service),
        ):
            result = await run_user_sync(from_block=5)

        assert result == expected
        service.sync_users_from_blockchain.assert_awaited_once_with(mock_session, 5)

    async def test_sync_failure(self) -> None:
        """Known failures are logged and reported as None."""
        mock_session = AsyncMock()
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)
        service = MagicMock()
        service.sync_users_from_blockchain = AsyncMock(
            side_effect=FetchError("Alchemy API key not configured")
        )

        with (
            patch("ripexplorer.jobs.sync_users.init_db", new_callable=AsyncMock),
            patch(
                "ripexplorer.jobs.sync_users.async_session_factory",
                return_value=mock_session,
            ),
            patch("ripexplorer.jobs.sync_users.UserSyncService", return_value=service),
        ):
            assert await run_user_sync() is None
