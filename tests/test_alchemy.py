"""Tests for the Alchemy JSON-RPC client."""

import json

import httpx
import pytest
import respx

from ripexplorer.models.failure import FetchError
from ripexplorer.scrapers.alchemy import ALCHEMY_BASE_URL, ZERO_ADDRESS, AlchemyClient

KEY = "test-key"
RPC_URL = f"{ALCHEMY_BASE_URL}/{KEY}"

WALLET_A = "0x" + "A" * 40
WALLET_B = "0x" + "b" * 40


def _transfers(*recipients: str, page_key: str | None = None) -> httpx.Response:
    result: dict = {"transfers": [{"to": r} for r in recipients]}
    if page_key:
        result["pageKey"] = page_key
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


class TestAlchemyClient:
    """Tests for AlchemyClient (mocked HTTP)."""

    async def test_requires_api_key(self) -> None:
        """Calls fail fast without a key."""
        with pytest.raises(FetchError, match="not configured"):
            await AlchemyClient(api_key="").get_latest_block_number()

    @respx.mock
    async def test_latest_block_number(self) -> None:
        """The hex block height is decoded."""
        respx.post(RPC_URL).mock(
            return_value=httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x10"})
        )

        assert await AlchemyClient(api_key=KEY).get_latest_block_number() == 16

    @respx.mock
    async def test_rpc_error_body(self) -> None:
        """A JSON-RPC error object raises FetchError."""
        respx.post(RPC_URL).mock(
            return_value=httpx.Response(200, json={"error": {"code": -32000, "message": "bad"}})
        )

        with pytest.raises(FetchError):
            await AlchemyClient(api_key=KEY).get_latest_block_number()

    @respx.mock
    async def test_recipients_follow_page_keys(self) -> None:
        """Every page is fetched and recipients are counted in lower case."""
        route = respx.post(RPC_URL).mock(
            side_effect=[
                _transfers(WALLET_A, ZERO_ADDRESS, WALLET_B, page_key="next"),
                _transfers(WALLET_A.lower(), "not-an-address"),
            ]
        )

        counts = await AlchemyClient(api_key=KEY).get_nft_recipients(from_block=100)

        assert counts == {WALLET_A.lower(): 2, WALLET_B: 1}
        assert route.call_count == 2
        first = json.loads(route.calls[0].request.content)
        second = json.loads(route.calls[1].request.content)
        assert first["method"] == "alchemy_getAssetTransfers"
        assert first["params"][0]["fromBlock"] == hex(100)
        assert "pageKey" not in first["params"][0]
        assert second["params"][0]["pageKey"] == "next"

    @respx.mock
    async def test_unique_buyers_most_active_first(self) -> None:
        """Addresses are ordered by transfer count."""
        respx.post(RPC_URL).mock(return_value=_transfers(WALLET_B, WALLET_A, WALLET_A))

        addresses = await AlchemyClient(api_key=KEY).get_unique_buyer_addresses()

        assert addresses == [WALLET_A.lower(), WALLET_B]
