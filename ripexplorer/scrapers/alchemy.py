"""
Alchemy JSON-RPC client for Base mainnet.

Lists wallets that received rip.fun NFTs by paging through
alchemy_getAssetTransfers.
"""

import logging
import re
from collections import Counter
from typing import Any

import httpx

from ripexplorer.config import settings
from ripexplorer.models.failure import FetchError

logger = logging.getLogger(__name__)

ALCHEMY_BASE_URL = "https://base-mainnet.g.alchemy.com/v2"

RIP_CONTRACT_ADDRESS = "0xeBeA10BCd609d3F6fb2Ea104baB638396C037388"
RIP_NFT_CONTRACT_ADDRESS = "0x6292bf78996e189bAd8f9CF3e3Cb31017bb70540"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")

# 1000 transfers per page
PAGE_SIZE = "0x3e8"


class AlchemyClient:
    """Minimal async JSON-RPC client."""

    def __init__(self, api_key: str | None = None, client: httpx.AsyncClient | None = None):
        self.api_key = settings.alchemy_api_key if api_key is None else api_key
        self._client = client

    @property
    def url(self) -> str:
        return f"{ALCHEMY_BASE_URL}/{self.api_key}"

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        if not self.api_key:
            raise FetchError("Alchemy API key not configured")

        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            if self._client:
                response = await self._client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise FetchError(f"Alchemy {method} failed", detail=str(e)) from e
        except ValueError as e:
            raise FetchError(f"Alchemy {method} returned invalid JSON", detail=str(e)) from e

        if body.get("error"):
            raise FetchError(f"Alchemy {method} failed", detail=str(body["error"]))
        return body.get("result")

    async def get_latest_block_number(self) -> int:
        """Current Base block height."""
        result = await self._rpc("eth_blockNumber", [])
        return int(result, 16)

    async def get_nft_recipients(
        self, from_block: int | None = None, to_block: int | None = None
    ) -> Counter[str]:
        """
        Count NFT transfers out of the rip.fun contract per recipient.

        Args:
            from_block: First block to scan (default: genesis)
            to_block: Last block to scan (default: latest)

        Returns:
            Lower-cased recipient address -> transfer count. The zero
            address and malformed addresses are skipped.
        """
        base_params: dict[str, Any] = {
            "fromBlock": hex(from_block or 0),
            "toBlock": hex(to_block) if to_block is not None else "latest",
            "fromAddress": RIP_CONTRACT_ADDRESS,
            "contractAddresses": [RIP_NFT_CONTRACT_ADDRESS],
            "category": ["erc721", "erc1155"],
            "withMetadata": False,
            "maxCount": PAGE_SIZE,
            "excludeZeroValue": True,
        }

        counts: Counter[str] = Counter()
        page_key: str | None = None
        pages = 0
        while True:
            pages += 1
            params = dict(base_params)
            if page_key:
                params["pageKey"] = page_key

            result = await self._rpc("alchemy_getAssetTransfers", [params]) or {}
            transfers = result.get("transfers") or []
            logger.info("Page %d: found %d transfers", pages, len(transfers))

            for transfer in transfers:
                recipient = transfer.get("to")
                if not recipient or recipient == ZERO_ADDRESS:
                    continue
                if not _ADDRESS.match(recipient):
                    logger.warning("Invalid address found: %s", recipient)
                    continue
                counts[recipient.lower()] += 1

            page_key = result.get("pageKey")
            if not page_key:
                break

        logger.info("Found %d unique recipient addresses across %d pages", len(counts), pages)
        return counts

    async def get_unique_buyer_addresses(
        self, from_block: int | None = None, to_block: int | None = None
    ) -> list[str]:
        """Recipient addresses, most transfers first."""
        counts = await self.get_nft_recipients(from_block, to_block)
        return [address for address, _ in counts.most_common()]
