"""
Blockchain-driven user sync.

Wallets that received rip.fun NFTs are listed from Alchemy, each wallet
is looked up on rip.fun, and every account found is upserted into the
users table. Username resolution reads from that table.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.config import USER_SYNC_BATCH_DELAY, USER_SYNC_BATCH_SIZE
from ripexplorer.db.operations import get_sync_status, upsert_rip_user, upsert_sync_status
from ripexplorer.scrapers.alchemy import AlchemyClient
from ripexplorer.scrapers.ripfun import fetch_user_by_address
from ripexplorer.services.batching import run_in_batches

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    addresses_processed: int
    users_found: int
    users_updated: int
    last_block_number: int


class UserSyncService:
    """
    Sync rip.fun users from on-chain NFT recipients.

    Args:
        alchemy: JSON-RPC client for the chain
        client: Optional httpx client for rip.fun lookups
        batch_size: Addresses looked up concurrently
        batch_delay: Seconds between lookup batches
    """

    def __init__(
        self,
        alchemy: AlchemyClient,
        client: httpx.AsyncClient | None = None,
        batch_size: int = USER_SYNC_BATCH_SIZE,
        batch_delay: float = USER_SYNC_BATCH_DELAY,
    ):
        self.alchemy = alchemy
        self.client = client
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def _lookup(self, address: str) -> dict[str, Any] | None:
        return await fetch_user_by_address(address, self.client)

    async def sync_users_from_blockchain(
        self, session: AsyncSession, from_block: int | None = None
    ) -> SyncResult:
        """
        Run one sync pass.

        Starts from `from_block`, else the block recorded by the last
        completed run. The status row is marked running, then completed
        or failed; failures are recorded and re-raised.
        """
        status = await get_sync_status(session)
        start_block = from_block
        if start_block is None and status is not None:
            start_block = status.last_block_number

        await upsert_sync_status(session, "running")
        await session.commit()
        logger.info("Starting user sync from block %s", start_block or 0)

        try:
            latest_block = await self.alchemy.get_latest_block_number()
            addresses = await self.alchemy.get_unique_buyer_addresses(start_block)
            logger.info("Processing %d unique addresses...", len(addresses))

            lookups = await run_in_batches(
                addresses, self._lookup, self.batch_size, self.batch_delay
            )

            users_found = 0
            users_updated = 0
            for address, user_data in zip(addresses, lookups, strict=True):
                if isinstance(user_data, Exception):
                    logger.warning("Error processing address %s: %s", address, user_data)
                    continue
                if not user_data or not user_data.get("id") or not user_data.get("username"):
                    continue
                users_found += 1
                try:
                    await upsert_rip_user(session, user_data)
                except ValueError as e:
                    logger.warning("Unusable user payload for %s: %s", address, e)
                    continue
                users_updated += 1

            await upsert_sync_status(
                session,
                "completed",
                last_block_number=latest_block,
                addresses_processed=len(addresses),
                users_found=users_found,
            )
            await session.commit()
        except Exception as e:
            await session.rollback()
            await upsert_sync_status(session, "failed", error_message=str(e))
            await session.commit()
            logger.error("User sync failed: %s", e)
            raise

        result = SyncResult(
            addresses_processed=len(addresses),
            users_found=users_found,
            users_updated=users_updated,
            last_block_number=latest_block,
        )
        logger.info(
            "user_sync_complete",
            extra={
                "addresses_processed": result.addresses_processed,
                "users_found": result.users_found,
                "last_block_number": result.last_block_number,
            },
        )
        return result
