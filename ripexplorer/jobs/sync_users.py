"""
Job to sync rip.fun users from the blockchain.

Lists wallets that received rip.fun NFTs and records the rip.fun account
behind each one. Resumes from the last synced block.
"""

import argparse
import asyncio
import logging

import httpx

from ripexplorer.db.database import async_session_factory, init_db
from ripexplorer.models.failure import KnownError
from ripexplorer.scrapers.alchemy import AlchemyClient
from ripexplorer.services.user_sync import SyncResult, UserSyncService

logger = logging.getLogger(__name__)


async def run_user_sync(from_block: int | None = None) -> SyncResult | None:
    """
    Run one sync pass.

    Returns:
        The sync counters, or None if the run failed (the failure is
        recorded on the sync status row)
    """
    await init_db()

    async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as client:
        service = UserSyncService(AlchemyClient(client=client), client)
        async with async_session_factory() as session:
            try:
                result = await service.sync_users_from_blockchain(session, from_block)
            except KnownError as e:
                logger.error("User sync failed: %s", e.message)
                return None

    logger.info(
        "Sync complete: %d addresses, %d users found, %d updated",
        result.addresses_processed,
        result.users_found,
        result.users_updated,
    )
    return result


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Sync rip.fun users from the blockchain")
    parser.add_argument(
        "--from-block",
        type=int,
        default=None,
        help="First block to scan (default: resume from the last sync)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    result = asyncio.run(run_user_sync(args.from_block))
    if result is None:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
