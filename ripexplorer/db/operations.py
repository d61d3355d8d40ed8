"""
Database CRUD operations.

Provides async functions for rip.fun users, sync bookkeeping, reference
profiles and comparison history.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.models.db import ComparisonDB, ProfileDB, RipUserDB, SyncStatusDB

BLOCKCHAIN_SYNC = "blockchain_users"

# --- rip.fun User Operations ---


async def get_user(session: AsyncSession, user_id: int) -> RipUserDB | None:
    """Get a user by rip.fun id."""
    return await session.get(RipUserDB, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> RipUserDB | None:
    """
    Get a user by username, ignoring case.

    Returns None if no user has this username.
    """
    result = await session.execute(
        select(RipUserDB)
        .where(func.lower(RipUserDB.username) == username.strip().lower())
        .order_by(RipUserDB.updated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def upsert_rip_user(session: AsyncSession, data: dict[str, Any]) -> RipUserDB:
    """
    Insert or update a user from a rip.fun user payload.

    Raises:
        ValueError: If the payload has no id or username
    """
    user_id = data.get("id")
    username = data.get("username")
    if not user_id or not username:
        raise ValueError("rip.fun user payload needs both id and username")

    fields = {
        "username": username,
        "smart_wallet_address": data.get("smart_wallet_address") or None,
        "owner_wallet_address": data.get("owner_wallet_address") or None,
        "type": data.get("type") or None,
        "avatar": data.get("avatar") or None,
        "banner": data.get("banner") or None,
    }

    existing = await get_user(session, int(user_id))
    if existing:
        for name, value in fields.items():
            setattr(existing, name, value)
        await session.flush()
        return existing

    user = RipUserDB(id=int(user_id), **fields)
    session.add(user)
    await session.flush()
    return user


async def search_users(session: AsyncSession, query: str, limit: int = 10) -> list[RipUserDB]:
    """Users whose username contains `query`, most recently updated first."""
    pattern = f"%{query.strip().lower()}%"
    result = await session.execute(
        select(RipUserDB)
        .where(func.lower(RipUserDB.username).like(pattern))
        .order_by(RipUserDB.updated_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# --- Sync Status Operations ---


async def get_sync_status(
    session: AsyncSession, sync_type: str = BLOCKCHAIN_SYNC
) -> SyncStatusDB | None:
    """Get the status row for a sync type."""
    result = await session.execute(
        select(SyncStatusDB).where(SyncStatusDB.sync_type == sync_type)
    )
    return result.scalar_one_or_none()


async def upsert_sync_status(
    session: AsyncSession,
    status: str,
    sync_type: str = BLOCKCHAIN_SYNC,
    *,
    last_block_number: int | None = None,
    addresses_processed: int | None = None,
    users_found: int | None = None,
    error_message: str | None = None,
) -> SyncStatusDB:
    """
    Record sync progress.

    Fields left as None keep their stored value, except error_message,
    which is always overwritten so a successful run clears it.
    """
    row = await get_sync_status(session, sync_type)
    if row is None:
        row = SyncStatusDB(sync_type=sync_type, addresses_processed=0, users_found=0)
        session.add(row)

    row.status = status
    row.error_message = error_message
    row.last_sync_at = datetime.now(UTC)
    if last_block_number is not None:
        row.last_block_number = last_block_number
    if addresses_processed is not None:
        row.addresses_processed = addresses_processed
    if users_found is not None:
        row.users_found = users_found

    await session.flush()
    return row


# --- Profile Operations ---


async def create_profile(session: AsyncSession, name: str, **fields: Any) -> ProfileDB:
    """Create a reference profile."""
    profile = ProfileDB(name=name, **fields)
    session.add(profile)
    await session.flush()
    return profile


async def get_profile(session: AsyncSession, profile_id: str) -> ProfileDB | None:
    """Get a reference profile by id."""
    return await session.get(ProfileDB, profile_id)


def profile_to_dict(profile: ProfileDB) -> dict[str, Any]:
    """Reference fields of a profile, for comparison."""
    return {
        "name": profile.name,
        "bio": profile.bio,
        "website": profile.website,
        "twitter": profile.twitter,
        "github": profile.github,
        "linkedin": profile.linkedin,
        "wallet": profile.wallet,
        "email": profile.email,
        "location": profile.location,
        "avatar": profile.avatar,
    }


async def create_comparison(
    session: AsyncSession,
    profile_id: str,
    target_url: str,
    extracted_data: dict[str, Any],
    differences: dict[str, Any],
) -> ComparisonDB:
    """Store the result of comparing a profile against a scraped page."""
    comparison = ComparisonDB(
        profile_id=profile_id,
        target_url=target_url,
        extracted_data=extracted_data,
        differences=differences,
    )
    session.add(comparison)
    await session.flush()
    return comparison
