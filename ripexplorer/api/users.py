"""
User API endpoints.

Username resolution, search over synced users, and the blockchain user
sync.
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session, get_session_factory
from ripexplorer.db.operations import BLOCKCHAIN_SYNC, get_sync_status, search_users
from ripexplorer.models.failure import FailureKind, KnownError, UserNotFoundError
from ripexplorer.services.cache import CacheKeys
from ripexplorer.services.extraction import resolve_username
from ripexplorer.services.user_sync import UserSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

SEARCH_CACHE_TTL = 300


class ResolveResponse(BaseModel):
    """A username mapped to a rip.fun user id."""

    username: str
    user_id: int
    method: str


class UserSummary(BaseModel):
    id: int
    username: str
    avatar: str | None = None
    type: str | None = None


class SearchResponse(BaseModel):
    """Synced users whose username contains the query."""

    query: str
    results: list[UserSummary] = Field(default_factory=list)
    count: int = 0


class SyncRequest(BaseModel):
    """Optional starting block for a sync run."""

    from_block: int | None = Field(default=None, ge=0)


class SyncStartedResponse(BaseModel):
    message: str
    status: str
    from_block: int | None = None


class SyncStatusResponse(BaseModel):
    """State of the last sync run."""

    sync_type: str
    status: str
    last_sync_at: datetime | None = None
    last_block_number: int | None = None
    addresses_processed: int = 0
    users_found: int = 0
    error_message: str | None = None


@router.get("/resolve/{username}", response_model=ResolveResponse)
async def resolve(
    username: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
) -> ResolveResponse:
    """Resolve a username through the users table, then the profile page."""
    resolution = await resolve_username(username.strip(), session, services.http)
    if resolution.user_id is None:
        raise UserNotFoundError(
            username,
            detail=f"No user found with username: {username}. "
            "Try running a sync to update the database.",
        )
    return ResolveResponse(
        username=resolution.username,
        user_id=resolution.user_id,
        method=resolution.method,
    )


@router.get("/search", response_model=SearchResponse)
async def search(
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
    q: Annotated[str, Query(min_length=2)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> SearchResponse:
    """Search synced users by username substring."""
    query = q.strip()
    cache_key = f"{CacheKeys.user_search(query)}:{limit}"
    cached = await services.cache.get(cache_key)
    if cached is not None:
        return SearchResponse(**cached)

    users = await search_users(session, query, limit)
    response = SearchResponse(
        query=query,
        results=[
            UserSummary(id=u.id, username=u.username, avatar=u.avatar, type=u.type)
            for u in users
        ],
        count=len(users),
    )
    await services.cache.set(cache_key, response.model_dump(mode="json"), ttl=SEARCH_CACHE_TTL)
    return response


async def _run_sync(
    service: UserSyncService,
    sessions: async_sessionmaker[AsyncSession],
    from_block: int | None,
) -> None:
    async with sessions() as session:
        try:
            await service.sync_users_from_blockchain(session, from_block)
        except Exception:
            # Failure is already recorded on the status row
            logger.exception("Background user sync failed")


@router.post(
    "/sync",
    response_model=SyncStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_sync(
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_session)],
    sessions: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    services: Annotated[Services, Depends(get_services)],
    request: SyncRequest | None = None,
) -> SyncStartedResponse:
    """
    Start a blockchain user sync in the background.

    Returns 409 while a sync is running and 503 when no Alchemy key is
    configured.
    """
    if services.alchemy is None:
        raise KnownError(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="User sync is not configured",
            suggestion="Set ALCHEMY_API_KEY to enable blockchain sync.",
            status_code=503,
        )

    current = await get_sync_status(session)
    if current is not None and current.status == "running":
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="Sync already in progress",
            status_code=409,
        )

    from_block = request.from_block if request else None
    service = UserSyncService(services.alchemy, services.http)
    background_tasks.add_task(_run_sync, service, sessions, from_block)

    return SyncStartedResponse(
        message="User sync started",
        status="running",
        from_block=from_block,
    )


@router.get("/sync/status", response_model=SyncStatusResponse)
async def sync_status(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SyncStatusResponse:
    """Status of the most recent sync run."""
    row = await get_sync_status(session)
    if row is None:
        return SyncStatusResponse(sync_type=BLOCKCHAIN_SYNC, status="never_run")
    return SyncStatusResponse(
        sync_type=row.sync_type,
        status=row.status,
        last_sync_at=row.last_sync_at,
        last_block_number=row.last_block_number,
        addresses_processed=row.addresses_processed or 0,
        users_found=row.users_found or 0,
        error_message=row.error_message,
    )
