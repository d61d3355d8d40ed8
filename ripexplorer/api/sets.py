"""
Set catalog API endpoints.

Serves cached set catalogs, warms the cache, and reports how complete a
user's sets are.
"""

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session
from ripexplorer.services.extraction import extract_user_profile
from ripexplorer.services.set_data import (
    POPULAR_SETS,
    build_user_set_summary,
    fetch_set_totals,
    get_set_data,
    warm_cache,
)

router = APIRouter(prefix="/sets", tags=["sets"])


class WarmCacheRequest(BaseModel):
    """Sets to pre-load. Defaults to the popular sets."""

    set_ids: list[str] | None = Field(
        default=None,
        examples=[["sv3pt5", "sv8"]],
    )


class WarmCacheResponse(BaseModel):
    """Outcome of a warm-cache run."""

    success_count: int
    fail_count: int
    cached: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class SetCompletionRow(BaseModel):
    set_id: str
    set_name: str
    owned: int
    total: int
    percent: int


class SetCompletionResponse(BaseModel):
    """Per-set completion of a user's collection, most complete first."""

    username: str
    user_id: int | None = None
    sets: list[SetCompletionRow] = Field(default_factory=list)


@router.post("/warm-cache", response_model=WarmCacheResponse)
async def warm_set_cache(
    services: Annotated[Services, Depends(get_services)],
    request: WarmCacheRequest | None = None,
) -> WarmCacheResponse:
    """Fetch and cache every requested set that is not cached yet."""
    set_ids = request.set_ids if request and request.set_ids else list(POPULAR_SETS)
    result = await warm_cache(set_ids, services.cache, services.coalescer, services.http)
    return WarmCacheResponse(
        success_count=result.success_count,
        fail_count=result.fail_count,
        cached=result.cached,
        skipped=result.skipped,
        errors=result.errors,
    )


@router.get("/completion/{username}", response_model=SetCompletionResponse)
async def set_completion(
    username: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
) -> SetCompletionResponse:
    """How much of each set a user owns."""
    result = await extract_user_profile(
        username, session=session, cache=services.cache, client=services.http
    )
    records = (result.extracted_data.get("profile") or {}).get("digital_cards") or []
    cards, _ = services.analyzer.create_card_map(records)

    totals = await fetch_set_totals(
        (card.set_id for card in cards.values()),
        services.cache,
        services.coalescer,
        services.http,
    )
    rows = build_user_set_summary(cards.values(), totals)
    return SetCompletionResponse(
        username=result.username,
        user_id=result.resolved_user_id,
        sets=[SetCompletionRow(**asdict(row)) for row in rows],
    )


@router.get("/{set_id}")
async def get_set(
    set_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    """Set catalog, from cache when possible."""
    return await get_set_data(set_id, services.cache, services.coalescer, services.http)
