"""
Extraction API endpoints.

Pulls a user's collection through the owned-cards API, or scrapes the
structured state embedded in a profile page.
"""

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session
from ripexplorer.models.failure import InvalidInputError
from ripexplorer.scrapers.ripfun import profile_url
from ripexplorer.services.extraction import extract_profile_page, extract_user_profile

router = APIRouter(prefix="/extract", tags=["extract"])


class ExtractRequest(BaseModel):
    """Request model for collection extraction."""

    username: str = Field(
        ...,
        description="rip.fun username or numeric user id",
        examples=["ashketchum", "1234"],
    )
    force_refresh: bool = Field(
        default=False,
        description="Ignore a cached result",
    )


class ExtractResponse(BaseModel):
    """Extracted collection with resolution metadata."""

    username: str
    original_input: str
    resolved_user_id: int | None
    resolution_method: str
    target_url: str
    extracted_data: dict[str, Any]
    extraction_method: str
    api_calls_made: int
    timestamp: str
    from_cache: bool = False


class PageExtractRequest(BaseModel):
    """Request model for profile page scraping. Give a username or a URL."""

    username: str | None = None
    url: str | None = None


class PageExtractResponse(BaseModel):
    """Structured page state, its profile and cards, and the strategy that found them."""

    url: str
    strategy: str
    shape: str
    fragments_skipped: int = 0
    profile: dict[str, Any] | None = None
    cards: list[dict[str, Any]] = Field(default_factory=list)
    data: Any = None


@router.post("", response_model=ExtractResponse)
async def extract(
    request: ExtractRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
) -> ExtractResponse:
    """
    Extract a user's collection.

    Results are cached per input for an hour unless force_refresh is set.
    """
    result = await extract_user_profile(
        request.username,
        session=session,
        cache=services.cache,
        client=services.http,
        force_refresh=request.force_refresh,
    )
    return ExtractResponse(**asdict(result))


@router.post("/page", response_model=PageExtractResponse)
async def extract_page(
    request: PageExtractRequest,
    services: Annotated[Services, Depends(get_services)],
) -> PageExtractResponse:
    """Scrape the structured state embedded in a profile page."""
    if request.url:
        url = request.url.strip()
    elif request.username and request.username.strip():
        url = profile_url(request.username.strip())
    else:
        raise InvalidInputError("Either username or url is required")

    extraction = await extract_profile_page(url, services.http)
    return PageExtractResponse(
        url=url,
        strategy=extraction.strategy.value,
        shape=type(extraction.shape).__name__,
        fragments_skipped=extraction.fragments_skipped,
        profile=extraction.profile,
        cards=extraction.cards,
        data=extraction.data,
    )
