"""
Profile comparison API endpoint.

Scrapes a page, normalizes what it embeds, and checks a stored
reference profile against it. Every comparison is recorded.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session
from ripexplorer.db.operations import create_comparison, get_profile, profile_to_dict
from ripexplorer.models.failure import FailureKind, KnownError
from ripexplorer.models.raw import RawV1Shape, profile_from_v1
from ripexplorer.services.comparator import compare_profile_with_extracted
from ripexplorer.services.extraction import extract_profile_page
from ripexplorer.services.normalizer import normalize_data

router = APIRouter(prefix="/compare", tags=["compare"])


class CompareRequest(BaseModel):
    """Request model for a profile comparison."""

    profile_id: str = Field(..., min_length=1)
    target_url: str = Field(..., min_length=1, examples=["https://www.rip.fun/profile/ash"])


class CompareResponse(BaseModel):
    """Field classification plus the data it was computed from."""

    comparison_id: int
    comparison: dict[str, dict[str, Any]]
    extracted_data: dict[str, Any]


@router.post("", response_model=CompareResponse)
async def compare(
    request: CompareRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
) -> CompareResponse:
    """
    Compare a reference profile with a scraped page.

    Returns 404 for an unknown profile id.
    """
    profile = await get_profile(session, request.profile_id)
    if profile is None:
        raise KnownError(
            kind=FailureKind.NOT_FOUND,
            message="Profile not found",
            detail=request.profile_id,
            status_code=404,
        )

    extraction = await extract_profile_page(request.target_url.strip(), services.http)

    shape = extraction.shape
    data = extraction.data
    if isinstance(shape, RawV1Shape):
        data = profile_from_v1(shape) or data

    normalized = normalize_data(data)
    if not isinstance(normalized, dict):
        normalized = {"data": normalized}

    result = compare_profile_with_extracted(profile_to_dict(profile), normalized)
    comparison = await create_comparison(
        session,
        profile_id=profile.id,
        target_url=request.target_url,
        extracted_data=normalized,
        differences=result,
    )

    return CompareResponse(
        comparison_id=comparison.id,
        comparison=result,
        extracted_data=normalized,
    )
