"""
Trade comparison API endpoints.

Extracts two collections concurrently and partitions their cards into
trade opportunities.
"""

import asyncio
import logging
import math
from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session_factory
from ripexplorer.models.collection import UserCardCollection
from ripexplorer.models.failure import InvalidInputError
from ripexplorer.models.trade import TradeAnalysis, TradeBalance, TradeMatch, TradeType
from ripexplorer.services.extraction import ExtractionResult, extract_user_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trade-compare", tags=["trade"])

SessionFactory = async_sessionmaker[AsyncSession]


class TradeCompareRequest(BaseModel):
    """Request model for a two-user comparison."""

    user_a: str = Field(..., min_length=1, description="Username or user id of party A")
    user_b: str = Field(..., min_length=1, description="Username or user id of party B")


class TradeUser(BaseModel):
    """One party of a comparison."""

    username: str
    id: int | None = None
    unique_cards: int = 0
    total_cards: int = 0


class TradeMatchResponse(BaseModel):
    """One classified card key."""

    card: dict[str, Any]
    trade_type: TradeType
    user_a_has: bool
    user_b_has: bool
    user_a_needs: bool
    user_b_needs: bool
    estimated_value: float = 0.0
    user_a_count: int = 0
    user_b_count: int = 0


class TradeSummaryResponse(BaseModel):
    """Counts and valuations of an analysis."""

    total_perfect_trades: int = 0
    total_one_way_to_a: int = 0
    total_one_way_to_b: int = 0
    total_impossible: int = 0
    estimated_perfect_trade_value: float = 0.0
    estimated_one_way_to_a_value: float = 0.0
    estimated_one_way_to_b_value: float = 0.0
    trade_balance: TradeBalance = TradeBalance.EVEN


class TradeAnalysisResponse(BaseModel):
    """The four partitions plus summary."""

    perfect_trades: list[TradeMatchResponse] = Field(default_factory=list)
    user_a_can_receive: list[TradeMatchResponse] = Field(default_factory=list)
    user_a_can_give: list[TradeMatchResponse] = Field(default_factory=list)
    mutual_missing: list[TradeMatchResponse] = Field(default_factory=list)
    summary: TradeSummaryResponse


class AvailableSetResponse(BaseModel):
    id: str
    name: str
    count: int


class TradeCompareResponse(BaseModel):
    """Full comparison result."""

    user_a: TradeUser
    user_b: TradeUser
    trade_analysis: TradeAnalysisResponse
    available_sets: list[AvailableSetResponse] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class PaginatedTradesResponse(BaseModel):
    """One page of perfect, receive and give trades, in that order."""

    trades: list[TradeMatchResponse] = Field(default_factory=list)
    summary: TradeSummaryResponse
    set_filter: str
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_more: bool


def _match(match: TradeMatch) -> TradeMatchResponse:
    return TradeMatchResponse(**asdict(match))


def _analysis(analysis: TradeAnalysis) -> TradeAnalysisResponse:
    return TradeAnalysisResponse(
        perfect_trades=[_match(m) for m in analysis.perfect_trades],
        user_a_can_receive=[_match(m) for m in analysis.user_a_can_receive],
        user_a_can_give=[_match(m) for m in analysis.user_a_can_give],
        mutual_missing=[_match(m) for m in analysis.mutual_missing],
        summary=TradeSummaryResponse(**asdict(analysis.summary)),
    )


def _user(collection: UserCardCollection) -> TradeUser:
    return TradeUser(
        username=collection.username,
        id=collection.id,
        unique_cards=collection.unique_cards(),
        total_cards=collection.total_cards(),
    )


def _to_collection(services: Services, result: ExtractionResult) -> UserCardCollection:
    profile = result.extracted_data.get("profile") or {}
    return services.analyzer.create_user_collection(
        result.username,
        result.resolved_user_id,
        profile,
        profile.get("digital_cards") or [],
    )


async def _extract(
    user_input: str, sessions: SessionFactory, services: Services
) -> ExtractionResult:
    async with sessions() as session:
        return await extract_user_profile(
            user_input, session=session, cache=services.cache, client=services.http
        )


async def _analyze(
    user_a: str,
    user_b: str,
    sessions: SessionFactory,
    services: Services,
) -> tuple[TradeAnalysis, UserCardCollection, UserCardCollection]:
    user_a, user_b = user_a.strip(), user_b.strip()
    if not user_a or not user_b:
        raise InvalidInputError("Both user_a and user_b are required")
    if user_a == user_b:
        raise InvalidInputError("Cannot compare user with themselves")

    logger.info("Starting trade analysis between %r and %r", user_a, user_b)
    result_a, result_b = await asyncio.gather(
        _extract(user_a, sessions, services),
        _extract(user_b, sessions, services),
    )

    collection_a = _to_collection(services, result_a)
    collection_b = _to_collection(services, result_b)
    analysis = services.analyzer.analyze_trades(collection_a, collection_b)
    return analysis, collection_a, collection_b


@router.post("", response_model=TradeCompareResponse)
async def compare_trades(
    request: TradeCompareRequest,
    sessions: Annotated[SessionFactory, Depends(get_session_factory)],
    services: Annotated[Services, Depends(get_services)],
) -> TradeCompareResponse:
    """
    Compare two users' collections.

    Returns every partition, the sets either user owns cards from, and
    plain-text recommendations.
    """
    analysis, collection_a, collection_b = await _analyze(
        request.user_a, request.user_b, sessions, services
    )
    available_sets = services.analyzer.get_available_sets(collection_a, collection_b)
    recommendations = services.analyzer.generate_trade_recommendations(
        analysis, collection_a, collection_b
    )

    return TradeCompareResponse(
        user_a=_user(collection_a),
        user_b=_user(collection_b),
        trade_analysis=_analysis(analysis),
        available_sets=[AvailableSetResponse(**asdict(s)) for s in available_sets],
        recommendations=recommendations,
    )


@router.get("", response_model=PaginatedTradesResponse)
async def list_trades(
    sessions: Annotated[SessionFactory, Depends(get_session_factory)],
    services: Annotated[Services, Depends(get_services)],
    user_a: Annotated[str, Query(min_length=1)],
    user_b: Annotated[str, Query(min_length=1)],
    set_id: str = "all",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> PaginatedTradesResponse:
    """
    Page through a comparison's tradeable cards.

    Perfect, receive and give lists are concatenated in that order;
    mutually missing cards are not tradeable and are left out.
    """
    analysis, _, _ = await _analyze(user_a, user_b, sessions, services)
    analysis = services.analyzer.filter_by_set(analysis, set_id)

    all_trades = [
        *analysis.perfect_trades,
        *analysis.user_a_can_receive,
        *analysis.user_a_can_give,
    ]
    start = (page - 1) * limit
    end = start + limit

    return PaginatedTradesResponse(
        trades=[_match(m) for m in all_trades[start:end]],
        summary=TradeSummaryResponse(**asdict(analysis.summary)),
        set_filter=set_id or "all",
        page=page,
        limit=limit,
        total_items=len(all_trades),
        total_pages=math.ceil(len(all_trades) / limit),
        has_more=end < len(all_trades),
    )
