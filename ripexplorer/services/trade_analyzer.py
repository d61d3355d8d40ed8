"""
Trade analysis between two rip.fun collections.

A comparison builds a card universe from the union of both parties'
owned cards, derives each party's missing cards from it, and partitions
every card key into perfect / receive / give / impossible buckets with
USD valuations and a balance label.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from ripexplorer.config import TRADE_BALANCE_THRESHOLD
from ripexplorer.models.card import TradeCard, card_key, has_active_listing, trade_card_from_record
from ripexplorer.models.collection import UserCardCollection
from ripexplorer.models.trade import (
    AvailableSet,
    TradeAnalysis,
    TradeBalance,
    TradeMatch,
    TradeSummary,
    TradeType,
)

logger = logging.getLogger(__name__)

IMPOSSIBLE_RECOMMENDATION_THRESHOLD = 50
PERFECT_VALUE_RECOMMENDATION_THRESHOLD = 100.0


def _by_value(matches: list[TradeMatch]) -> list[TradeMatch]:
    return sorted(matches, key=lambda m: m.estimated_value, reverse=True)


def _total(matches: Iterable[TradeMatch]) -> float:
    return sum(m.estimated_value for m in matches)


def trade_balance(to_a_value: float, to_b_value: float) -> TradeBalance:
    """Balance label for the two one-way valuations."""
    difference = to_a_value - to_b_value
    if abs(difference) <= TRADE_BALANCE_THRESHOLD:
        return TradeBalance.EVEN
    return TradeBalance.FAVORS_A if difference > 0 else TradeBalance.FAVORS_B


def missing_from(
    owned: dict[str, TradeCard], universe: dict[str, TradeCard]
) -> dict[str, TradeCard]:
    """Universe entries not in `owned`."""
    return {key: card for key, card in universe.items() if key not in owned}


class TradeAnalyzer:
    """
    Stateless trade analysis.

    One instance is shared by every request; nothing is cached between
    calls.
    """

    def create_card_map(
        self, cards: list[dict[str, Any]]
    ) -> tuple[dict[str, TradeCard], dict[str, int]]:
        """
        Deduplicate raw owned-card records by card key.

        A record with an active listing replaces any earlier record for
        the same key, so the last listed record wins. Without a listing,
        the first record seen is kept. Records without any card id are
        skipped.

        Returns:
            Tuple of (card key -> TradeCard, card key -> copies before dedup)
        """
        counts: dict[str, int] = {}
        chosen: dict[str, dict[str, Any]] = {}
        skipped = 0

        for record in cards:
            if not isinstance(record, dict):
                skipped += 1
                continue
            key = card_key(record)
            if key is None:
                skipped += 1
                continue
            counts[key] = counts.get(key, 0) + 1
            if key not in chosen or has_active_listing(record):
                chosen[key] = record

        if skipped:
            logger.warning("Skipped %d card records without an id", skipped)

        card_map = {key: trade_card_from_record(record) for key, record in chosen.items()}
        logger.debug("Created card map: %d input -> %d unique", len(cards), len(card_map))
        return card_map, counts

    def create_user_collection(
        self,
        username: str,
        user_id: int | None,
        profile: dict[str, Any] | None,
        cards: list[dict[str, Any]],
        all_available: dict[str, TradeCard] | None = None,
    ) -> UserCardCollection:
        """
        Build a collection from raw owned-card records.

        Args:
            all_available: Reference universe (e.g. a full set catalog).
                Without it, missing cards stay empty until analyze_trades
                computes them against the other party.
        """
        owned, counts = self.create_card_map(cards)
        missing = missing_from(owned, all_available) if all_available is not None else {}
        return UserCardCollection(
            username=username,
            id=user_id,
            owned_cards=owned,
            missing_cards=missing,
            card_counts=counts,
            profile=profile,
        )

    def card_universe(
        self, user_a: UserCardCollection, user_b: UserCardCollection
    ) -> dict[str, TradeCard]:
        """Union of both parties' owned cards. A's copy wins on overlap."""
        universe = dict(user_b.owned_cards)
        universe.update(user_a.owned_cards)
        return universe

    def analyze_trades(
        self,
        user_a: UserCardCollection,
        user_b: UserCardCollection,
        *,
        recompute_missing: bool = True,
    ) -> TradeAnalysis:
        """
        Partition every card key into trade buckets.

        Args:
            user_a: First party
            user_b: Second party
            recompute_missing: Replace both parties' missing_cards with the
                cards the other party owns (two-party universe). Pass
                False to keep missing sets computed against an external
                catalog.

        Returns:
            TradeAnalysis with each list sorted by value, highest first.
            Keys both parties own (and neither needs) appear in no list.
        """
        if recompute_missing:
            universe = self.card_universe(user_a, user_b)
            user_a.missing_cards = missing_from(user_a.owned_cards, universe)
            user_b.missing_cards = missing_from(user_b.owned_cards, universe)

        perfect: list[TradeMatch] = []
        receive: list[TradeMatch] = []
        give: list[TradeMatch] = []
        impossible: list[TradeMatch] = []

        keys = (
            user_a.owned_cards.keys()
            | user_a.missing_cards.keys()
            | user_b.owned_cards.keys()
            | user_b.missing_cards.keys()
        )

        for key in sorted(keys):
            card = (
                user_a.owned_cards.get(key)
                or user_b.owned_cards.get(key)
                or user_a.missing_cards.get(key)
                or user_b.missing_cards.get(key)
            )
            if card is None:
                continue

            a_has, b_has = user_a.owns(key), user_b.owns(key)
            a_needs, b_needs = user_a.needs(key), user_b.needs(key)

            # Perfect needs each party to own and need the same key, which
            # only happens with missing sets from an external catalog
            if a_has and b_needs and b_has and a_needs:
                trade_type, bucket = TradeType.PERFECT, perfect
            elif a_needs and b_has:
                trade_type, bucket = TradeType.RECEIVE, receive
            elif a_has and b_needs:
                trade_type, bucket = TradeType.GIVE, give
            elif a_needs and b_needs:
                trade_type, bucket = TradeType.IMPOSSIBLE, impossible
            else:
                continue

            bucket.append(
                TradeMatch(
                    card=card,
                    trade_type=trade_type,
                    user_a_has=a_has,
                    user_b_has=b_has,
                    user_a_needs=a_needs,
                    user_b_needs=b_needs,
                    estimated_value=card.market_value or 0.0,
                    user_a_count=user_a.count(key),
                    user_b_count=user_b.count(key),
                )
            )

        to_a_value = _total(receive)
        to_b_value = _total(give)
        summary = TradeSummary(
            total_perfect_trades=len(perfect),
            total_one_way_to_a=len(receive),
            total_one_way_to_b=len(give),
            total_impossible=len(impossible),
            estimated_perfect_trade_value=_total(perfect),
            estimated_one_way_to_a_value=to_a_value,
            estimated_one_way_to_b_value=to_b_value,
            trade_balance=trade_balance(to_a_value, to_b_value),
        )

        logger.info(
            "trade_analysis_complete",
            extra={
                "user_a": user_a.username,
                "user_b": user_b.username,
                "universe_size": len(keys),
                "perfect": summary.total_perfect_trades,
                "to_a": summary.total_one_way_to_a,
                "to_b": summary.total_one_way_to_b,
                "impossible": summary.total_impossible,
                "trade_balance": summary.trade_balance.value,
            },
        )

        return TradeAnalysis(
            perfect_trades=_by_value(perfect),
            user_a_can_receive=_by_value(receive),
            user_a_can_give=_by_value(give),
            mutual_missing=_by_value(impossible),
            summary=summary,
        )

    def get_available_sets(
        self, user_a: UserCardCollection, user_b: UserCardCollection
    ) -> list[AvailableSet]:
        """Sets represented in either collection, sorted by name."""
        counts: dict[str, int] = {}
        names: dict[str, str] = {}
        for card in [*user_a.owned_cards.values(), *user_b.owned_cards.values()]:
            if not card.set_id:
                continue
            counts[card.set_id] = counts.get(card.set_id, 0) + 1
            names.setdefault(card.set_id, card.set_name or card.set_id)

        sets = [AvailableSet(id=set_id, name=names[set_id], count=n) for set_id, n in counts.items()]
        return sorted(sets, key=lambda s: s.name.casefold())

    def filter_by_set(self, analysis: TradeAnalysis, set_id: str | None) -> TradeAnalysis:
        """
        Restrict an analysis to one set.

        Counts and values are recomputed for the filtered lists. The
        balance label is reset to EVEN rather than recomputed.
        """
        if not set_id or set_id == "all":
            return analysis

        def in_set(matches: list[TradeMatch]) -> list[TradeMatch]:
            return [m for m in matches if m.card.set_id == set_id]

        perfect = in_set(analysis.perfect_trades)
        receive = in_set(analysis.user_a_can_receive)
        give = in_set(analysis.user_a_can_give)
        impossible = in_set(analysis.mutual_missing)

        summary = replace(
            analysis.summary,
            total_perfect_trades=len(perfect),
            total_one_way_to_a=len(receive),
            total_one_way_to_b=len(give),
            total_impossible=len(impossible),
            estimated_perfect_trade_value=_total(perfect),
            estimated_one_way_to_a_value=_total(receive),
            estimated_one_way_to_b_value=_total(give),
            trade_balance=TradeBalance.EVEN,
        )
        return TradeAnalysis(
            perfect_trades=perfect,
            user_a_can_receive=receive,
            user_a_can_give=give,
            mutual_missing=impossible,
            summary=summary,
        )

    def generate_trade_recommendations(
        self,
        analysis: TradeAnalysis,
        user_a: UserCardCollection,
        user_b: UserCardCollection,
    ) -> list[str]:
        """Human-readable suggestions derived from the summary."""
        summary = analysis.summary
        recommendations: list[str] = []

        if summary.total_perfect_trades > 0:
            recommendations.append(
                f"{summary.total_perfect_trades} perfect trades available! "
                "Both users can benefit mutually."
            )
            if summary.estimated_perfect_trade_value > PERFECT_VALUE_RECOMMENDATION_THRESHOLD:
                recommendations.append(
                    "Perfect trades worth approximately "
                    f"${summary.estimated_perfect_trade_value:.2f} combined."
                )

        if summary.total_one_way_to_a > 0:
            recommendations.append(
                f"{user_a.username} can receive {summary.total_one_way_to_a} cards "
                f"from {user_b.username}."
            )
        if summary.total_one_way_to_b > 0:
            recommendations.append(
                f"{user_a.username} can give {summary.total_one_way_to_b} cards "
                f"to {user_b.username}."
            )

        if summary.trade_balance is TradeBalance.FAVORS_A:
            recommendations.append(
                f"Trade balance favors {user_a.username} - "
                "consider offering additional compensation."
            )
        elif summary.trade_balance is TradeBalance.FAVORS_B:
            recommendations.append(
                f"Trade balance favors {user_b.username} - "
                f"{user_a.username} might request additional compensation."
            )
        else:
            recommendations.append("Trade values are well balanced between both users.")

        if summary.total_impossible > IMPOSSIBLE_RECOMMENDATION_THRESHOLD:
            recommendations.append(
                f"{summary.total_impossible} cards both users are missing - "
                "consider finding a third trading partner."
            )

        return recommendations
