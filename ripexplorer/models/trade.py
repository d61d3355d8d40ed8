from dataclasses import dataclass, field
from enum import Enum

from ripexplorer.models.card import TradeCard


class TradeType(str, Enum):
    """Classification of a single card in a two-party comparison."""

    PERFECT = "perfect"
    GIVE = "give"  # A has, B needs (A -> B)
    RECEIVE = "receive"  # A needs, B has (B -> A)
    IMPOSSIBLE = "impossible"  # both need, neither has


class TradeBalance(str, Enum):
    """Which party's one-way gains dominate."""

    EVEN = "even"
    FAVORS_A = "favors_a"
    FAVORS_B = "favors_b"


@dataclass(frozen=True)
class TradeMatch:
    """A card key with its classification and both parties' flags."""

    card: TradeCard
    trade_type: TradeType
    user_a_has: bool
    user_b_has: bool
    user_a_needs: bool
    user_b_needs: bool
    estimated_value: float = 0.0
    user_a_count: int = 0
    user_b_count: int = 0


@dataclass
class TradeSummary:
    """Aggregate counts and valuations of a TradeAnalysis."""

    total_perfect_trades: int = 0
    total_one_way_to_a: int = 0
    total_one_way_to_b: int = 0
    total_impossible: int = 0
    estimated_perfect_trade_value: float = 0.0
    estimated_one_way_to_a_value: float = 0.0
    estimated_one_way_to_b_value: float = 0.0
    trade_balance: TradeBalance = TradeBalance.EVEN


@dataclass
class TradeAnalysis:
    """
    Four-way partition of trade opportunities between users A and B.

    Every card key considered lands in at most one list; keys both users
    own (and neither needs) land in none. All lists are sorted by
    estimated value, highest first.
    """

    perfect_trades: list[TradeMatch] = field(default_factory=list)
    user_a_can_receive: list[TradeMatch] = field(default_factory=list)
    user_a_can_give: list[TradeMatch] = field(default_factory=list)
    mutual_missing: list[TradeMatch] = field(default_factory=list)
    summary: TradeSummary = field(default_factory=TradeSummary)

    def all_matches(self) -> list[TradeMatch]:
        """Every match across the four partitions."""
        return [
            *self.perfect_trades,
            *self.user_a_can_receive,
            *self.user_a_can_give,
            *self.mutual_missing,
        ]


@dataclass(frozen=True)
class AvailableSet:
    """A set represented in either collection, with its owned-card count."""

    id: str
    name: str
    count: int
