from dataclasses import dataclass, field
from typing import Any

from ripexplorer.models.card import TradeCard


@dataclass
class UserCardCollection:
    """
    One collector's cards, prepared for trade comparison.

    owned_cards is deduplicated (one TradeCard per card key) while
    card_counts keeps the pre-deduplication number of copies/listings.
    missing_cards is relative to whatever universe the caller compared
    against; it is empty until a universe is known.
    """

    username: str
    id: int | None = None
    owned_cards: dict[str, TradeCard] = field(default_factory=dict)
    missing_cards: dict[str, TradeCard] = field(default_factory=dict)
    card_counts: dict[str, int] = field(default_factory=dict)
    profile: dict[str, Any] | None = None

    def owns(self, key: str) -> bool:
        """Check if the collection contains a card key."""
        return key in self.owned_cards

    def needs(self, key: str) -> bool:
        """Check if a card key is missing from the collection."""
        return key in self.missing_cards

    def count(self, key: str) -> int:
        """Copies owned before deduplication."""
        return self.card_counts.get(key, 0)

    def unique_cards(self) -> int:
        """Number of unique card keys owned."""
        return len(self.owned_cards)

    def total_cards(self) -> int:
        """Total copies owned."""
        return sum(self.card_counts.values())
