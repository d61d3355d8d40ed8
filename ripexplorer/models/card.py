from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class TradeCard:
    """
    A card as seen by the trade analyzer.

    Attributes:
        id: rip.fun catalog card id (nested card.id, else wrapper id)
        name: Display name
        set_id: Set identifier (e.g., "sv3pt5")
        card_number: Number within the set
        rarity: Rarity label as reported upstream
        market_value: USD value, active listing price preferred over catalog price
        set_name: Human-readable set name, when known
    """

    id: str
    name: str
    set_id: str = ""
    card_number: str = ""
    rarity: str = ""
    market_value: float = 0.0
    image_url: str | None = None
    small_image_url: str | None = None
    type: str | None = None
    hp: int | None = None
    set_name: str | None = None
    is_reverse: bool = False
    is_holo: bool = False
    is_first_edition: bool = False
    is_shadowless: bool = False
    is_unlimited: bool = False
    is_promo: bool = False


def record_card_id(record: dict[str, Any]) -> str | None:
    """
    Identifier of a raw owned-card record.

    Prefers the nested catalog card id, falls back to the wrapper id.
    The fallback can key two records differently depending on which id
    happens to be populated upstream.
    """
    inner = record.get("card")
    card_id = inner.get("id") if isinstance(inner, dict) else None
    if card_id in (None, ""):
        card_id = record.get("id")
    if card_id in (None, ""):
        return None
    return str(card_id)


def card_key(record: dict[str, Any]) -> str | None:
    """Stable comparison key (`card_<id>`), or None if the record has no id."""
    card_id = record_card_id(record)
    return f"card_{card_id}" if card_id is not None else None


def has_active_listing(record: dict[str, Any]) -> bool:
    """True if the record carries a marketplace listing."""
    return bool(record.get("listing"))


def to_float(value: Any) -> float:
    """Parse a loosely-typed price. Absent or malformed values become 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def market_value(record: dict[str, Any]) -> float:
    """
    USD value of a raw record.

    Active listing price wins; otherwise the catalog raw price, then any
    market_value already on the card.
    """
    inner = record.get("card") if isinstance(record.get("card"), dict) else {}
    listing = record.get("listing") if isinstance(record.get("listing"), dict) else {}

    for candidate in (
        listing.get("usd_price"),
        inner.get("raw_price"),
        inner.get("market_value"),
        record.get("market_value"),
    ):
        value = to_float(candidate)
        if value:
            return value
    return 0.0


def _first(*values: Any) -> Any:
    """First truthy value, mirroring loose `a or b or c` fallback chains."""
    for value in values:
        if value:
            return value
    return None


def _to_int(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def trade_card_from_record(record: dict[str, Any]) -> TradeCard:
    """
    Build a TradeCard from a raw owned-card record.

    Handles both the nested shape ({"card": {...}, "set": {...}}) and flat
    records. Never raises for missing sub-fields.
    """
    inner = record.get("card") if isinstance(record.get("card"), dict) else record
    set_info = _first(inner.get("set"), record.get("set")) or {}
    if not isinstance(set_info, dict):
        set_info = {}

    image = _first(
        inner.get("small_image_url"),
        inner.get("image_url"),
        record.get("front_image_url"),
        record.get("image_url"),
    )

    return TradeCard(
        id=str(record_card_id(record) or ""),
        name=str(_first(inner.get("name"), record.get("name")) or "Unknown Card"),
        set_id=str(_first(set_info.get("id"), inner.get("set_id"), record.get("set_id")) or ""),
        card_number=str(_first(inner.get("card_number"), record.get("card_number")) or ""),
        rarity=str(_first(inner.get("rarity"), record.get("rarity")) or ""),
        market_value=market_value(record),
        image_url=image,
        small_image_url=image,
        type=_first(inner.get("type"), record.get("type")),
        hp=_to_int(_first(inner.get("hp"), record.get("hp"))),
        set_name=_first(set_info.get("name"), inner.get("set_name"), record.get("set_name")),
        is_reverse=bool(_first(inner.get("is_reverse"), record.get("is_reverse"))),
        is_holo=bool(_first(inner.get("is_holo"), record.get("is_holo"))),
        is_first_edition=bool(_first(inner.get("is_first_edition"), record.get("is_first_edition"))),
        is_shadowless=bool(_first(inner.get("is_shadowless"), record.get("is_shadowless"))),
        is_unlimited=bool(_first(inner.get("is_unlimited"), record.get("is_unlimited"))),
        is_promo=bool(_first(inner.get("is_promo"), record.get("is_promo"))),
    )
