"""
Raw upstream payload shapes.

rip.fun data reaches us in two shapes:

- V1: server-rendered page data, a list of nodes such as
  [null, {"type": "data", "data": {"profile": {...}}}] (or one such node)
- V2: JSON API responses with a top-level "cards" array
  (owned-cards and set-cards endpoints)

classify_payload() tags a loosely-typed payload with its shape so callers
use one adapter per shape instead of chained .get() probing.
"""

from dataclasses import dataclass
from typing import Any

EMBEDDING_FIELDS = frozenset({"clip_embedding"})


@dataclass(frozen=True)
class RawV1Shape:
    """Page-data node list from a server-rendered profile page."""

    nodes: list[dict[str, Any]]


@dataclass(frozen=True)
class RawV2Shape:
    """JSON API payload with a top-level cards array."""

    payload: dict[str, Any]

    @property
    def cards(self) -> list[Any]:
        return self.payload.get("cards") or []


@dataclass(frozen=True)
class Unrecognized:
    """Anything else. Callers treat it as "no card data"."""

    payload: Any


RawPayload = RawV1Shape | RawV2Shape | Unrecognized


def _data_nodes(payload: Any) -> list[dict[str, Any]]:
    candidates = payload if isinstance(payload, list) else [payload]
    return [
        node
        for node in candidates
        if isinstance(node, dict)
        and isinstance(node.get("data"), dict)
        and ("profile" in node["data"] or "cards" in node["data"])
    ]


def classify_payload(payload: Any) -> RawPayload:
    """Tag a payload with its shape."""
    nodes = _data_nodes(payload)
    if nodes:
        return RawV1Shape(nodes=nodes)
    if isinstance(payload, dict) and isinstance(payload.get("cards"), list):
        return RawV2Shape(payload=payload)
    return Unrecognized(payload=payload)


def profile_from_v1(shape: RawV1Shape) -> dict[str, Any] | None:
    """First profile object found in the node list."""
    for node in shape.nodes:
        profile = node["data"].get("profile")
        if isinstance(profile, dict):
            return profile
    return None


def cards_from_v1(shape: RawV1Shape) -> list[dict[str, Any]]:
    """Owned-card records from the profile, or the node's cards array."""
    profile = profile_from_v1(shape)
    if profile is not None and isinstance(profile.get("digital_cards"), list):
        return [card for card in profile["digital_cards"] if isinstance(card, dict)]

    for node in shape.nodes:
        cards = node["data"].get("cards")
        if isinstance(cards, list):
            return [card for card in cards if isinstance(card, dict)]
    return []


def transform_owned_card(card_data: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize one owned-cards API record.

    The token id becomes the wrapper id, catalog fields get defaults,
    and embedding vectors are dropped.
    """
    raw_card = card_data.get("card")
    card: dict[str, Any] = {}
    if isinstance(raw_card, dict):
        card = {k: v for k, v in raw_card.items() if k not in EMBEDDING_FIELDS}

    formatted_number = card.get("formatted_card_number")
    card_number = card.get("card_number") or (
        str(formatted_number) if formatted_number is not None else ""
    )

    return {
        "id": card_data.get("token_id"),
        "token_id": card_data.get("token_id"),
        "unique_id": card_data.get("unique_id"),
        "is_listed": bool(card_data.get("is_listed")),
        "front_image_url": card_data.get("front_image_url"),
        "owner": card_data.get("owner"),
        "card": {
            "id": card.get("id"),
            "name": card.get("name") or "Unknown Card",
            "card_number": card_number,
            "rarity": card.get("rarity") or "",
            "hp": card.get("hp"),
            "types": card.get("types") or [],
            "abilities": card.get("abilities") or [],
            "attacks": card.get("attacks") or [],
            "weaknesses": card.get("weaknesses") or [],
            "resistances": card.get("resistances") or [],
            "raw_price": card.get("raw_price") or 0,
            "set_id": card.get("set_id") or "",
            "large_image_url": card.get("large_image_url"),
            "small_image_url": card.get("small_image_url"),
            "supertype": card.get("supertype"),
            "subtype": card.get("subtype"),
            "illustrator": card.get("illustrator"),
            "tcgplayer_id": card.get("tcgplayer_id"),
            "is_chase": card.get("is_chase"),
            "is_reverse": card.get("is_reverse"),
            "is_holo": card.get("is_holo"),
            "sku": card.get("sku"),
            "created_at": card.get("created_at"),
            "updated_at": card.get("updated_at"),
        },
        "set": card.get("set") or {"id": card.get("set_id"), "name": "Unknown Set"},
        "listing": card_data.get("listing"),
    }


def cards_from_v2(shape: RawV2Shape) -> list[dict[str, Any]]:
    """Owned-card records from a JSON API payload."""
    return [transform_owned_card(card) for card in shape.cards if isinstance(card, dict)]


def cards_from_payload(payload: Any) -> list[dict[str, Any]]:
    """Owned-card records from any payload; empty for unrecognized shapes."""
    shape = classify_payload(payload)
    if isinstance(shape, RawV1Shape):
        return cards_from_v1(shape)
    if isinstance(shape, RawV2Shape):
        return cards_from_v2(shape)
    return []


def strip_embeddings(value: Any) -> Any:
    """
    Return a copy of `value` with embedding vectors removed at any depth.

    Embeddings are large float arrays attached to catalog cards; they are
    never used downstream and dominate payload size.
    """
    if isinstance(value, dict):
        return {k: strip_embeddings(v) for k, v in value.items() if k not in EMBEDDING_FIELDS}
    if isinstance(value, list):
        return [strip_embeddings(item) for item in value]
    return value
