"""
Data normalization for extracted page data.

clean_rip_fun_data() removes embedding vectors from the card arrays of a
rip.fun payload. normalize_data() is the general pass used before
comparing or storing extracted data: it can flatten nested objects into
dot-separated keys, drop empty values, deduplicate arrays, canonicalize
values (URLs, emails, dates, social handles) and drop noise keys.

normalize_data() is idempotent: running it on its own output returns an
equal object.
"""

import copy
import json
import re
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from ripexplorer.models.raw import EMBEDDING_FIELDS, strip_embeddings
from ripexplorer.parsers.js_literal import to_iso_timestamp

# Key-name substrings that mark values with no comparison value
USELESS_KEY_FRAGMENTS = (
    "tracking",
    "analytics",
    "session",
    "debug",
    "csrf",
    "nonce",
    "utm_",
    "fbclid",
    "gclid",
    "__",
)

DATE_KEYS = frozenset({"date", "timestamp"})

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URL = re.compile(r"^https?://", re.IGNORECASE)

_SOCIAL_PATTERNS = {
    "twitter": re.compile(r"(?:twitter|x)\.com/@?([A-Za-z0-9_]+)", re.IGNORECASE),
    "x": re.compile(r"(?:twitter|x)\.com/@?([A-Za-z0-9_]+)", re.IGNORECASE),
    "github": re.compile(r"github\.com/([A-Za-z0-9-]+)", re.IGNORECASE),
    "linkedin": re.compile(r"linkedin\.com/in/([A-Za-z0-9_-]+)", re.IGNORECASE),
}


# =============================================================================
# EMBEDDING CLEANUP
# =============================================================================


def _drop_card_embeddings(records: Any) -> None:
    if not isinstance(records, list):
        return
    for record in records:
        card = record.get("card") if isinstance(record, dict) else None
        if isinstance(card, dict):
            for name in EMBEDDING_FIELDS:
                card.pop(name, None)


def _clean_node(node: Any) -> None:
    if not isinstance(node, dict):
        return
    data = node.get("data")
    if isinstance(data, dict):
        profile = data.get("profile")
        if isinstance(profile, dict):
            _drop_card_embeddings(profile.get("digital_cards"))
        _drop_card_embeddings(data.get("cards"))
    _drop_card_embeddings(node.get("cards"))


def clean_rip_fun_data(data: Any) -> Any:
    """
    Copy of a rip.fun payload with card embedding vectors removed.

    Handles a list of page-data nodes and a single node. Both
    data.profile.digital_cards[].card and data.cards[].card are cleaned.
    The input is not modified.
    """
    cleaned = copy.deepcopy(data)
    if isinstance(cleaned, list):
        for node in cleaned:
            _clean_node(node)
    else:
        _clean_node(cleaned)
    return cleaned


# =============================================================================
# VALUE NORMALIZATION
# =============================================================================


def _leaf_key(key: str | None) -> str:
    return key.rsplit(".", 1)[-1].lower() if key else ""


def is_useless_key(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in USELESS_KEY_FRAGMENTS)


def canonical_url(value: str) -> str:
    """Lower-case scheme and host, drop the fragment and any trailing slash."""
    parts = urlsplit(value)
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def social_handle(platform: str, value: str) -> str:
    """Handle from a profile URL or @handle; other values pass through."""
    pattern = _SOCIAL_PATTERNS.get(platform)
    if pattern:
        match = pattern.search(value)
        if match:
            return match.group(1)
    if value.startswith("@"):
        return value.lstrip("@") or value
    return value


def canonical_timestamp(value: str) -> str:
    """ISO timestamp in canonical form, or the value unchanged if unparseable."""
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return value
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return to_iso_timestamp(moment)


def _is_date_key(leaf: str) -> bool:
    return leaf in DATE_KEYS or leaf.endswith(("_at", "_date"))


def normalize_value(key: str | None, value: Any) -> Any:
    """Canonical form of one scalar, chosen by its key and content."""
    if not isinstance(value, str):
        return value

    value = value.strip()
    leaf = _leaf_key(key)

    if leaf in _SOCIAL_PATTERNS:
        value = social_handle(leaf, value)
    if _is_date_key(leaf):
        return canonical_timestamp(value)
    if _URL.match(value):
        return canonical_url(value)
    if _EMAIL.match(value):
        return value.lower()
    return value


# =============================================================================
# STRUCTURAL PASSES
# =============================================================================


def _remove_useless(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _remove_useless(v) for k, v in value.items() if not is_useless_key(k)}
    if isinstance(value, list):
        return [_remove_useless(item) for item in value]
    return value


def _normalize_values(value: Any, key: str | None = None) -> Any:
    if isinstance(value, dict):
        return {k: _normalize_values(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize_values(item, key) for item in value]
    return normalize_value(key, value)


def flatten_dict(value: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested objects into dot-separated keys. Lists stay lists."""
    flat: dict[str, Any] = {}
    for key, item in value.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(item, dict) and item:
            flat.update(flatten_dict(item, full_key))
        else:
            flat[full_key] = _flatten(item)
    return flat


def _flatten(value: Any) -> Any:
    if isinstance(value, dict):
        return flatten_dict(value)
    if isinstance(value, list):
        return [_flatten(item) for item in value]
    return value


def _identity(item: Any) -> Any:
    try:
        hash(item)
    except TypeError:
        return json.dumps(item, sort_keys=True, default=str)
    return (type(item).__name__, item)


def _dedupe(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _dedupe(v) for k, v in value.items()}
    if isinstance(value, list):
        seen: set[Any] = set()
        unique: list[Any] = []
        for item in (_dedupe(item) for item in value):
            identity = _identity(item)
            if identity in seen:
                continue
            seen.add(identity)
            unique.append(item)
        return unique
    return value


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _drop_empty(value: Any) -> Any:
    if isinstance(value, dict):
        pruned = {k: _drop_empty(v) for k, v in value.items()}
        return {k: v for k, v in pruned.items() if not _is_empty(v)}
    if isinstance(value, list):
        pruned_items = [_drop_empty(item) for item in value]
        return [item for item in pruned_items if not _is_empty(item)]
    return value


def normalize_data(
    data: Any,
    *,
    flatten: bool = True,
    drop_empty: bool = True,
    dedupe_arrays: bool = True,
    normalize_values: bool = True,
    remove_useless: bool = False,
) -> Any:
    """
    Normalize loosely-typed extracted data.

    Embedding vectors are always removed. The other passes run in a
    fixed order (noise keys, values, flattening, empties, dedupe) so that
    re-running on the output changes nothing.

    Args:
        data: Extracted object, list, or scalar
        flatten: Collapse nested objects into dot-separated keys
        drop_empty: Remove None, "", [] and {} values
        dedupe_arrays: Keep only the first of equal array elements
        normalize_values: Canonicalize strings (URLs, emails, dates, handles)
        remove_useless: Drop tracking/session/debug-style keys

    Returns:
        A new normalized value; the input is not modified
    """
    result = strip_embeddings(data)
    if remove_useless:
        result = _remove_useless(result)
    if normalize_values:
        result = _normalize_values(result)
    if flatten:
        result = _flatten(result)
    if drop_empty:
        result = _drop_empty(result)
    if dedupe_arrays:
        result = _dedupe(result)
    return result
