"""
Compare a reference profile against data scraped from a page.

Each reference field is matched against extracted keys whose names look
related (e.g. `smart_wallet_address` for `wallet`), then classified as
matched, different, or missing.
"""

from typing import Any

SIMILARITY_THRESHOLD = 0.8

PROFILE_FIELDS = (
    "name",
    "bio",
    "website",
    "twitter",
    "github",
    "linkedin",
    "wallet",
    "email",
    "location",
    "avatar",
)

# Extracted key-name substrings per reference field
FIELD_KEY_HINTS: dict[str, tuple[str, ...]] = {
    "name": ("name", "title", "displayname"),
    "bio": ("bio", "description", "about", "summary"),
    "website": ("website", "url", "homepage", "site"),
    "twitter": ("twitter", "x.com"),
    "github": ("github",),
    "linkedin": ("linkedin",),
    "wallet": ("wallet", "address", "eth", "crypto"),
    "email": ("email", "mail"),
    "location": ("location", "city", "country", "region"),
    "avatar": ("avatar", "image", "photo", "picture"),
}


def normalize_for_comparison(value: str) -> str:
    """Lower-case alphanumerics only."""
    return "".join(ch for ch in value.lower() if ch.isascii() and ch.isalnum())


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        current = [i]
        for j, ch_b in enumerate(b, start=1):
            cost = 0 if ch_a == ch_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1.0 for identical strings, 0.0 when either is empty."""
    if not a or not b:
        return 0.0
    return 1 - levenshtein(a, b) / max(len(a), len(b))


def is_close_match(profile_value: str, extracted_value: str) -> bool:
    """
    Whether two values refer to the same thing.

    Emails and URLs must match exactly after normalization; other text
    may differ slightly.
    """
    profile_norm = normalize_for_comparison(profile_value)
    extracted_norm = normalize_for_comparison(extracted_value)
    if profile_norm == extracted_norm:
        return True
    if "@" in profile_value and "@" in extracted_value:
        return False
    if profile_value.startswith("http") and extracted_value.startswith("http"):
        return False
    return similarity(profile_norm, extracted_norm) > SIMILARITY_THRESHOLD


def create_field_mappings(extracted: dict[str, Any]) -> dict[str, list[str]]:
    """Candidate extracted keys for every reference field, in key order."""
    mappings: dict[str, list[str]] = {field: [] for field in PROFILE_FIELDS}
    for key in extracted:
        lowered = key.lower()
        for field, hints in FIELD_KEY_HINTS.items():
            if any(hint in lowered for hint in hints):
                mappings[field].append(key)
        if key == "username" and key not in mappings["name"]:
            mappings["name"].append(key)
    return mappings


def find_best_match(
    profile_value: str, candidate_keys: list[str], extracted: dict[str, Any]
) -> str | None:
    """First candidate value close to the reference value."""
    for key in candidate_keys:
        value = extracted.get(key)
        if value is None:
            continue
        text = str(value)
        if is_close_match(profile_value, text):
            return text
    return None


def compare_profile_with_extracted(
    profile: dict[str, Any], extracted: dict[str, Any]
) -> dict[str, dict[str, Any]]:
    """
    Classify every non-empty reference field.

    Args:
        profile: Reference profile fields (see PROFILE_FIELDS)
        extracted: Flat extracted data (normalize_data output)

    Returns:
        {"missing": {...}, "different": {...}, "matched": {...}}; entries in
        "different" map to {"profile": ..., "extracted": ...}
    """
    result: dict[str, dict[str, Any]] = {"missing": {}, "different": {}, "matched": {}}
    mappings = create_field_mappings(extracted)

    for field in PROFILE_FIELDS:
        profile_value = profile.get(field)
        if not profile_value:
            continue
        profile_value = str(profile_value)

        extracted_value = find_best_match(profile_value, mappings[field], extracted)
        if extracted_value is None:
            result["missing"][field] = profile_value
        elif normalize_for_comparison(profile_value) == normalize_for_comparison(extracted_value):
            result["matched"][field] = profile_value
        else:
            result["different"][field] = {
                "profile": profile_value,
                "extracted": extracted_value,
            }
    return result
