"""
Structured-data extraction from server-rendered rip.fun pages.

Profile pages ship their application state inside a bootstrap <script>
as a JavaScript literal. The layout is undocumented and changes without
notice, so extraction tries several strategies in order:

1. Bootstrap literal: locate the framework start-up call and carve out
   its `data` array, bounded by the sibling `form` key.
2. Literal parsing: strip non-JSON constructs and try json.loads, then
   fall back to the JavaScript literal parser (no code is evaluated).
3. Field regex: pull individual profile fields with per-field patterns
   and carve the card/product arrays element by element.
4. JSON scripts: parse <script type="application/json"> blocks.

Malformed fragments are skipped, never fatal. Embedding vectors are
stripped from whatever a strategy returns.

Note: Web scraping is inherently fragile. Page structure may change.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ripexplorer.models.failure import ExtractionError
from ripexplorer.models.raw import (
    RawPayload,
    RawV1Shape,
    Unrecognized,
    cards_from_payload,
    classify_payload,
    profile_from_v1,
    strip_embeddings,
)
from ripexplorer.parsers.js_literal import (
    MAX_DEPTH,
    JsLiteralError,
    find_matching,
    iter_array_elements,
    nesting_depth,
    parse_js_literal,
)

logger = logging.getLogger(__name__)

# Framework start-up call, e.g. kit.start(app, element, { node_ids: [0, 2], data: [...], form: null })
_BOOTSTRAP_CALL = re.compile(r"\bkit\.start\s*\(|\bstart\s*\(\s*app\s*,")
_DATA_KEY = re.compile(r"[{,\s]data\s*:\s*")
_FORM_SIBLING = re.compile(r",\s*form\s*:")
_DATA_ASSIGNMENT = re.compile(r"\b(?:const|let|var)\s+data\s*=\s*")

_NEW_DATE = re.compile(r"new\s+Date\(\s*(-?\d+(?:\.\d+)?|\"[^\"]*\"|'[^']*')?\s*\)")
_VOID_ZERO = re.compile(r"\bvoid\s+0\b")
_UNDEFINED = re.compile(r"(?<=[:\[,])\s*undefined\b")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

_JSON_SCRIPT = re.compile(
    r"<script(?P<attrs>[^>]*)type=[\"']application/(?:ld\+)?json[\"'](?P<attrs2>[^>]*)>"
    r"(?P<body>.*?)</script>",
    re.DOTALL | re.IGNORECASE,
)
_DATA_URL_ATTR = re.compile(r"data-url=[\"']([^\"']*)[\"']")

PROFILE_FIELDS = (
    "username",
    "bio",
    "smart_wallet_address",
    "owner_wallet_address",
    "avatar",
    "banner",
)
PROFILE_ARRAYS = ("digital_cards", "digital_products")

_FIELD_VALUE = (
    r"(?P<value>\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|-?\d+(?:\.\d+)?|null|true|false)"
)


class ExtractionStrategy(str, Enum):
    """Which strategy produced a PageExtraction."""

    BOOTSTRAP_JSON = "bootstrap_json"
    BOOTSTRAP_LITERAL = "bootstrap_literal"
    FIELD_REGEX = "field_regex"
    JSON_SCRIPT = "json_script"


@dataclass
class PageExtraction:
    """Best-effort structured page state."""

    data: Any
    strategy: ExtractionStrategy
    fragments_skipped: int = 0

    @property
    def shape(self) -> RawPayload:
        return classify_payload(self.data)

    @property
    def profile(self) -> dict[str, Any] | None:
        """Profile object of page-data nodes; None for other shapes."""
        shape = self.shape
        return profile_from_v1(shape) if isinstance(shape, RawV1Shape) else None

    @property
    def cards(self) -> list[dict[str, Any]]:
        """Owned-card records, whatever the shape of the page data."""
        return cards_from_payload(self.data)


# =============================================================================
# STRATEGY 1: BOOTSTRAP LITERAL
# =============================================================================


def find_bootstrap_literal(html: str) -> str | None:
    """
    Locate the raw page-data literal passed to the framework start-up call.

    Returns the literal source text (not parsed), or None if the page has
    no recognizable bootstrap script.
    """
    call = _BOOTSTRAP_CALL.search(html)
    if not call:
        return None

    key = _DATA_KEY.search(html, call.end())
    if key and html[key.end() : key.end() + 1] in ("[", "{"):
        value_start = key.end()
        boundary = _FORM_SIBLING.search(html, value_start)
        if boundary:
            candidate = html[value_start : boundary.start()].strip()
            if candidate.endswith(("]", "}")):
                return candidate
        # No sibling key; fall back to bracket matching
        try:
            end = find_matching(html, value_start)
        except JsLiteralError:
            logger.debug("Bootstrap data literal is unbalanced")
            return None
        return html[value_start : end + 1]

    # Shorthand property (`data,`): the array was assigned earlier in the script
    assignments = list(_DATA_ASSIGNMENT.finditer(html, 0, call.start()))
    if not assignments:
        return None
    assignment = assignments[-1]
    if html[assignment.end() : assignment.end() + 1] not in ("[", "{"):
        return None
    try:
        end = find_matching(html, assignment.end())
    except JsLiteralError:
        logger.debug("Assigned data literal is unbalanced")
        return None
    return html[assignment.end() : end + 1]


# =============================================================================
# STRATEGY 2: LITERAL PARSING
# =============================================================================


def _replace_date(match: re.Match[str]) -> str:
    arg = match.group(1)
    if arg is None:
        return "null"
    if arg[0] in "\"'":
        return json.dumps(arg[1:-1])
    try:
        return json.dumps(parse_js_literal(f"new Date({arg})"))
    except (JsLiteralError, OverflowError, ValueError):
        return "null"


def load_json(text: str) -> Any:
    """
    json.loads that also rejects data nested deeper than MAX_DEPTH.

    Raises:
        ValueError: Malformed or too deeply nested JSON
    """
    try:
        data = json.loads(text)
    except RecursionError:
        raise ValueError("JSON nested too deeply to decode") from None
    if nesting_depth(data) > MAX_DEPTH:
        raise ValueError(f"JSON nested deeper than {MAX_DEPTH} levels")
    return data


def clean_js_literal(source: str) -> str:
    """
    Rewrite common non-JSON constructs into JSON.

    Handles Date constructors, `void 0`, bare `undefined` values and
    trailing commas. Unquoted keys are left alone; those need the
    literal parser.
    """
    cleaned = _NEW_DATE.sub(_replace_date, source)
    cleaned = _VOID_ZERO.sub("null", cleaned)
    cleaned = _UNDEFINED.sub("null", cleaned)
    return _TRAILING_COMMA.sub(r"\1", cleaned)


# =============================================================================
# STRATEGY 3: FIELD REGEX + ARRAY CARVING
# =============================================================================


def _profile_region(source: str) -> str:
    """Text starting at the profile object, or the whole source."""
    match = re.search(r"[\"']?profile[\"']?\s*:\s*\{", source)
    return source[match.start() :] if match else source


def extract_field(source: str, field: str) -> Any | None:
    """First scalar value of `field` in `source`, or None."""
    pattern = re.compile(rf"(?:^|[{{,\s])[\"']?{re.escape(field)}[\"']?\s*:\s*{_FIELD_VALUE}")
    match = pattern.search(source)
    if not match:
        return None
    try:
        return parse_js_literal(match.group("value"))
    except JsLiteralError:
        return None


def carve_array(source: str, key: str) -> tuple[list[Any], int]:
    """
    Parse each element of the array stored under `key`, individually.

    Returns:
        Tuple of (parsed elements, number of malformed elements skipped)
    """
    match = re.search(rf"[\"']?{re.escape(key)}[\"']?\s*:\s*\[", source)
    if not match:
        return [], 0

    items: list[Any] = []
    skipped = 0
    for fragment in iter_array_elements(source, match.end() - 1):
        try:
            items.append(parse_js_literal(fragment))
        except (ValueError, OverflowError) as e:
            skipped += 1
            logger.debug("Skipping malformed %s element: %s", key, e)
    return items, skipped


def extract_profile_fields(source: str) -> tuple[dict[str, Any] | None, int]:
    """
    Build a profile from individual field matches and carved arrays.

    Returns:
        Tuple of (page-data node list or None if nothing matched, skipped count)
    """
    region = _profile_region(source)
    profile: dict[str, Any] = {}
    skipped = 0

    for field in PROFILE_FIELDS:
        value = extract_field(region, field)
        if value is not None:
            profile[field] = value

    for key in PROFILE_ARRAYS:
        items, key_skipped = carve_array(region, key)
        skipped += key_skipped
        if items or key_skipped:
            profile[key] = [item for item in items if isinstance(item, dict)]

    if not profile:
        return None, skipped
    return {"type": "data", "data": {"profile": profile}}, skipped


# =============================================================================
# STRATEGY 4: JSON SCRIPT TAGS
# =============================================================================


def extract_json_scripts(html: str) -> tuple[Any | None, int]:
    """
    Parse every JSON script block on the page.

    Blocks carrying a serialized `body` (fetched-response snapshots) are
    unwrapped. The first block whose data has a recognized shape wins;
    otherwise all parsed blocks are returned.

    Returns:
        Tuple of (data or None if no block parsed, skipped count)
    """
    entries: list[dict[str, Any]] = []
    skipped = 0

    for match in _JSON_SCRIPT.finditer(html):
        body = match.group("body").strip()
        if not body:
            continue
        try:
            block = load_json(body)
        except ValueError as e:
            skipped += 1
            logger.debug("Skipping malformed JSON script: %s", e)
            continue

        data = block
        status = None
        if isinstance(block, dict) and isinstance(block.get("body"), str):
            status = block.get("status")
            try:
                data = load_json(block["body"])
            except ValueError as e:
                skipped += 1
                logger.debug("Skipping malformed fetched body: %s", e)
                continue

        attrs = (match.group("attrs") or "") + (match.group("attrs2") or "")
        url_match = _DATA_URL_ATTR.search(attrs)
        entries.append(
            {
                "url": url_match.group(1) if url_match else None,
                "method": "GET",
                "response": {"status": status, "data": data},
            }
        )

    if not entries:
        return None, skipped

    for entry in entries:
        data = entry["response"]["data"]
        if not isinstance(classify_payload(data), Unrecognized):
            return data, skipped
    return entries, skipped


# =============================================================================
# DISPATCH
# =============================================================================


def extract_page_data(html: str) -> PageExtraction:
    """
    Extract embedded application state from a page.

    Args:
        html: Raw page HTML

    Returns:
        PageExtraction with embedding vectors removed

    Raises:
        ExtractionError: If no strategy found any data
    """
    skipped = 0

    literal = find_bootstrap_literal(html)
    if literal is not None:
        try:
            data = load_json(clean_js_literal(literal))
            return PageExtraction(strip_embeddings(data), ExtractionStrategy.BOOTSTRAP_JSON)
        except ValueError as e:
            logger.debug("Bootstrap literal is not usable JSON after cleaning: %s", e)

        try:
            data = parse_js_literal(literal)
            return PageExtraction(strip_embeddings(data), ExtractionStrategy.BOOTSTRAP_LITERAL)
        except (ValueError, OverflowError) as e:
            logger.info("Bootstrap literal unparseable (%s); falling back to field extraction", e)
    else:
        logger.debug("No bootstrap script found")

    node, field_skipped = extract_profile_fields(literal if literal is not None else html)
    skipped += field_skipped
    if node is not None:
        return PageExtraction(strip_embeddings([node]), ExtractionStrategy.FIELD_REGEX, skipped)

    data, script_skipped = extract_json_scripts(html)
    skipped += script_skipped
    if data is not None:
        return PageExtraction(strip_embeddings(data), ExtractionStrategy.JSON_SCRIPT, skipped)

    logger.warning("page_extraction_failed", extra={"fragments_skipped": skipped})
    raise ExtractionError(
        "No structured data found on page",
        detail=f"All extraction strategies failed ({skipped} malformed fragments skipped)",
    )


__all__ = [
    "ExtractionStrategy",
    "PageExtraction",
    "carve_array",
    "clean_js_literal",
    "extract_field",
    "extract_json_scripts",
    "extract_page_data",
    "extract_profile_fields",
    "find_bootstrap_literal",
    "load_json",
]
