from ripexplorer.parsers.js_literal import (
    JsLiteralError,
    find_matching,
    iter_array_elements,
    parse_js_literal,
    to_iso_timestamp,
)
from ripexplorer.parsers.page_data import (
    ExtractionStrategy,
    PageExtraction,
    extract_page_data,
    find_bootstrap_literal,
)

__all__ = [
    "ExtractionStrategy",
    "JsLiteralError",
    "PageExtraction",
    "extract_page_data",
    "find_bootstrap_literal",
    "find_matching",
    "iter_array_elements",
    "parse_js_literal",
    "to_iso_timestamp",
]
