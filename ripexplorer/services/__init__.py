"""
RipExplorer services.

Business logic for collection extraction, normalization and trade matching.
"""

from ripexplorer.services.batching import run_in_batches
from ripexplorer.services.cache import CacheKeys, MemoryCache
from ripexplorer.services.comparator import compare_profile_with_extracted
from ripexplorer.services.dedup import RequestCoalescer
from ripexplorer.services.extraction import (
    ExtractionResult,
    Resolution,
    extract_profile_page,
    extract_user_profile,
    resolve_username,
)
from ripexplorer.services.normalizer import clean_rip_fun_data, normalize_data
from ripexplorer.services.set_data import (
    POPULAR_SETS,
    UserSetRow,
    WarmCacheResult,
    build_user_set_summary,
    calculate_completion_percentage,
    fetch_set_totals,
    get_set_data,
    set_total,
    warm_cache,
)
from ripexplorer.services.trade_analyzer import TradeAnalyzer
from ripexplorer.services.user_sync import SyncResult, UserSyncService

__all__ = [
    "POPULAR_SETS",
    "CacheKeys",
    "ExtractionResult",
    "MemoryCache",
    "RequestCoalescer",
    "Resolution",
    "SyncResult",
    "TradeAnalyzer",
    "UserSetRow",
    "UserSyncService",
    "WarmCacheResult",
    "build_user_set_summary",
    "calculate_completion_percentage",
    "clean_rip_fun_data",
    "compare_profile_with_extracted",
    "extract_profile_page",
    "extract_user_profile",
    "fetch_set_totals",
    "get_set_data",
    "normalize_data",
    "resolve_username",
    "run_in_batches",
    "set_total",
    "warm_cache",
]
