from ripexplorer.models.card import TradeCard, card_key, trade_card_from_record
from ripexplorer.models.collection import UserCardCollection
from ripexplorer.models.failure import (
    ExtractionError,
    FailureDetail,
    FailureKind,
    FetchError,
    FetchHTTPError,
    FetchTimeoutError,
    InvalidInputError,
    InvalidUrlError,
    KnownError,
    NotHtmlError,
    UserNotFoundError,
)
from ripexplorer.models.raw import (
    RawV1Shape,
    RawV2Shape,
    Unrecognized,
    cards_from_payload,
    classify_payload,
)
from ripexplorer.models.trade import (
    AvailableSet,
    TradeAnalysis,
    TradeBalance,
    TradeMatch,
    TradeSummary,
    TradeType,
)

__all__ = [
    "AvailableSet",
    "ExtractionError",
    "FailureDetail",
    "FailureKind",
    "FetchError",
    "FetchHTTPError",
    "FetchTimeoutError",
    "InvalidInputError",
    "InvalidUrlError",
    "KnownError",
    "NotHtmlError",
    "RawV1Shape",
    "RawV2Shape",
    "TradeAnalysis",
    "TradeBalance",
    "TradeCard",
    "TradeMatch",
    "TradeSummary",
    "TradeType",
    "Unrecognized",
    "UserCardCollection",
    "UserNotFoundError",
    "card_key",
    "cards_from_payload",
    "classify_payload",
    "trade_card_from_record",
]
