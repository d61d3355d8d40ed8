from ripexplorer.api.compare import router as compare_router
from ripexplorer.api.extract import router as extract_router
from ripexplorer.api.health import router as health_router
from ripexplorer.api.sets import router as sets_router
from ripexplorer.api.trade import router as trade_router
from ripexplorer.api.users import router as users_router

__all__ = [
    "compare_router",
    "extract_router",
    "health_router",
    "sets_router",
    "trade_router",
    "users_router",
]
