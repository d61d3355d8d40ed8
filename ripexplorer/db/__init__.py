from ripexplorer.db.database import get_session, get_session_factory, init_db
from ripexplorer.db.operations import (
    BLOCKCHAIN_SYNC,
    create_comparison,
    create_profile,
    get_profile,
    get_sync_status,
    get_user,
    get_user_by_username,
    profile_to_dict,
    search_users,
    upsert_rip_user,
    upsert_sync_status,
)

__all__ = [
    "BLOCKCHAIN_SYNC",
    "create_comparison",
    "create_profile",
    "get_profile",
    "get_session",
    "get_session_factory",
    "get_sync_status",
    "get_user",
    "get_user_by_username",
    "init_db",
    "profile_to_dict",
    "search_users",
    "upsert_rip_user",
    "upsert_sync_status",
]
