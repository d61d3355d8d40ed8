from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "RipExplorer"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/ripexplorer"

    ripfun_base_url: str = "https://www.rip.fun"

    alchemy_api_key: str = ""

    # Where the warm-cache job reaches the running service
    service_url: str = "http://localhost:8000"

    # Fetcher defaults (seconds)
    fetch_max_retries: int = 3
    fetch_initial_timeout: float = 15.0
    fetch_max_timeout: float = 45.0
    fetch_retry_delay: float = 1.0

    # TTL for rip:extract:* entries (seconds)
    extraction_cache_ttl: int = 3600


settings = Settings()


# =============================================================================
# FETCH LIMITS
# =============================================================================

# Added to the per-attempt timeout on every retry, capped at fetch_max_timeout
TIMEOUT_INCREMENT = 5.0


# =============================================================================
# TRADE ANALYSIS
# =============================================================================

# One-way value difference (USD) above which a trade is no longer "even"
TRADE_BALANCE_THRESHOLD = 50.0


# =============================================================================
# BATCHING
# =============================================================================

WARM_CACHE_BATCH_SIZE = 3
WARM_CACHE_BATCH_DELAY = 2.0

USER_SYNC_BATCH_SIZE = 10
USER_SYNC_BATCH_DELAY = 1.0
