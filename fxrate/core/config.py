from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    REFRESH_INTERVAL_SECONDS, PAIR_CACHE_TTL_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "fxrate"
    debug: bool = False
    version: str = "0.1.0"

    # Bulk sources: scheduled refresh
    refresh_interval_seconds: int = 1800  # 30 minutes
    fetch_timeout_seconds: float = 30.0
    # Upper bound a query waits for the first fetch of a pending source
    cold_start_timeout_seconds: float = 20.0

    # Pair-only sources
    pair_cache_ttl_seconds: int = 1800
    pair_cache_max_entries: int = 500

    # Presentation defaults
    default_amount: int = 100
    default_precision: int = 5

    def init_post_load(self) -> None:
        """Validate ranges that pydantic types alone do not express."""
        if self.refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        if self.fetch_timeout_seconds <= 0 or self.cold_start_timeout_seconds <= 0:
            raise ValueError("fetch timeouts must be positive")
        if self.pair_cache_ttl_seconds <= 0 or self.pair_cache_max_entries <= 0:
            raise ValueError("pair cache ttl and size must be positive")
        if self.default_precision < -1:
            raise ValueError("default_precision must be >= -1")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
