# app/core/config.py

import os
from functools import lru_cache
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Remote product service
    PRODUCT_API_URL: str = "http://localhost:5032"
    PRODUCT_API_TIMEOUT: float = 10.0

    # Durable snapshot of believed stock
    STOCK_STORAGE_DIR: str = "app/cache/stock"
    STOCK_STORAGE_KEY: str = "stock-cache"

    # Stock synchronisation timings
    STOCK_FRESHNESS_SECONDS: int = 3600          # Entries older than this are evicted
    STOCK_POLL_INTERVAL_SECONDS: float = 60.0    # Product detail polling
    STOCK_RECONCILE_DELAY_SECONDS: float = 0.5   # Wait after an order before re-reading
    STOCK_CLEANUP_INTERVAL_SECONDS: float = 300.0
    STOCK_REFRESH_INTERVAL_MINUTES: int = 0      # Scheduled bulk refresh, 0 disables

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def stock_freshness_ms(self) -> int:
        return self.STOCK_FRESHNESS_SECONDS * 1000


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
