"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram Bot API
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_admin_chat_id: str = ""  # error reports; falls back to telegram_chat_id
    telegram_api_url: str = "https://api.telegram.org"
    telegram_timeout: float = 10.0
    telegram_log_capacity: int = 1000

    # Connection monitor
    monitor_enabled: bool = True
    monitor_interval: float = 60.0
    monitor_retry_delay: float = 5.0
    monitor_max_failures: int = 5

    # Schedulers (second-of-minute loops)
    otc_scheduler_enabled: bool = False
    m1_scheduler_enabled: bool = False

    # Technical signals
    default_symbols: list[str] = ["EUR/USD", "GBP/USD", "USD/JPY", "AUD/USD"]
    account_balance: float = 1000.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @property
    def admin_chat_id(self) -> str:
        return self.telegram_admin_chat_id or self.telegram_chat_id


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
