from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Funds Transfer API"
    database_url: str = "sqlite:///funds_transfer.db"
    log_level: str = "INFO"

    retry_max_attempts: int = 5
    retry_base_delay_ms: int = 20
    retry_max_delay_ms: int = 1000
    retry_jitter: float = 0.25
    request_timeout_s: float = 10.0

    seed_max_balance: int = 10000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
