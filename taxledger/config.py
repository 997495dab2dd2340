"""
Configuration management using Pydantic Settings.
All parameters are loaded from environment variables with sensible defaults.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_BASE_PATH = Path(os.environ.get(
    "TAXLEDGER_BASE_PATH",
    Path.home() / ".taxledger",
))
ENV_FILE_PATH = APP_BASE_PATH / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TAXLEDGER_",
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    # Ledger formats
    amount_decimal_places: int = Field(default=2)
    ledger_date_format: str = Field(default="%d/%m/%Y")
    reason_date_format: str = Field(default="%d/%m/%y")

    # Change attribution
    change_window_days: int = Field(default=7)

    # Receipt lookups
    max_concurrent_receipt_lookups: int = Field(default=4)

    @property
    def amount_scale(self) -> int:
        """Factor that converts a currency unit into ledger minor units."""
        return 10 ** self.amount_decimal_places


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
