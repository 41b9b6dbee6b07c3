"""
Application configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file = ".env",
        env_file_encoding = "utf-8"
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./registry.db", alias="DATABASE_URL")

    # Application
    app_name: str = Field(default="Carbon Credit Registry", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    port: int = Field(default=8000, alias="PORT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Ledger audit sink
    ledger_backend: Literal["database", "memory", "none"] = Field(default="database", alias="LEDGER_BACKEND")
    ledger_chain_id: int = Field(default=0, alias="LEDGER_CHAIN_ID")

    # Registry behaviour
    serial_max_attempts: int = Field(default=5, ge=1, alias="SERIAL_MAX_ATTEMPTS")
    system_user_id: int = Field(default=1, alias="SYSTEM_USER_ID")
    activity_page_size: int = Field(default=100, ge=1, alias="ACTIVITY_PAGE_SIZE")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
