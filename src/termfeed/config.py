# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads all settings from TERMFEED_* environment variables and .env file.

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TERMFEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    db_path: Path = Path.home() / ".termfeed" / "termfeed.db"

    # Feed fetching
    feed_timeout: float = 30.0
    feed_user_agent: str = "termfeed/0.1.0"

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Build async SQLite connection URL."""
        return f"sqlite+aiosqlite:///{self.db_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
