"""
Application configuration using pydantic-settings.
Manages fetch behavior, provider selection, API keys and the export database.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from newsscraper.crawler.fetch import DEFAULT_USER_AGENT


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application settings
    APP_NAME: str = "News Scraper"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Fetch settings
    POPULATE_WORKERS: int = Field(32, ge=1)
    FETCH_TIMEOUT_SECONDS: float = Field(60.0, gt=0)
    CONNECT_TIMEOUT_SECONDS: float = Field(10.0, gt=0)
    USER_AGENT: str = DEFAULT_USER_AGENT
    # Upper bound of result pages per keyword, unbounded when unset
    MAX_PAGES: Optional[int] = Field(None, ge=1)
    DAILY_MAIL_MAX_DELAY_SECONDS: float = Field(4.0, ge=0)
    # Finished searches are dropped from the web service after this many hours
    SEARCH_TASK_MAX_AGE_HOURS: float = Field(24.0, gt=0)

    # Provider settings
    ENABLED_PROVIDERS: str = "ALL"
    GUARDIAN_API_KEY: Optional[str] = None
    ZEIT_API_KEY: Optional[str] = None

    @property
    def enabled_providers(self) -> Optional[list[str]]:
        """Selected provider names, None when all providers are enabled."""
        value = self.ENABLED_PROVIDERS.strip()
        if not value or value.upper() == "ALL":
            return None
        return [name.strip().lower() for name in value.split(",") if name.strip()]

    # Export database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./newsscraper.db"
    DATABASE_ECHO: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
