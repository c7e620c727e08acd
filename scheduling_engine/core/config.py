"""
Application configuration using Pydantic Settings.

Values come from environment variables (or a local .env file). Per-user
workday preferences stored in the database override the workday defaults here.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./scheduling.db"

    # ===========================================
    # Clock
    # ===========================================
    # IANA timezone used to derive the user's local "today" and "now"
    DEFAULT_TIMEZONE: str = "UTC"

    # ===========================================
    # Workday defaults (HH:MM, local time)
    # ===========================================
    WORKDAY_START: str = "09:00"
    WORKDAY_END: str = "17:00"
    LUNCH_START: str = "12:00"
    LUNCH_END: str = "13:00"
    ALLOW_WEEKENDS: bool = False
    WEEKDAY_MAX_MINUTES: Optional[int] = None
    WEEKEND_MAX_MINUTES: Optional[int] = None

    # ===========================================
    # Reschedule workflow
    # ===========================================
    # How many days after today a reschedule proposal may land on
    RESCHEDULE_SEARCH_DAYS: int = 3
    OVERDUE_CHECK_INTERVAL_MINUTES: int = 30

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def is_test(self) -> bool:
        """Check if running under the test environment."""
        return self.ENVIRONMENT == "test"

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
