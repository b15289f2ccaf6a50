"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # TwitterAPI.io (Required)
    TWITTERAPIIO_API_KEY: str
    TWITTERAPIIO_BASE_URL: str = "https://api.twitterapi.io"

    # Database (POSTGRES_URL or SQLITE_PATH are read by session.py when unset)
    DATABASE_URL: Optional[str] = None

    # Application Settings
    LOG_LEVEL: str = "INFO"

    # Batch limits
    MAX_PROFILES_PER_RUN: int = 100
    DISCOVERY_FOLLOWER_SAMPLE: int = 50
    DISCOVERY_MENTION_SAMPLE: int = 0
    CIRCLE_FOLLOWER_SAMPLE: int = 100
    MENTION_SEARCH_LIMIT: int = 50
    GLOBAL_CIRCLE_MAX_SIZE: int = 2000
    COMPETITORS_PER_PROJECT: int = 5

    # Rate limiting (seconds between iterations)
    DELAY_BETWEEN_PROFILES: float = 2.0
    DELAY_BETWEEN_PROJECTS: float = 3.0

    # Timeouts
    API_TIMEOUT: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
