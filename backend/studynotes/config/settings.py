"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from studynotes.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    floor = settings.SM2_MIN_EASE_FACTOR
"""

from functools import lru_cache
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Study Notes"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "studynotes"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "studynotes"

    # Create tables on startup (development only, production uses Alembic)
    DB_CREATE_TABLES: bool = False

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for Alembic migrations."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Calendar used for "due today", per-day history buckets and streaks
    REVIEW_TIMEZONE: str = "UTC"

    @property
    def review_tz(self) -> ZoneInfo:
        """Timezone object for REVIEW_TIMEZONE."""
        return ZoneInfo(self.REVIEW_TIMEZONE)

    # SM-2 scheduling
    SM2_INITIAL_EASE_FACTOR: float = 2.5
    SM2_MIN_EASE_FACTOR: float = 1.3
    SM2_LAPSE_EASE_PENALTY: float = 0.2
    # Button -> SM-2 grade (0-5) for Hard, Good, Easy
    SM2_HARD_GRADE: int = 3
    SM2_GOOD_GRADE: int = 4
    SM2_EASY_GRADE: int = 5

    # Statistics
    MASTERY_RECENT_SESSIONS: int = 3

    # Next AI review: score thresholds on the /10 scale and the matching gaps
    AI_REVIEW_SCORE_THRESHOLDS: list[float] = [5.0, 7.0, 9.0]
    AI_REVIEW_INTERVAL_DAYS: list[int] = [1, 3, 7, 14]

    # Persistence outbox for review feedback
    OUTBOX_MAX_ATTEMPTS: int = 3
    OUTBOX_BACKOFF_MIN: float = 0.5
    OUTBOX_BACKOFF_MAX: float = 8.0

    # Review sessions are dropped from memory this long after completion or
    # after the last activity of an abandoned session
    REVIEW_SESSION_TTL_MINUTES: int = 120

    # LLM providers (model-agnostic via LiteLLM)
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    GEMINI_API_KEY: str = ""

    # Text model for question generation and answer evaluation
    # Format: provider/model-name
    TEXT_MODEL: str = "openai/gpt-5-mini"
    AI_REVIEW_GENERATION_MODEL: str = ""
    AI_REVIEW_EVALUATION_MODEL: str = ""

    AI_REVIEW_DEFAULT_QUESTION_COUNT: int = 5
    AI_REVIEW_MAX_QUESTION_COUNT: int = 20
    # Characters of source text sent to the generator
    AI_REVIEW_MAX_SOURCE_CHARS: int = 30000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
