"""
Trust Engine - Configuration

Single source of truth for runtime settings. Loads from environment
variables with fallback to the file named by ENV_FILE (default .env.dev).

REQUIRED for database access:
  DATABASE_URL             – Postgres connection string (pooler recommended)

OPTIONAL integrations:
  OPENAI_API_KEY           – Enables the guest safety classifier and the
                             insight summarizer. Without it the classifier
                             fails closed (every guest post is rejected).
  REVALIDATE_WEBHOOK_URL   – Receives path invalidation pings after a
                             successful write. Skipped when unset.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Unified application settings for the API and pipeline.

    Supports both canonical uppercase and lowercase keys.
    """

    model_config = SettingsConfigDict(
        env_file=os.environ.get("ENV_FILE", ".env.dev"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # =========================================================================
    # DATABASE
    # =========================================================================

    DATABASE_URL: str = Field(
        default="",
        description="Postgres connection string",
    )
    DB_POOL_MIN_SIZE: int = Field(default=1, ge=0)
    DB_POOL_MAX_SIZE: int = Field(default=10, ge=1)

    # =========================================================================
    # ENVIRONMENT CONTROL
    # =========================================================================

    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # =========================================================================
    # AI INTEGRATIONS (safety classifier, insight summarizer)
    # =========================================================================

    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_BASE_URL: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    SAFETY_MODEL: str = Field(default="gpt-4o-mini", description="Guest moderation model")
    INSIGHT_MODEL: str = Field(default="gpt-4o", description="Expert insight model")
    AI_TIMEOUT_SECONDS: float = Field(default=20.0, gt=0)

    # =========================================================================
    # FAN-OUT & INVALIDATION
    # =========================================================================

    NOTIFICATION_CONCURRENCY: int = Field(
        default=8,
        ge=1,
        description="Maximum notifications dispatched at once",
    )
    NOTIFICATION_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0,
        description="Per-recipient delivery timeout",
    )
    FANOUT_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound on a whole fan-out before the request returns",
    )
    REVALIDATE_WEBHOOK_URL: str | None = Field(
        default=None,
        description="Webhook that refreshes cached pages after a write",
    )
    REVALIDATE_WEBHOOK_SECRET: str | None = Field(default=None)

    # =========================================================================
    # SERVER CONFIGURATION
    # =========================================================================

    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8888, description="Server port")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL.strip()


# =========================================================================
# SINGLETON & FACTORY
# =========================================================================


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def reset_settings() -> None:
    """Clear the cached settings (for testing)."""
    get_settings.cache_clear()


# =========================================================================
# LOGGING CONFIGURATION
# =========================================================================


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure application logging based on settings.

    In production, uses structured JSON logging for observability.
    In development, uses colored console output.
    """
    if settings is None:
        settings = get_settings()

    from .core.logging import configure_structured_logging

    configure_structured_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.is_production,
        service_name="trust-engine",
    )

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
