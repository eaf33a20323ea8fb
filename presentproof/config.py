"""Configuration settings using pydantic-settings."""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRESENTPROOF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Key resolution (universal-resolver style endpoint)
    resolver_url: str = "http://localhost:8080"
    resolver_timeout_seconds: float = Field(default=10.0, gt=0.0)
    resolver_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per DID document fetch on transport failures",
    )
    resolver_cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="How long a resolved DID document is trusted before it is fetched again",
    )
    resolver_cache_size: int = Field(default=1024, ge=1)

    # Conversation driver
    max_transitions: int = Field(
        default=32,
        ge=2,
        description="Upper bound on transitions per trigger before the driver gives up",
    )

    # Application
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger for command-line and service use."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(levelname)s  %(name)s  %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
