"""Configuration for the siegekeeper service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings sourced from the environment or a `.env` file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = Field(
        default="sqlite:///siegekeeper.db", description="SQLAlchemy database URL"
    )
    DATABASE_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DATABASE_POOL_SIZE: int = Field(default=10, ge=1)
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0)
    DATABASE_POOL_RECYCLE: int = Field(default=1800, description="Seconds before reconnecting")
    DATABASE_POOL_TIMEOUT: float = Field(default=5.0, gt=0.0)

    autosave_delay_seconds: float = Field(
        default=30.0,
        description="Quiet period after the last modification before a campaign is touched",
        gt=0.0,
    )
    autosave_check_interval_seconds: float = Field(
        default=5.0,
        description="How often the auto-save loop looks for campaigns that are due",
        gt=0.0,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
