"""
Application configuration.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Planico Planner API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Weekly scheduling grid, conflict detection and free-slot search"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = ""

    # Error tracking
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = Field(0.0, ge=0.0, le=1.0)

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Scheduling grid
    DISPLAY_TIMEZONE: str = "America/Mexico_City"
    WEEK_STARTS_ON: int = Field(6, ge=0, le=6, description="Python weekday, Monday=0 ... Sunday=6")
    WORKING_HOURS_START: int = Field(8, ge=0, le=23)
    WORKING_HOURS_END: int = Field(18, ge=1, le=24)

    # Persistence service
    SCHEDULE_API_URL: str = "http://localhost:3000"
    SCHEDULE_API_TIMEOUT: float | None = None
    OPTIMISTIC_UPDATES: bool = True

    @field_validator("SCHEDULE_API_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
