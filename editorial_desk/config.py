"""
Configuration management for Editorial Desk.
"""

import logging
from typing import Optional

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Editorial Desk")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # Database
    database_url: str = Field(default="sqlite:///./editorial_desk.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="json",
        description="Either 'json' for machine-readable output or 'console'.",
    )

    # Listing
    default_page_size: int = Field(default=15, ge=1, le=500)


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def configure_logging(config: Optional[Settings] = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    config = config or get_settings()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
