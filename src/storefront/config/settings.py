"""
Application settings - pydantic-settings configuration.

This module defines client configuration using pydantic-settings
for environment variable loading with validation and defaults.
Variables are read with the ``STOREFRONT_`` prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend configuration
    api_url: str = "http://localhost:5000/api"
    request_timeout: float = 30.0  # Seconds per request

    # Session persistence
    session_file: str = Field(default_factory=lambda: str(Path.home() / ".storefront_session.json"))

    # Registration settings
    otp_length: int = 6
    resend_cooldown_seconds: int = 60  # Advisory throttle, backend rate-limits

    # Pricing display, must match the backend cart formula
    free_shipping_threshold: int = 499
    shipping_fee: int = 40

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
