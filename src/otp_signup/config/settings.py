"""
Application settings - pydantic-settings configuration.

This module defines application configuration using pydantic-settings
for environment variable loading with validation and defaults.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # OTP windows
    otp_ttl_seconds: int = 120  # Code entry window after dispatch
    submission_grace_seconds: int = 100  # Signup window after verification
    session_idle_seconds: int = 300  # Unused registration sessions are dropped after this
    countdown_interval_seconds: float = 1.0

    # Remote signup backend (console OTP + local accounts when unset)
    backend_base_url: str | None = None  # e.g. http://10.0.2.2:1997/api
    http_timeout_seconds: float = 10.0

    # Database configuration (in-memory accounts when unset)
    database_url: str | None = None
    pool_min_size: int = 2  # Minimum connections in pool
    pool_max_size: int = 10  # Maximum connections in pool

    # Security settings
    bcrypt_cost: int = 10  # bcrypt work factor for stored password hashes

    # Signup policy - empty means any domain
    allowed_email_domains: list[str] = []

    @field_validator("allowed_email_domains")
    @classmethod
    def _normalize_domains(cls, domains: list[str]) -> list[str]:
        return [d.strip().lower().lstrip("@") for d in domains if d.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
