# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Configuration settings for the Ad Delivery System."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database / Storage Configuration
    database_url: str = "sqlite:///./ad_delivery.db"
    redis_url: Optional[str] = None
    storage_type: str = "sqlite"  # sqlite, redis, memory
    store_timeout_seconds: float = 10.0

    # Completion Rules
    grace_period_days: int = 7
    proof_scope: str = "order_wide"  # order_wide, placement

    # Campaign Metrics Validation
    pricing_tolerance_percent: float = 1.0
    reach_tolerance_percent: float = 10.0
    default_duration_months: float = 1.0

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
