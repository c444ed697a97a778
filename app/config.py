"""Application configuration and settings."""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "SafeFlow"
    app_version: str = "1.0.0"
    debug: bool = False
    port: int = Field(default=8000, description="Server port")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_prefix: str = "/api/v1"

    # Safe Transaction Service HTTP client
    request_timeout: float = 30.0
    max_retries: int = Field(default=5, ge=0, description="Retries after a 429 response")
    retry_base_delay: float = Field(default=2.0, description="First backoff delay in seconds")
    retry_max_delay: float = Field(default=32.0, description="Backoff ceiling in seconds")
    requests_per_second: float = Field(
        default=4.0, gt=0, description="Per-host request throttle shared by all calls"
    )

    # Pagination
    page_size: int = Field(default=100, ge=1, le=200)
    max_records: int = Field(
        default=3000, ge=1, description="Hard cap on transactions fetched per network"
    )
    page_delay: float = 0.4

    # Sequential pacing between calls sharing the service quota
    discovery_delay: float = 0.5
    request_delay: float = 0.6
    network_delay: float = 0.5
    network_concurrency: int = Field(
        default=1, ge=1, description="Networks fetched at once by fetch_all_bundles"
    )

    # Session cache (in-process only)
    cache_ttl_seconds: int = 300

    # CORS Configuration
    allowed_origins: str = Field(
        default="",
        description="Comma-separated list of allowed origins for CORS"
    )

    @field_validator("port")
    @classmethod
    def set_port(cls, v: int) -> int:
        """Use PORT from the environment if available."""
        return int(os.getenv("PORT", v))

    @field_validator("retry_max_delay")
    @classmethod
    def check_max_delay(cls, v: float, info) -> float:
        """Backoff ceiling can never be below the first delay."""
        base = info.data.get("retry_base_delay", 0.0)
        return max(v, base)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
