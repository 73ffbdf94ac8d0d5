# src/crashrisk/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Values come from environment variables or a local .env file; every field
has a default so the package imports without any configuration, and a
provider whose key is missing degrades to fallback data at fetch time.

Files that USE this module:
- crashrisk.app (logging, scheduler and server configuration)
- crashrisk.adapters.providers.* (API keys, URLs and timeouts)
- crashrisk.application.* (cache windows and retry policy)

Files that this module USES:
- crashrisk.shared.validators (validation functions for settings)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crashrisk.shared.validators import validate_api_key


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- API Providers ---
    fred_api_key: str = Field(default="", alias="FRED_API_KEY")
    finnhub_api_key: str = Field(default="", alias="FINNHUB_API_KEY")
    alpha_vantage_api_key: str = Field(default="", alias="ALPHA_VANTAGE_API_KEY")

    fred_url: str = Field(
        default="https://api.stlouisfed.org/fred/series/observations", alias="FRED_URL"
    )
    finnhub_url: str = Field(default="https://finnhub.io/api/v1/quote", alias="FINNHUB_URL")
    alpha_vantage_url: str = Field(
        default="https://www.alphavantage.co/query", alias="ALPHA_VANTAGE_URL"
    )

    # --- Manual dataset (monthly series maintained by hand) ---
    manual_data_file: Path = Field(
        default=Path("./data/manual_indicators.json"), alias="MANUAL_DATA_FILE"
    )

    # --- HTTP Settings ---
    http_timeout_seconds: int = Field(default=10, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)
    # Outer bound on one source fetch, enforced by the aggregator
    source_timeout_seconds: float = Field(default=12.0, alias="SOURCE_TIMEOUT_SECONDS", gt=0, le=120)

    # --- Revalidation windows ---
    quote_cache_seconds: int = Field(default=60, alias="QUOTE_CACHE_SECONDS", ge=1, le=3600)
    macro_cache_minutes: int = Field(default=60, alias="MACRO_CACHE_MINUTES", ge=1, le=1440)
    manual_cache_minutes: int = Field(default=1440, alias="MANUAL_CACHE_MINUTES", ge=1, le=10080)

    # --- Retry policy ---
    retry_attempts: int = Field(default=2, alias="RETRY_ATTEMPTS", ge=0, le=5)
    retry_base_delay_seconds: float = Field(default=1.0, alias="RETRY_BASE_DELAY_SECONDS", ge=0.0)
    retry_max_delay_seconds: float = Field(default=30.0, alias="RETRY_MAX_DELAY_SECONDS", ge=0.0)

    # --- Scheduling ---
    poll_interval_seconds: int = Field(default=30, alias="POLL_INTERVAL_SECONDS", ge=5, le=3600)

    # --- HTTP server ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT", ge=1, le=65535)

    # --- Logging ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_stdout: bool = Field(default=True, alias="CRASHRISK_LOG_STDOUT")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @property
    def source_windows_seconds(self) -> dict:
        """Revalidation window per source class, in seconds."""
        return {
            "quote": self.quote_cache_seconds,
            "macro": self.macro_cache_minutes * 60,
            "manual": self.manual_cache_minutes * 60,
        }

    @field_validator("fred_api_key", "finnhub_api_key", "alpha_vantage_api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate API key format (empty means not configured)."""
        if v and not validate_api_key(v):
            raise ValueError("Invalid API key format")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return v


# Global settings instance
settings = Settings()
