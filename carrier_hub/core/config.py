"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class ProviderQuotaConfig(BaseModel):
    """Quota for a single carrier: at most ``max_requests`` per ``window_ms``."""

    max_requests: int = Field(..., ge=1)
    window_ms: int = Field(..., ge=1)


def _default_provider_quotas() -> dict[str, ProviderQuotaConfig]:
    return {
        "fez": ProviderQuotaConfig(max_requests=60, window_ms=60_000),
        "faramove": ProviderQuotaConfig(max_requests=100, window_ms=60_000),
        "glovo": ProviderQuotaConfig(max_requests=120, window_ms=60_000),
        "gig": ProviderQuotaConfig(max_requests=100, window_ms=60_000),
        # International provider, kept conservative
        "dhl": ProviderQuotaConfig(max_requests=50, window_ms=60_000),
    }


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on admin routes",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class QuotaSettings(BaseSettings):
    """Outbound per-carrier quota configuration.

    ``providers`` can be overridden with a JSON object, e.g.
    ``QUOTA_PROVIDERS='{"fez": {"max_requests": 30, "window_ms": 60000}}'``.
    Providers missing from the mapping fall back to the defaults.
    """

    default_max_requests: int = Field(
        60,
        description="Quota applied to providers without explicit configuration",
        ge=1,
    )
    default_window_ms: int = Field(
        60_000,
        description="Window length applied to providers without explicit configuration",
        ge=1,
    )
    providers: dict[str, ProviderQuotaConfig] = Field(
        default_factory=_default_provider_quotas,
        description="Per-provider quota overrides keyed by lower-case provider id",
    )

    model_config = SettingsConfigDict(
        env_prefix="QUOTA_",
        case_sensitive=False,
    )


class AddressBookSettings(BaseSettings):
    """Global address registration cache configuration."""

    database_url: str = Field(
        "sqlite:///data/address_book.db",
        description="SQLAlchemy URL of the durable registration store",
    )
    retention_days: int = Field(
        90,
        description="Entries unused for longer than this are removed by cleanup",
        ge=1,
    )
    wait_timeout_seconds: float = Field(
        30.0,
        description="Max time a caller waits on another caller's in-flight registration",
        gt=0,
    )
    default_contact_phone: str = Field(
        "+2348130926960",
        description="Contact phone attached to every global address registration",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADDRESS_BOOK_",
        case_sensitive=False,
    )


class GlovoSettings(BaseSettings):
    """Glovo address-book API credentials."""

    base_url: str = Field("https://stageapi.glovoapp.com")
    client_id: str | None = Field(None)
    client_secret: str | None = Field(None)
    timeout_seconds: float = Field(15.0)

    model_config = SettingsConfigDict(
        env_prefix="GLOVO_",
        case_sensitive=False,
    )


class GeocodingSettings(BaseSettings):
    """Optional geocoding step applied before address canonicalization."""

    enabled: bool = Field(False)
    api_key: str | None = Field(None)
    base_url: str = Field("https://maps.googleapis.com/maps/api/geocode/json")
    timeout_seconds: float = Field(10.0)

    model_config = SettingsConfigDict(
        env_prefix="GEOCODING_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    address_book: AddressBookSettings = Field(default_factory=AddressBookSettings)
    glovo: GlovoSettings = Field(default_factory=GlovoSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
