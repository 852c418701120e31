"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are read once at startup. Rate limit profiles are built from them
when the application is created and are not reconfigurable afterwards.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
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


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def parse_csv(value: str | None) -> set[str]:
    """Parse a comma-separated string into a set of trimmed, non-empty items.

    Examples:
        >>> sorted(parse_csv("a, b ,c"))
        ['a', 'b', 'c']
        >>> parse_csv(None)
        set()
    """
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_auth_required: bool = Field(
        True,
        description="Whether the admin endpoints require an X-Admin-Key header",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin API keys",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json | plain")
    output: str = Field("stdout", description="Log destination: stdout | file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Per-profile values default to the WeAnime production limits and can be
    overridden individually, e.g. ``RATE_LIMIT_AUTH_MAX_REQUESTS=10``.
    """

    enabled: bool = Field(True, description="Enable rate limiting on guarded routes")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers on responses",
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between expired-entry eviction sweeps",
        gt=0,
    )
    suspicious_ttl_seconds: float = Field(
        3600.0,
        description="How long a suspicious mark lasts on adaptive profiles",
        gt=0,
    )
    whitelist: str | None = Field(
        None,
        description="Comma-separated client keys exempt from every profile",
    )
    blacklist: str | None = Field(
        None,
        description="Comma-separated client keys denied by every profile",
    )
    adaptive_profiles: str = Field(
        "api,auth",
        description="Comma-separated profiles that use reputation scaling",
    )

    api_window_seconds: float = Field(15 * 60, gt=0)
    api_max_requests: int = Field(100, ge=1)
    auth_window_seconds: float = Field(15 * 60, gt=0)
    auth_max_requests: int = Field(5, ge=1)
    search_window_seconds: float = Field(60, gt=0)
    search_max_requests: int = Field(30, ge=1)
    streaming_window_seconds: float = Field(60, gt=0)
    streaming_max_requests: int = Field(60, ge=1)
    monitoring_window_seconds: float = Field(60, gt=0)
    monitoring_max_requests: int = Field(100, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    @property
    def whitelist_set(self) -> set[str]:
        return parse_csv(self.whitelist)

    @property
    def blacklist_set(self) -> set[str]:
        return parse_csv(self.blacklist)

    @property
    def adaptive_profile_set(self) -> set[str]:
        return parse_csv(self.adaptive_profiles)


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
