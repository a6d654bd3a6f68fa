"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

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

    Pydantic Settings (v2) populates values from environment variables.
    Static type checkers treat required fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_supabase_settings() -> "SupabaseSettings":
    return SupabaseSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration: admin credentials, limits and sessions."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_password: str | None = Field(
        None,
        description="Administrator password. Login is refused while unset.",
    )
    admin_token_header: str = Field(
        "X-Admin-Token",
        description="Dedicated header carrying the admin session token",
    )
    store_backend: Literal["memory", "supabase"] = Field(
        "memory",
        description="Key-value store backend used for sessions and content",
    )

    login_max_attempts: int = Field(
        5,
        description="Login attempts allowed per IP inside the attempt window",
        ge=1,
    )
    login_attempt_window_seconds: int = Field(
        300,
        description="Idle time after which an IP's attempt count starts over",
        ge=1,
    )
    login_lockout_seconds: int = Field(
        900,
        description="Lockout duration once an IP exhausts its login attempts",
        ge=1,
    )

    api_rate_limit_enabled: bool = Field(
        True,
        description="Enable per-IP rate limiting on admin endpoints",
    )
    api_rate_limit_requests: int = Field(
        100,
        description="Maximum number of requests allowed per window (per IP)",
        ge=1,
    )
    api_rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    session_ttl_seconds: int = Field(
        86400,
        description="Lifetime of an admin session in seconds",
        ge=1,
    )
    trusted_proxies: str = Field(
        "127.0.0.1,::1",
        description=(
            "Comma-separated proxy addresses or CIDR networks whose "
            "X-Forwarded-For / X-Real-IP headers are honoured"
        ),
    )
    lock_shards: int = Field(
        64,
        description="Number of lock stripes guarding per-IP limiter state",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class SupabaseSettings(BaseSettings):
    """Supabase project used as key-value store and object storage."""

    url: str | None = Field(
        None,
        description="Project URL, e.g. https://<ref>.supabase.co",
    )
    service_role_key: str | None = Field(
        None,
        description="Service role key used for server-side access",
    )
    kv_table: str = Field(
        "kv_store",
        description="PostgREST table holding key/value rows",
    )
    storage_bucket: str = Field(
        "portfolio-projects",
        description="Private bucket for uploaded images",
    )
    timeout_seconds: float = Field(
        30.0,
        description="HTTP timeout for Supabase calls",
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="json for machine-readable logs, plain for local debugging",
    )
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file past this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    supabase: SupabaseSettings = Field(default_factory=_build_supabase_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
