"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
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


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include Retry-After header when throttling",
    )
    trust_proxy_headers: bool = Field(
        True,
        description="Read the client IP from X-Forwarded-For / X-Real-IP",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class UpstashSettings(BaseSettings):
    """Remote key-value store (Upstash Redis REST API).

    Both url and token must be set for the remote store to be used; otherwise
    the service falls back to the in-process store.
    """

    url: str | None = Field(None, description="REST endpoint, e.g. https://xyz.upstash.io")
    token: str | None = Field(None, description="Bearer token for the REST endpoint")
    timeout_seconds: float = Field(
        5.0,
        description="Per-request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="UPSTASH_REDIS_REST_",
        case_sensitive=False,
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.url.strip() and self.token and self.token.strip())


class AppwriteSettings(BaseSettings):
    """Document store holding the analysis activity log."""

    endpoint: str | None = Field(None, description="Appwrite API endpoint, e.g. https://cloud.appwrite.io/v1")
    project_id: str | None = Field(None, description="Appwrite project id")
    database_id: str | None = Field(None, description="Database containing the activity collection")
    api_key: str | None = Field(None, description="Server API key")
    analysis_collection_id: str | None = Field(
        None,
        description="Collection storing one document per requested risk analysis",
    )
    timeout_seconds: float = Field(10.0, description="Per-request timeout in seconds", gt=0)

    model_config = SettingsConfigDict(
        env_prefix="APPWRITE_",
        case_sensitive=False,
    )

    @property
    def is_configured(self) -> bool:
        return all(
            [
                self.endpoint,
                self.project_id,
                self.database_id,
                self.api_key,
                self.analysis_collection_id,
            ]
        )


class RateLimitPolicySettings(BaseSettings):
    """Thresholds and windows of every rate limit policy."""

    window_seconds: int = Field(60, description="Request counter window", ge=1)
    max_requests: int = Field(30, description="Requests allowed per (client, route) window", ge=1)
    failed_attempts_threshold: int = Field(
        5,
        description="Failed attempts that trigger a lockout",
        ge=1,
    )
    failed_attempts_window_seconds: int = Field(
        3600,
        description="Lifetime of the failed-attempt counter",
        ge=1,
    )
    lockout_seconds: int = Field(900, description="Lockout duration", ge=1)
    comment_window_seconds: int = Field(60, description="Comment counter window", ge=1)
    comment_max: int = Field(5, description="Comments allowed per user window", ge=1)
    analysis_window_seconds: int = Field(60, description="Analysis look-back window", ge=1)
    analysis_max: int = Field(10, description="Analyses allowed per user window", ge=1)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=LogSettings)
    upstash: UpstashSettings = Field(default_factory=UpstashSettings)
    appwrite: AppwriteSettings = Field(default_factory=AppwriteSettings)
    rate_limit: RateLimitPolicySettings = Field(default_factory=RateLimitPolicySettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
