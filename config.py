"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

IdentitySettings points at the GoTrue-compatible identity backend that
redeems reset links; ResetSettings holds the tunables of the reset flow
itself (token length floor, redirect delay, password minimum).
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentitySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # GoTrue base URL including the /auth/v1 prefix for Supabase projects
    identity_url: str = ""
    identity_api_key: str = ""
    identity_timeout_seconds: float = 5.0


class ResetSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    reset_min_token_length: int = 10
    reset_require_jwt_structure: bool = True
    reset_check_token_expiry: bool = True
    reset_min_password_length: int = 6

    reset_redirect_delay_seconds: float = 2.0
    reset_success_redirect: str = "/auth/login?reset=success"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "http://localhost:3000"
    app_name: str = "reset-guard"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    identity: Optional[IdentitySettings] = None
    reset: Optional[ResetSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.identity is None:
            self.identity = IdentitySettings()
        if self.reset is None:
            self.reset = ResetSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
