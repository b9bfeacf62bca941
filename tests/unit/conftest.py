"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests, and clears any reset/identity variables leaking in from
the developer's shell. Tests control config exclusively through
monkeypatch.setenv().
"""

import pytest

_CONFIG_ENV_VARS = (
    "ENV",
    "IDENTITY_URL",
    "IDENTITY_API_KEY",
    "IDENTITY_TIMEOUT_SECONDS",
    "RESET_MIN_TOKEN_LENGTH",
    "RESET_REQUIRE_JWT_STRUCTURE",
    "RESET_CHECK_TOKEN_EXPIRY",
    "RESET_MIN_PASSWORD_LENGTH",
    "RESET_REDIRECT_DELAY_SECONDS",
    "RESET_SUCCESS_REDIRECT",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch):
    """Prevent pydantic-settings from loading .env files or shell overrides."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
