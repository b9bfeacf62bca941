"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system.

The identity backend holds the reset attempt's session, so a new backend
(and service) is built for every request. Only the HTTP client is shared.
"""

from __future__ import annotations

from fastapi import Depends, Request

from config import AppSettings
from infrastructure.http_client import HttpClient
from infrastructure.identity.gotrue import GoTrueIdentityBackend
from infrastructure.identity.protocol import IdentityBackend
from services.password_reset import PasswordResetService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_identity_http(request: Request) -> HttpClient:
    """Return the shared identity-backend HTTP client from app.state."""
    return request.app.state.identity_http


def get_identity_backend(
    http_client: HttpClient = Depends(get_identity_http),
) -> IdentityBackend:
    return GoTrueIdentityBackend(http_client)


def get_password_reset_service(
    backend: IdentityBackend = Depends(get_identity_backend),
    settings: AppSettings = Depends(get_settings),
) -> PasswordResetService:
    return PasswordResetService(backend, expose_diagnostics=not settings.is_production)
