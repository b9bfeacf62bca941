"""
Response DTOs for password-reset endpoints.

ResetLinkInspectionResponse — POST /auth/reset-password/inspect  (200)
PasswordResetResponse       — POST /auth/reset-password  (200)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ResetLinkInspectionResponse(BaseModel):
    """Structural verdict on a reset link. ``valid`` never implies the backend will accept it."""

    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    token_kind: Optional[str] = None
    error_category: Optional[str] = None
    message: Optional[str] = None


class PasswordResetResponse(BaseModel):
    """Response body for POST /auth/reset-password (200)."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    redirect_to: str
    redirect_after_seconds: float
