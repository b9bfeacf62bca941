"""
Request DTOs for password-reset endpoints.

InspectResetLinkRequest — POST /auth/reset-password/inspect
ResetPasswordRequest    — POST /auth/reset-password
PasswordResetForm       — password + confirmation, shared with the flow controller
"""

from __future__ import annotations

from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

DEFAULT_MIN_PASSWORD_LENGTH = 6


class PasswordResetForm(BaseModel):
    """New password and its confirmation.

    The minimum length can be overridden per validation call through the
    pydantic validation context: ``{"min_password_length": 8}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(repr=False)
    confirm_password: str = Field(repr=False)

    @field_validator("password")
    @classmethod
    def _check_length(cls, value: str, info: ValidationInfo) -> str:
        context = info.context or {}
        min_length = context.get("min_password_length", DEFAULT_MIN_PASSWORD_LENGTH)
        if len(value) < min_length:
            raise ValueError(f"Password must be at least {min_length} characters")
        return value

    @model_validator(mode="after")
    def _check_confirmation(self) -> "PasswordResetForm":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class InspectResetLinkRequest(BaseModel):
    """Request body for POST /auth/reset-password/inspect.

    Either the full ``url`` of the reset link, or its already-split
    ``query`` parameters and ``fragment``.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    query: dict[str, str] = Field(default_factory=dict)
    fragment: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: Optional[str] = Field(default=None, repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    token_hash: Optional[str] = Field(default=None, repr=False)
    fragment: Optional[str] = Field(default=None, repr=False)
    password: str = Field(repr=False)
    confirm_password: str = Field(repr=False)

    def token_params(self) -> dict[str, str]:
        """The link parameters in the shape extract_reset_tokens() expects."""
        return {
            key: value
            for key, value in (
                ("access_token", self.access_token),
                ("refresh_token", self.refresh_token),
                ("token_hash", self.token_hash),
            )
            if value
        }
