"""
Value types of a single password-reset attempt.

ResetTokens        — normalized credentials carried by a reset link
ValidationOutcome  — result of the structural (offline) link check
ErrorCategory      — closed taxonomy of operational failures
ClassifiedError    — an operational failure mapped to its fixed user sentence

None of these are persisted. A ResetTokens value lives exactly as long as the
reset attempt that extracted it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TokenKind(str, Enum):
    STANDARD = "standard"
    HASH = "hash"


class StructuralErrorCategory(str, Enum):
    MISSING_TOKENS = "missing_tokens"
    INVALID_TOKENS = "invalid_tokens"
    EXPIRED_TOKENS = "expired_tokens"
    MALFORMED_URL = "malformed_url"
    AUTH_ERROR = "auth_error"


class ErrorCategory(str, Enum):
    EXPIRED = "expired"
    INVALID = "invalid"
    USED = "used"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    WEAK = "weak"
    SAME = "same"
    TOO_SHORT = "too_short"
    COMMON = "common"
    UNKNOWN = "unknown"


class ErrorContext(str, Enum):
    """Which backend operation produced an error."""

    SESSION = "session"
    OTP = "otp"
    PASSWORD = "password"


class ResetTokens(BaseModel):
    """Credentials extracted from a reset link.

    STANDARD carries an access/refresh pair. HASH carries a one-time token
    hash, mirrored into ``access_token`` so callers can treat both kinds
    uniformly where only "the primary credential" matters.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    token_hash: Optional[str] = Field(default=None, repr=False)
    kind: TokenKind

    @model_validator(mode="after")
    def _check_kind(self) -> "ResetTokens":
        if self.kind is TokenKind.STANDARD:
            if not self.access_token or not self.refresh_token:
                raise ValueError("standard tokens need both access and refresh token")
            if self.token_hash is not None:
                raise ValueError("standard tokens must not carry a token hash")
        else:
            if not self.token_hash:
                raise ValueError("hash tokens need a token hash")
            if self.refresh_token is not None:
                raise ValueError("hash tokens must not carry a refresh token")
            if self.access_token != self.token_hash:
                raise ValueError("hash tokens mirror the token hash as access token")
        return self

    @classmethod
    def standard(cls, access_token: str, refresh_token: str) -> "ResetTokens":
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            kind=TokenKind.STANDARD,
        )

    @classmethod
    def from_hash(cls, token_hash: str) -> "ResetTokens":
        return cls(access_token=token_hash, token_hash=token_hash, kind=TokenKind.HASH)


class ValidationOutcome(BaseModel):
    """Result of checking a reset link without contacting the backend."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error_category: Optional[StructuralErrorCategory] = None
    # Diagnostic only; never rendered to users or returned over HTTP
    internal_detail: str = Field(default="", repr=False)
    user_message: str = ""

    @model_validator(mode="after")
    def _check_consistency(self) -> "ValidationOutcome":
        if self.valid and self.error_category is not None:
            raise ValueError("a valid outcome cannot carry an error category")
        if not self.valid and self.error_category is None:
            raise ValueError("an invalid outcome needs an error category")
        return self

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(valid=True)

    @classmethod
    def fail(
        cls,
        category: StructuralErrorCategory,
        user_message: str,
        internal_detail: str = "",
    ) -> "ValidationOutcome":
        return cls(
            valid=False,
            error_category=category,
            user_message=user_message,
            internal_detail=internal_detail,
        )


@dataclass(frozen=True)
class ClassifiedError:
    category: ErrorCategory
    user_message: str
    context: Optional[ErrorContext] = None
