"""
Reset-link validators — framework-agnostic, pure functions.

Everything here runs offline. Structural validity says nothing about whether
the identity backend will accept the link; it only rejects links that cannot
possibly work before any privileged call is made. Nothing in this module may
talk to the identity backend, because redeeming a recovery credential
establishes a session.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import jwt

from schemas.models.reset import (
    ResetTokens,
    StructuralErrorCategory,
    TokenKind,
    ValidationOutcome,
)
from shared.token_extraction import ProviderError

DEFAULT_MIN_TOKEN_LENGTH = 10

MISSING_TOKENS_MESSAGE = (
    "This reset link appears to be incomplete. Please check that you clicked "
    "the full link from your email, or request a new password reset."
)
CORRUPTED_LINK_MESSAGE = (
    "This reset link appears to be corrupted. Please request a new password reset."
)
WRONG_FORMAT_MESSAGE = (
    "This reset link is not in the correct format. Please request a new password reset."
)
EXPIRED_LINK_MESSAGE = (
    "Your reset link has expired. Reset links are only valid for 1 hour. "
    "Please request a new password reset."
)
MALFORMED_URL_MESSAGE = (
    "There was a problem processing your reset link. "
    "Please try requesting a new password reset."
)

# Provider-issued rejections (``?error=...`` on the redirect)
PROVIDER_ERROR_MESSAGES = {
    "access_denied": (
        "Access was denied. This may happen if you clicked an old reset link. "
        "Please request a new password reset."
    ),
    "invalid_request": (
        "The reset link is malformed. Please check that you clicked the "
        "complete link from your email."
    ),
    "unauthorized": (
        "This reset link was not accepted. Please request a new password reset."
    ),
    "server_error": (
        "A server error occurred. Please try again in a few minutes or "
        "request a new password reset."
    ),
    "temporarily_unavailable": (
        "The service is temporarily unavailable. Please try again in a few minutes."
    ),
}
DEFAULT_PROVIDER_ERROR_MESSAGE = (
    "Something went wrong with this reset link. Please request a new password reset."
)


def is_jwt_format(token: Optional[str]) -> bool:
    """Return True if *token* has three non-empty dot-separated segments."""
    if not token or not isinstance(token, str):
        return False
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


def _is_expired_jwt(token: str, now: datetime) -> bool:
    """True only for a decodable JWT whose ``exp`` claim lies in the past.

    The signature is NOT verified; this is a cheap pre-flight hint, and the
    backend remains the authority on validity.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return False
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False
    return exp <= now.timestamp()


def validate_token_structure(
    tokens: ResetTokens,
    *,
    min_length: int = DEFAULT_MIN_TOKEN_LENGTH,
    require_jwt_structure: bool = True,
    check_expiry: bool = True,
    now: Optional[datetime] = None,
) -> ValidationOutcome:
    """Check a reset link's credentials without contacting the backend.

    Rules:
    - Every credential must be at least *min_length* characters
    - Standard access/refresh tokens must look like JWTs (three segments)
    - Standard access tokens with a past ``exp`` claim are reported expired
    - Token hashes are backend-opaque; only the length rule applies

    Returns:
        A ValidationOutcome. The user message never echoes token content.
    """
    try:
        if tokens.kind is TokenKind.STANDARD:
            for name, value in (
                ("access token", tokens.access_token),
                ("refresh token", tokens.refresh_token),
            ):
                if not value or len(value) < min_length:
                    return ValidationOutcome.fail(
                        StructuralErrorCategory.INVALID_TOKENS,
                        CORRUPTED_LINK_MESSAGE,
                        f"{name} is malformed or too short",
                    )

            if require_jwt_structure and not (
                is_jwt_format(tokens.access_token)
                and is_jwt_format(tokens.refresh_token)
            ):
                return ValidationOutcome.fail(
                    StructuralErrorCategory.INVALID_TOKENS,
                    WRONG_FORMAT_MESSAGE,
                    "tokens do not match expected JWT format",
                )

            if check_expiry and _is_expired_jwt(
                tokens.access_token, now or datetime.now(timezone.utc)
            ):
                return ValidationOutcome.fail(
                    StructuralErrorCategory.EXPIRED_TOKENS,
                    EXPIRED_LINK_MESSAGE,
                    "access token exp claim is in the past",
                )
        else:
            if not tokens.token_hash or len(tokens.token_hash) < min_length:
                return ValidationOutcome.fail(
                    StructuralErrorCategory.INVALID_TOKENS,
                    CORRUPTED_LINK_MESSAGE,
                    "token hash is malformed or too short",
                )
    except (TypeError, ValueError) as e:
        return malformed_url_outcome(f"token structure validation failed: {e}")

    return ValidationOutcome.ok()


def validate_provider_error(error: Optional[ProviderError]) -> Optional[ValidationOutcome]:
    """Map an explicit provider rejection to a terminal AUTH_ERROR outcome.

    The provider's free-text description is kept as internal detail only.
    """
    if error is None:
        return None
    message = PROVIDER_ERROR_MESSAGES.get(
        error.error.lower(), DEFAULT_PROVIDER_ERROR_MESSAGE
    )
    return ValidationOutcome.fail(
        StructuralErrorCategory.AUTH_ERROR,
        message,
        f"provider error: {error.error} - {error.description or 'no description'}",
    )


def missing_tokens_outcome() -> ValidationOutcome:
    return ValidationOutcome.fail(
        StructuralErrorCategory.MISSING_TOKENS,
        MISSING_TOKENS_MESSAGE,
        "no reset tokens found in query parameters or fragment",
    )


def malformed_url_outcome(detail: str) -> ValidationOutcome:
    return ValidationOutcome.fail(
        StructuralErrorCategory.MALFORMED_URL,
        MALFORMED_URL_MESSAGE,
        detail,
    )
