"""
Classification of identity-backend failures into user-facing categories.

classify_error() is total: every input (a BackendError, an exception, a bare
string, or nothing at all) maps to exactly one ErrorCategory, falling back to
UNKNOWN. The user message always comes from USER_MESSAGES, never from the
backend's own text, so token fragments, account identifiers and stack traces
cannot leak into the UI.
"""

from __future__ import annotations

import re
from typing import Optional, Union

from schemas.models.identity import BackendError
from schemas.models.reset import ClassifiedError, ErrorCategory, ErrorContext

USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.EXPIRED: (
        "Your reset link has expired. Reset links are only valid for 1 hour. "
        "Please request a new password reset."
    ),
    ErrorCategory.INVALID: (
        "This reset link is invalid or corrupted. Please request a new password reset."
    ),
    ErrorCategory.USED: (
        "This reset link has already been used. Please request a new password "
        "reset if you still need to change your password."
    ),
    ErrorCategory.NETWORK: (
        "Network error occurred. Please check your connection and try again."
    ),
    ErrorCategory.RATE_LIMITED: (
        "Too many password update attempts. Please wait a few minutes before "
        "trying again."
    ),
    ErrorCategory.WEAK: (
        "Password is too weak. Please choose a stronger password with at least "
        "6 characters, including letters and numbers."
    ),
    ErrorCategory.SAME: (
        "New password must be different from your current password. Please "
        "choose a different password."
    ),
    ErrorCategory.TOO_SHORT: (
        "Password must be at least 6 characters long. Please choose a longer password."
    ),
    ErrorCategory.COMMON: (
        "This password is too common. Please choose a more unique password."
    ),
    ErrorCategory.UNKNOWN: (
        "Reset link validation failed. Please request a new password reset."
    ),
}

# GoTrue machine-readable error codes
_CODE_CATEGORIES: dict[str, ErrorCategory] = {
    "otp_expired": ErrorCategory.EXPIRED,
    "session_expired": ErrorCategory.EXPIRED,
    "session_not_found": ErrorCategory.USED,
    "refresh_token_already_used": ErrorCategory.USED,
    "refresh_token_not_found": ErrorCategory.INVALID,
    "bad_jwt": ErrorCategory.INVALID,
    "same_password": ErrorCategory.SAME,
    "weak_password": ErrorCategory.WEAK,
    "over_request_rate_limit": ErrorCategory.RATE_LIMITED,
    "over_email_send_rate_limit": ErrorCategory.RATE_LIMITED,
}

_RATE_LIMIT = re.compile(r"rate.?limit|too many")
_NETWORK = re.compile(r"network|fetch|time(d)?.?out|connection|unreachable")

_CONTEXT_RULES: dict[ErrorContext, tuple[tuple[re.Pattern, ErrorCategory], ...]] = {
    ErrorContext.SESSION: (
        (re.compile(r"expired|\bexp\b"), ErrorCategory.EXPIRED),
        (re.compile(r"\bused\b|consumed"), ErrorCategory.USED),
        (re.compile(r"invalid|malformed"), ErrorCategory.INVALID),
    ),
    ErrorContext.OTP: (
        (re.compile(r"expired"), ErrorCategory.EXPIRED),
        (re.compile(r"\bused\b|consumed"), ErrorCategory.USED),
        (re.compile(r"invalid|not found"), ErrorCategory.INVALID),
    ),
    ErrorContext.PASSWORD: (
        (re.compile(r"weak|strength"), ErrorCategory.WEAK),
        (re.compile(r"same|identical"), ErrorCategory.SAME),
        (re.compile(r"length|short"), ErrorCategory.TOO_SHORT),
        (re.compile(r"common|dictionary|pwned"), ErrorCategory.COMMON),
    ),
}

RawError = Union[BackendError, BaseException, str, None]


def normalize_error(error: RawError) -> BackendError:
    """Coerce any raw error shape into a BackendError."""
    if isinstance(error, BackendError):
        return error
    if error is None:
        return BackendError(message="")
    if isinstance(error, BaseException):
        return BackendError(message=str(error) or type(error).__name__)
    return BackendError(message=str(error))


def user_message_for(category: ErrorCategory) -> str:
    return USER_MESSAGES[category]


def _category_for(error: BackendError, context: ErrorContext) -> ErrorCategory:
    text = (error.message or "").lower()
    code = (error.code or "").lower()

    if error.status == 429 or _RATE_LIMIT.search(text) or _RATE_LIMIT.search(code):
        return ErrorCategory.RATE_LIMITED
    if error.network or _NETWORK.search(text):
        return ErrorCategory.NETWORK
    if code in _CODE_CATEGORIES:
        return _CODE_CATEGORIES[code]

    for pattern, category in _CONTEXT_RULES[context]:
        if pattern.search(text):
            return category
    return ErrorCategory.UNKNOWN


def classify_error(
    error: RawError,
    context: Union[ErrorContext, str],
) -> ClassifiedError:
    """Classify a backend failure raised while performing *context*.

    Args:
        error: Whatever the backend produced.
        context: ``session``, ``otp`` or ``password``.

    Returns:
        A ClassifiedError whose message is one of the fixed USER_MESSAGES.
    """
    context = ErrorContext(context)
    category = _category_for(normalize_error(error), context)
    return ClassifiedError(
        category=category,
        user_message=USER_MESSAGES[category],
        context=context,
    )


def unresolved_user_error(context: Optional[ErrorContext] = None) -> ClassifiedError:
    """Failure for a backend call that reported success without resolving a user."""
    return ClassifiedError(
        category=ErrorCategory.UNKNOWN,
        user_message=USER_MESSAGES[ErrorCategory.UNKNOWN],
        context=context,
    )
