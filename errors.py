"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Reset failures carry the structural ValidationOutcome or the operational
ClassifiedError they were raised for. Only the fixed user message and the
category name are ever serialized; internal diagnostics stay on the
exception object for logging.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schemas.models.reset import (
    ClassifiedError,
    ErrorCategory,
    ValidationOutcome,
)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class ResetLinkError(AppError):
    """A reset link failed the offline (structural) checks."""

    status_code = 400
    error_code = "invalid_reset_link"

    def __init__(self, outcome: ValidationOutcome) -> None:
        category = outcome.error_category.value if outcome.error_category else None
        super().__init__(outcome.user_message, details={"category": category})
        self.outcome = outcome


_PASSWORD_RESET_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.WEAK: 422,
    ErrorCategory.SAME: 422,
    ErrorCategory.TOO_SHORT: 422,
    ErrorCategory.COMMON: 422,
    ErrorCategory.RATE_LIMITED: 429,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.EXPIRED: 410,
    ErrorCategory.USED: 410,
}


class PasswordResetError(AppError):
    """A backend step of the password update failed.

    ``diagnostic`` holds the raw backend text for development logging only.
    """

    error_code = "password_reset_failed"

    def __init__(self, classified: ClassifiedError, diagnostic: str = "") -> None:
        super().__init__(
            classified.user_message,
            details={"category": classified.category.value},
        )
        self.classified = classified
        self.diagnostic = diagnostic
        self.status_code = _PASSWORD_RESET_STATUS.get(classified.category, 400)

    @property
    def category(self) -> ErrorCategory:
        return self.classified.category


class SessionSecurityError(PasswordResetError):
    """An authenticated session existed where none may exist."""

    error_code = "session_security_violation"


class SubmissionInProgressError(ConflictError):
    error_code = "submission_in_progress"

    def __init__(self) -> None:
        super().__init__("A password update is already in progress.")


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
