"""
Reset-page flow controller.

Sequences one reset attempt for a presentation layer:

    load(link)  → INVALID_LINK (terminal) | READY        — no backend calls
    submit(pw)  → SUBMITTING → SUCCEEDED (redirect scheduled)
                             → READY       (retryable failure, one new submit allowed)
                             → INVALID_LINK (expired / used / invalid / unknown)

A controller instance belongs to a single reset attempt and owns its
ResetTokens; the tokens are dropped once the attempt resolves.
"""

from __future__ import annotations

import asyncio
import inspect
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from config import ResetSettings
from errors import (
    ConflictError,
    PasswordResetError,
    ResetLinkError,
    SubmissionInProgressError,
    ValidationError,
)
from schemas.dto.requests.password_reset import PasswordResetForm
from schemas.models.reset import (
    ClassifiedError,
    ErrorCategory,
    ResetTokens,
    TokenKind,
    ValidationOutcome,
)
from services.password_reset import PasswordResetService
from shared.error_classifier import user_message_for
from shared.logging import get_logger
from shared.token_extraction import (
    QueryValue,
    extract_provider_error,
    extract_reset_tokens,
    split_reset_url,
)
from shared.validators import (
    malformed_url_outcome,
    missing_tokens_outcome,
    validate_provider_error,
    validate_token_structure,
)

log = get_logger(__name__)

SUCCESS_MESSAGE = (
    "Password updated successfully! You can now sign in with your new password."
)

# Failures whose message asks for a new reset link; the current link is retired
TERMINAL_CATEGORIES = frozenset(
    {
        ErrorCategory.EXPIRED,
        ErrorCategory.USED,
        ErrorCategory.INVALID,
        ErrorCategory.UNKNOWN,
    }
)

RedirectCallback = Callable[[str], Union[None, Awaitable[None]]]


class FlowState(str, Enum):
    LOADING = "loading"
    INVALID_LINK = "invalid_link"
    READY = "ready"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"


def inspect_reset_link(
    query: Mapping[str, QueryValue],
    fragment: Optional[str],
    settings: ResetSettings,
) -> tuple[Optional[ResetTokens], ValidationOutcome]:
    """Run provider-error detection, extraction and structural validation.

    Returns the tokens (only when structurally valid) and the outcome.
    """
    outcome = validate_provider_error(extract_provider_error(query, fragment))
    if outcome is not None:
        return None, outcome

    tokens = extract_reset_tokens(query, fragment)
    if tokens is None:
        return None, missing_tokens_outcome()

    outcome = validate_token_structure(
        tokens,
        min_length=settings.reset_min_token_length,
        require_jwt_structure=settings.reset_require_jwt_structure,
        check_expiry=settings.reset_check_token_expiry,
    )
    return (tokens if outcome.valid else None), outcome


def parse_password_form(
    password: str, confirm_password: str, min_length: int
) -> PasswordResetForm:
    """Validate the password form, raising the app's ValidationError on failure."""
    try:
        return PasswordResetForm.model_validate(
            {"password": password, "confirm_password": confirm_password},
            context={"min_password_length": min_length},
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        reason = first.get("ctx", {}).get("error", first["msg"])
        field = str(first["loc"][0]) if first["loc"] else "confirm_password"
        raise ValidationError(str(reason), field=field) from None


class ResetFlowController:
    def __init__(
        self,
        service: PasswordResetService,
        settings: ResetSettings,
        *,
        on_redirect: Optional[RedirectCallback] = None,
    ) -> None:
        self._service = service
        self._settings = settings
        self._on_redirect = on_redirect

        self._state = FlowState.LOADING
        self._tokens: Optional[ResetTokens] = None
        self._token_kind: Optional[TokenKind] = None
        self._outcome: Optional[ValidationOutcome] = None
        self._error: Optional[ClassifiedError] = None
        self._redirect_task: Optional[asyncio.Task] = None

    # ── Snapshot ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def outcome(self) -> Optional[ValidationOutcome]:
        return self._outcome

    @property
    def token_kind(self) -> Optional[TokenKind]:
        return self._token_kind

    @property
    def last_error(self) -> Optional[ClassifiedError]:
        return self._error

    @property
    def error_message(self) -> Optional[str]:
        if self._error is not None:
            return self._error.user_message
        if self._outcome is not None and not self._outcome.valid:
            return self._outcome.user_message
        return None

    @property
    def success_message(self) -> Optional[str]:
        return SUCCESS_MESSAGE if self._state is FlowState.SUCCEEDED else None

    @property
    def can_submit(self) -> bool:
        return self._state is FlowState.READY

    @property
    def redirect_pending(self) -> bool:
        return self._redirect_task is not None and not self._redirect_task.done()

    # ── Loading ──────────────────────────────────────────────────────────────

    def load(
        self, query: Mapping[str, QueryValue], fragment: Optional[str] = None
    ) -> ValidationOutcome:
        """Inspect the reset link. Never contacts the identity backend."""
        if self._state is not FlowState.LOADING:
            raise ConflictError("The reset link has already been loaded.")
        tokens, outcome = inspect_reset_link(query, fragment, self._settings)
        self._settle_load(tokens, outcome)
        return outcome

    def load_url(self, url: str) -> ValidationOutcome:
        if self._state is not FlowState.LOADING:
            raise ConflictError("The reset link has already been loaded.")
        try:
            query, fragment = split_reset_url(url)
        except ValueError as e:
            outcome = malformed_url_outcome(f"unparsable reset URL: {type(e).__name__}")
            self._settle_load(None, outcome)
            return outcome
        return self.load(query, fragment)

    def _settle_load(
        self, tokens: Optional[ResetTokens], outcome: ValidationOutcome
    ) -> None:
        self._outcome = outcome
        self._tokens = tokens
        self._token_kind = tokens.kind if tokens is not None else None
        self._state = FlowState.READY if outcome.valid else FlowState.INVALID_LINK
        log.info(
            "reset_link_loaded",
            valid=outcome.valid,
            category=outcome.error_category.value if outcome.error_category else None,
            token_kind=self._token_kind.value if self._token_kind else None,
        )

    # ── Submission ───────────────────────────────────────────────────────────

    async def submit(self, password: str, confirm_password: str) -> FlowState:
        """Submit the new password once.

        Returns:
            The resulting state. Backend failures do not raise; their fixed
            message is available as ``error_message``.

        Raises:
            SubmissionInProgressError: a submission is already in flight.
            PasswordResetError: the link was already used successfully.
            ResetLinkError: the link is not in a submittable state.
            ValidationError: the form is invalid (no backend call is made).
        """
        if self._state is FlowState.SUBMITTING:
            raise SubmissionInProgressError()
        if self._state is FlowState.SUCCEEDED:
            raise PasswordResetError(
                ClassifiedError(ErrorCategory.USED, user_message_for(ErrorCategory.USED))
            )
        if self._state is not FlowState.READY or self._tokens is None:
            raise ResetLinkError(self._outcome or missing_tokens_outcome())

        form = parse_password_form(
            password, confirm_password, self._settings.reset_min_password_length
        )

        self._state = FlowState.SUBMITTING
        self._error = None
        try:
            await self._service.update_password(self._tokens, form.password)
        except PasswordResetError as e:
            self._error = e.classified
            if e.category in TERMINAL_CATEGORIES:
                self._tokens = None
                self._state = FlowState.INVALID_LINK
            else:
                self._state = FlowState.READY
            log.info("reset_submit_failed", category=e.category.value, state=self._state.value)
            return self._state
        except BaseException:
            self._state = FlowState.READY
            raise

        self._tokens = None
        self._state = FlowState.SUCCEEDED
        log.info("reset_submit_succeeded")
        self._schedule_redirect()
        return self._state

    # ── Redirect ─────────────────────────────────────────────────────────────

    def _schedule_redirect(self) -> None:
        if self._on_redirect is None or self._redirect_task is not None:
            return
        self._redirect_task = asyncio.get_running_loop().create_task(
            self._redirect_after_delay()
        )
        self._redirect_task.add_done_callback(self._log_redirect_failure)

    @staticmethod
    def _log_redirect_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("reset_redirect_failed", error_type=type(exc).__name__)

    async def _redirect_after_delay(self) -> None:
        await asyncio.sleep(self._settings.reset_redirect_delay_seconds)
        result = self._on_redirect(self._settings.reset_success_redirect)
        if inspect.isawaitable(result):
            await result

    def close(self) -> None:
        """Cancel a pending redirect (the page went away)."""
        if self.redirect_pending:
            self._redirect_task.cancel()
