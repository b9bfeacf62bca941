"""
Session-scoped password update.

The only privileged operation of a reset attempt runs inside a session that
exists for one call and no longer:

    IDLE → SESSION_ESTABLISHING → PASSWORD_UPDATING → SIGNING_OUT → DONE
                 ↓                        ↓
          ESTABLISH_FAILED          UPDATE_FAILED  → SIGNING_OUT → DONE

terminate_session() runs exactly once per update_password() call on every
path: success, establish failure, update failure, an exception escaping a
backend call, or cancellation of the awaiting task. Teardown problems are
logged and never replace the primary result.
"""

from __future__ import annotations

import asyncio
import uuid
from enum import Enum
from typing import Callable, Optional

from errors import PasswordResetError, SessionSecurityError
from infrastructure.identity.protocol import IdentityBackend
from schemas.models.identity import AuthResult, BackendError
from schemas.models.reset import ErrorContext, ResetTokens, TokenKind
from shared.error_classifier import classify_error, normalize_error, unresolved_user_error
from shared.logging import get_logger, log_with_context

_log = get_logger(__name__)


class ResetState(str, Enum):
    IDLE = "idle"
    SESSION_ESTABLISHING = "session_establishing"
    PASSWORD_UPDATING = "password_updating"
    SIGNING_OUT = "signing_out"
    DONE = "done"
    ESTABLISH_FAILED = "establish_failed"
    UPDATE_FAILED = "update_failed"


StateObserver = Callable[[ResetState], None]
SecurityViolationHook = Callable[[str], None]


def _error_from_exception(exc: Exception) -> BackendError:
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return BackendError(message=f"{type(exc).__name__}: network failure", network=True)
    return normalize_error(exc)


class _Progress:
    """Per-call state tracker; never shared between calls."""

    def __init__(self, log, observer: Optional[StateObserver]) -> None:
        self.state = ResetState.IDLE
        self._log = log
        self._observer = observer

    def to(self, state: ResetState) -> None:
        self._log.debug(
            "reset_state_transition", from_state=self.state.value, to_state=state.value
        )
        self.state = state
        if self._observer is None:
            return
        try:
            self._observer(state)
        except Exception as e:
            self._log.warning(
                "reset_state_observer_failed",
                state=state.value,
                error_type=type(e).__name__,
            )


class PasswordResetService:
    def __init__(
        self,
        backend: IdentityBackend,
        *,
        expose_diagnostics: bool = False,
        on_security_violation: Optional[SecurityViolationHook] = None,
    ) -> None:
        self._backend = backend
        self._expose_diagnostics = expose_diagnostics
        self._on_security_violation = on_security_violation

    async def update_password(
        self,
        tokens: ResetTokens,
        new_password: str,
        *,
        observer: Optional[StateObserver] = None,
    ) -> None:
        """Set a new password using a reset link's credentials.

        Args:
            tokens: Structurally validated credentials of this attempt.
            new_password: The password to set.
            observer: Optional callback receiving every state transition.

        Raises:
            PasswordResetError: with the classified failure of the establish or
                update step. Raised only after teardown has completed.
            SessionSecurityError: if a session was already active before this
                call; nothing is established in that case.
        """
        log = log_with_context(
            _log,
            operation_id=f"op_{uuid.uuid4().hex[:8]}",
            token_kind=tokens.kind.value,
        )

        if self._backend.has_active_session():
            log.error("reset_security_violation", reason="session_active_before_establish")
            self._report_violation("session_active_before_establish", log)
            await self._teardown(log)
            raise SessionSecurityError(
                unresolved_user_error(), diagnostic="session active before establish"
            )

        progress = _Progress(log, observer)
        failure: Optional[PasswordResetError] = None
        progress.to(ResetState.SESSION_ESTABLISHING)
        try:
            failure = await self._establish(tokens, log)
            if failure is not None:
                progress.to(ResetState.ESTABLISH_FAILED)
            else:
                progress.to(ResetState.PASSWORD_UPDATING)
                failure = await self._update(new_password, log)
                if failure is not None:
                    progress.to(ResetState.UPDATE_FAILED)
        finally:
            try:
                progress.to(ResetState.SIGNING_OUT)
            finally:
                await self._teardown(log)
                self._check_residual_session(log)
                progress.to(ResetState.DONE)

        if failure is not None:
            raise failure
        log.info("password_reset_completed")

    async def _establish(
        self, tokens: ResetTokens, log
    ) -> Optional[PasswordResetError]:
        standard = tokens.kind is TokenKind.STANDARD
        context = ErrorContext.SESSION if standard else ErrorContext.OTP
        try:
            if standard:
                result = await self._backend.adopt_session(
                    tokens.access_token, tokens.refresh_token
                )
            else:
                result = await self._backend.verify_recovery_token(tokens.token_hash)
        except Exception as e:
            result = AuthResult(error=_error_from_exception(e))

        if result.error is not None:
            return self._failure(result.error, context, "reset_establish_failed", log)
        if result.user is None:
            log.warning("reset_establish_failed", reason="no_user_resolved")
            return PasswordResetError(
                unresolved_user_error(context), diagnostic="no user resolved"
            )
        log.debug("reset_session_established", context=context.value)
        return None

    async def _update(self, new_password: str, log) -> Optional[PasswordResetError]:
        try:
            result = await self._backend.set_password(new_password)
        except Exception as e:
            result = AuthResult(error=_error_from_exception(e))

        if result.error is not None:
            return self._failure(
                result.error, ErrorContext.PASSWORD, "reset_password_update_failed", log
            )
        log.debug("reset_password_updated")
        return None

    async def _teardown(self, log) -> None:
        try:
            result = await self._backend.terminate_session()
        except Exception as e:
            log.warning("reset_teardown_failed", error_type=type(e).__name__, **self._diag(str(e)))
            return
        if result.error is not None:
            log.warning(
                "reset_teardown_failed",
                status=result.error.status,
                **self._diag(result.error.message),
            )
            return
        log.debug("reset_teardown_completed")

    def _check_residual_session(self, log) -> None:
        if not self._backend.has_active_session():
            return
        log.error("reset_residual_session", reason="session_active_after_teardown")
        self._report_violation("session_active_after_teardown", log)

    def _report_violation(self, reason: str, log) -> None:
        if self._on_security_violation is None:
            return
        try:
            self._on_security_violation(reason)
        except Exception as e:
            log.error("reset_security_hook_failed", error_type=type(e).__name__)

    def _failure(
        self, error: BackendError, context: ErrorContext, event: str, log
    ) -> PasswordResetError:
        classified = classify_error(error, context)
        log.warning(
            event,
            category=classified.category.value,
            context=context.value,
            status=error.status,
            **self._diag(error.message),
        )
        return PasswordResetError(classified, diagnostic=error.message)

    def _diag(self, message: str) -> dict:
        # Raw backend text is a development aid only
        return {"detail": message} if self._expose_diagnostics else {}
