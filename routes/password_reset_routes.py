"""
Password-reset endpoints.

POST /auth/reset-password/inspect — offline verdict on a reset link.
    Never calls the identity backend; a valid verdict only means the link is
    well-formed.
POST /auth/reset-password — set a new password with the link's credentials.
    The session the backend grants for this is terminated before the
    response is produced, whatever the outcome.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from config import AppSettings
from dependencies import get_password_reset_service, get_settings
from errors import ResetLinkError
from schemas.dto.requests.password_reset import (
    InspectResetLinkRequest,
    ResetPasswordRequest,
)
from schemas.dto.responses.password_reset import (
    PasswordResetResponse,
    ResetLinkInspectionResponse,
)
from services.password_reset import PasswordResetService
from services.reset_flow import (
    SUCCESS_MESSAGE,
    inspect_reset_link,
    parse_password_form,
)
from shared.logging import get_logger
from shared.token_extraction import split_reset_url
from shared.validators import malformed_url_outcome

log = get_logger(__name__)

router = APIRouter(prefix="/auth/reset-password", tags=["password-reset"])


@router.post("/inspect", response_model=ResetLinkInspectionResponse)
async def inspect_link(
    body: InspectResetLinkRequest,
    settings: AppSettings = Depends(get_settings),
) -> ResetLinkInspectionResponse:
    query, fragment = body.query, body.fragment
    if body.url:
        try:
            query, fragment = split_reset_url(body.url)
        except ValueError as e:
            outcome = malformed_url_outcome(f"unparsable reset URL: {type(e).__name__}")
            return ResetLinkInspectionResponse(
                valid=False,
                error_category=outcome.error_category.value,
                message=outcome.user_message,
            )

    tokens, outcome = inspect_reset_link(query, fragment, settings.reset)
    log.info(
        "reset_link_inspected",
        valid=outcome.valid,
        category=outcome.error_category.value if outcome.error_category else None,
    )
    return ResetLinkInspectionResponse(
        valid=outcome.valid,
        token_kind=tokens.kind.value if tokens is not None else None,
        error_category=outcome.error_category.value if outcome.error_category else None,
        message=outcome.user_message or None,
    )


@router.post("", response_model=PasswordResetResponse)
async def reset_password(
    body: ResetPasswordRequest,
    settings: AppSettings = Depends(get_settings),
    service: PasswordResetService = Depends(get_password_reset_service),
) -> PasswordResetResponse:
    tokens, outcome = inspect_reset_link(body.token_params(), body.fragment, settings.reset)
    if tokens is None:
        raise ResetLinkError(outcome)

    form = parse_password_form(
        body.password, body.confirm_password, settings.reset.reset_min_password_length
    )
    await service.update_password(tokens, form.password)

    return PasswordResetResponse(
        message=SUCCESS_MESSAGE,
        redirect_to=settings.reset.reset_success_redirect,
        redirect_after_seconds=settings.reset.reset_redirect_delay_seconds,
    )
