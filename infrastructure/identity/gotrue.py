"""GoTrue (Supabase Auth) implementation of IdentityBackend.

Talks to the GoTrue REST API through HttpClient:
- adopt_session          → GET  /user            (refresh via POST /token when expired)
- verify_recovery_token  → POST /verify          type=recovery
- set_password           → PUT  /user
- terminate_session      → POST /logout          scope=local

The adopted session lives only on this instance; it is never written to
cookies, storage or any shared cache. Transport failures and error payloads
are normalized into BackendError here so callers never see httpx exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from infrastructure.http_client import HttpClient
from schemas.models.identity import AuthResult, BackendError, IdentityUser
from shared.logging import get_logger

log = get_logger(__name__)

# Logout answers for a session that is already gone
_ALREADY_SIGNED_OUT = {401, 403, 404}


@dataclass
class _Session:
    access_token: str
    refresh_token: Optional[str] = None


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_from_response(status_code: int, body: dict[str, Any]) -> BackendError:
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or f"HTTP {status_code}"
    )
    code = body.get("error_code")
    if code is None and isinstance(body.get("code"), str):
        code = body["code"]
    if code is None and isinstance(body.get("error"), str):
        code = body["error"]
    return BackendError(message=str(message), status=status_code, code=code)


def _user_from(body: dict[str, Any]) -> Optional[IdentityUser]:
    data = body.get("user") if isinstance(body.get("user"), dict) else body
    user_id = data.get("id")
    if not user_id:
        return None
    return IdentityUser(id=str(user_id), email=data.get("email"))


class GoTrueIdentityBackend:
    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client
        self._session: Optional[_Session] = None

    def has_active_session(self) -> bool:
        return self._session is not None

    async def _send(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        **kwargs: Any,
    ) -> tuple[dict[str, Any], Optional[BackendError]]:
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            response = await getattr(self._http, method)(path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            log.warning("gotrue_request_timeout", path=path, error_type=type(e).__name__)
            return {}, BackendError(message="request timed out", network=True)
        except httpx.TransportError as e:
            log.warning("gotrue_request_failed", path=path, error_type=type(e).__name__)
            return {}, BackendError(message="network error", network=True)

        body = _json_or_empty(response)
        if response.status_code >= 400:
            return body, _error_from_response(response.status_code, body)
        return body, None

    def _adopt_from_body(self, body: dict[str, Any]) -> AuthResult:
        access_token = body.get("access_token")
        user = _user_from(body)
        if access_token:
            self._session = _Session(access_token, body.get("refresh_token"))
        return AuthResult(user=user)

    async def adopt_session(self, access_token: str, refresh_token: str) -> AuthResult:
        body, error = await self._send("get", "/user", access_token=access_token)
        if error is None:
            self._session = _Session(access_token, refresh_token)
            return AuthResult(user=_user_from(body))

        if error.status in (401, 403) and "expired" in error.message.lower():
            log.info("gotrue_access_token_expired", action="refresh")
            body, refresh_error = await self._send(
                "post",
                "/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
            )
            if refresh_error is not None:
                return AuthResult(error=refresh_error)
            return self._adopt_from_body(body)

        return AuthResult(error=error)

    async def verify_recovery_token(self, token_hash: str) -> AuthResult:
        body, error = await self._send(
            "post",
            "/verify",
            json={"type": "recovery", "token_hash": token_hash},
        )
        if error is not None:
            return AuthResult(error=error)
        return self._adopt_from_body(body)

    async def set_password(self, new_password: str) -> AuthResult:
        if self._session is None:
            return AuthResult(error=BackendError(message="no active session"))
        body, error = await self._send(
            "put",
            "/user",
            access_token=self._session.access_token,
            json={"password": new_password},
        )
        if error is not None:
            return AuthResult(error=error)
        return AuthResult(user=_user_from(body))

    async def terminate_session(self) -> AuthResult:
        if self._session is None:
            return AuthResult()
        access_token = self._session.access_token
        try:
            _, error = await self._send(
                "post",
                "/logout",
                access_token=access_token,
                params={"scope": "local"},
            )
        finally:
            # The local session is dropped even if the server call fails
            self._session = None

        if error is not None and error.status in _ALREADY_SIGNED_OUT:
            return AuthResult()
        return AuthResult(error=error)
