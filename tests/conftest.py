"""Shared fixtures: JWT-shaped reset credentials and an in-memory identity backend."""

from __future__ import annotations

import time
from typing import Optional

import jwt
import pytest

from schemas.models.identity import AuthResult, BackendError, IdentityUser
from schemas.models.reset import ResetTokens


def make_jwt(exp_offset: int = 3600, **claims) -> str:
    payload = {"sub": "user-1", "exp": int(time.time()) + exp_offset, **claims}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


class FakeIdentityBackend:
    """In-memory IdentityBackend that records the order of calls.

    Credentials are single-use: once a password was set with a credential,
    establishing with it again fails the way a real backend reports it.
    """

    def __init__(
        self,
        *,
        establish_error: Optional[BackendError] = None,
        user: Optional[IdentityUser] = IdentityUser(id="user-1", email="tutor@example.com"),
        password_error: Optional[BackendError] = None,
        terminate_error: Optional[BackendError] = None,
        establish_raises: Optional[Exception] = None,
        password_raises: Optional[Exception] = None,
        terminate_raises: Optional[Exception] = None,
        sticky_session: bool = False,
    ) -> None:
        self.calls: list[str] = []
        self.passwords: list[str] = []
        self.consumed: set[str] = set()
        self.establish_error = establish_error
        self.user = user
        self.password_error = password_error
        self.terminate_error = terminate_error
        self.establish_raises = establish_raises
        self.password_raises = password_raises
        self.terminate_raises = terminate_raises
        self.sticky_session = sticky_session
        self.active = False
        self._credential: Optional[str] = None

    def has_active_session(self) -> bool:
        return self.active

    def _establish(self, credential: str) -> AuthResult:
        if self.establish_raises is not None:
            raise self.establish_raises
        if credential in self.consumed:
            return AuthResult(
                error=BackendError("Token has already been used", status=403)
            )
        if self.establish_error is not None:
            return AuthResult(error=self.establish_error)
        self.active = True
        self._credential = credential
        return AuthResult(user=self.user)

    async def adopt_session(self, access_token: str, refresh_token: str) -> AuthResult:
        self.calls.append("adopt_session")
        return self._establish(access_token)

    async def verify_recovery_token(self, token_hash: str) -> AuthResult:
        self.calls.append("verify_recovery_token")
        return self._establish(token_hash)

    async def set_password(self, new_password: str) -> AuthResult:
        self.calls.append("set_password")
        if self.password_raises is not None:
            raise self.password_raises
        if self.password_error is not None:
            return AuthResult(error=self.password_error)
        self.passwords.append(new_password)
        self.consumed.add(self._credential)
        return AuthResult(user=self.user)

    async def terminate_session(self) -> AuthResult:
        self.calls.append("terminate_session")
        if self.terminate_raises is not None:
            raise self.terminate_raises
        if not self.sticky_session:
            self.active = False
        return AuthResult(error=self.terminate_error)


@pytest.fixture
def access_token() -> str:
    return make_jwt()


@pytest.fixture
def refresh_token() -> str:
    return make_jwt(kind="refresh")


@pytest.fixture
def standard_tokens(access_token, refresh_token) -> ResetTokens:
    return ResetTokens.standard(access_token, refresh_token)


@pytest.fixture
def hash_tokens() -> ResetTokens:
    return ResetTokens.from_hash("valid-token-hash-12345")


@pytest.fixture
def backend() -> FakeIdentityBackend:
    return FakeIdentityBackend()


@pytest.fixture
def backend_factory():
    return FakeIdentityBackend


@pytest.fixture
def jwt_factory():
    return make_jwt
