"""IdentityBackend protocol — services depend on this, not the concrete implementation.

An implementation instance represents one client-side auth context: the
session adopted by adopt_session / verify_recovery_token is held by the
instance and used by set_password and terminate_session. Create one instance
per reset attempt.
"""

from typing import Protocol

from schemas.models.identity import AuthResult


class IdentityBackend(Protocol):
    async def adopt_session(self, access_token: str, refresh_token: str) -> AuthResult: ...

    async def verify_recovery_token(self, token_hash: str) -> AuthResult: ...

    async def set_password(self, new_password: str) -> AuthResult: ...

    async def terminate_session(self) -> AuthResult: ...

    def has_active_session(self) -> bool: ...
