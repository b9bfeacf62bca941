"""Result shapes returned by identity backends.

Every backend call is normalized into these types where it crosses the
infrastructure boundary, so services never inspect raw HTTP payloads or
library exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackendError:
    message: str
    status: Optional[int] = None
    code: Optional[str] = None
    network: bool = False  # transport failure or timeout, no response received


@dataclass(frozen=True)
class IdentityUser:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of adopt_session / verify_recovery_token / set_password / terminate_session."""

    user: Optional[IdentityUser] = None
    error: Optional[BackendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
