"""Unit tests for the reset value types and identity result shapes."""

import pytest
from pydantic import ValidationError

from schemas.models.identity import AuthResult, BackendError, IdentityUser
from schemas.models.reset import (
    ResetTokens,
    StructuralErrorCategory,
    TokenKind,
    ValidationOutcome,
)


# ── ResetTokens ───────────────────────────────────────────────────────────────

class TestResetTokens:
    def test_standard(self):
        t = ResetTokens.standard("access.jwt.token", "refresh.jwt.token")
        assert t.kind is TokenKind.STANDARD
        assert t.token_hash is None

    def test_from_hash_mirrors_access_token(self):
        t = ResetTokens.from_hash("valid-token-hash-12345")
        assert t.kind is TokenKind.HASH
        assert t.access_token == t.token_hash == "valid-token-hash-12345"
        assert t.refresh_token is None

    @pytest.mark.parametrize(
        "data",
        [
            {"access_token": "a", "kind": "standard"},
            {"access_token": "a", "refresh_token": "r", "token_hash": "h", "kind": "standard"},
            {"access_token": "h", "kind": "hash"},
            {"access_token": "h", "token_hash": "h", "refresh_token": "r", "kind": "hash"},
            {"access_token": "other", "token_hash": "h", "kind": "hash"},
        ],
        ids=[
            "standard_without_refresh",
            "standard_with_hash",
            "hash_without_hash",
            "hash_with_refresh",
            "hash_not_mirrored",
        ],
    )
    def test_kind_invariant(self, data):
        with pytest.raises(ValidationError):
            ResetTokens.model_validate(data)

    def test_frozen(self):
        t = ResetTokens.from_hash("valid-token-hash-12345")
        with pytest.raises(ValidationError):
            t.token_hash = "other"

    def test_repr_hides_credentials(self):
        t = ResetTokens.standard("secret-access-value", "secret-refresh-value")
        text = repr(t)
        assert "secret-access-value" not in text
        assert "secret-refresh-value" not in text
        assert "standard" in text


# ── ValidationOutcome ─────────────────────────────────────────────────────────

class TestValidationOutcome:
    def test_ok(self):
        o = ValidationOutcome.ok()
        assert o.valid
        assert o.error_category is None
        assert o.user_message == ""

    def test_fail(self):
        o = ValidationOutcome.fail(
            StructuralErrorCategory.MISSING_TOKENS, "incomplete", "no tokens in query"
        )
        assert not o.valid
        assert o.internal_detail == "no tokens in query"
        assert "no tokens in query" not in repr(o)

    def test_valid_with_category_rejected(self):
        with pytest.raises(ValidationError):
            ValidationOutcome(
                valid=True, error_category=StructuralErrorCategory.INVALID_TOKENS
            )

    def test_invalid_without_category_rejected(self):
        with pytest.raises(ValidationError):
            ValidationOutcome(valid=False)


# ── Identity results ──────────────────────────────────────────────────────────

class TestAuthResult:
    def test_ok(self):
        assert AuthResult(user=IdentityUser(id="u1")).ok
        assert AuthResult().ok

    def test_error(self):
        r = AuthResult(error=BackendError("nope", status=400))
        assert not r.ok
        assert r.user is None

    def test_backend_error_defaults(self):
        e = BackendError("boom")
        assert e.status is None
        assert e.code is None
        assert e.network is False
