"""Unit tests for infrastructure.identity.gotrue against a mocked HttpClient."""

from __future__ import annotations

import httpx
import pytest

from infrastructure.http_client import HttpClient
from infrastructure.identity.gotrue import GoTrueIdentityBackend

USER = {"id": "user-1", "email": "tutor@example.com"}


def _response(status: int, payload=None) -> httpx.Response:
    if payload is None:
        return httpx.Response(status)
    return httpx.Response(status, json=payload)


@pytest.fixture
def http(mocker):
    return mocker.AsyncMock(spec=HttpClient)


@pytest.fixture
def gotrue(http):
    return GoTrueIdentityBackend(http)


class TestAdoptSession:
    async def test_success(self, http, gotrue):
        http.get.return_value = _response(200, USER)

        result = await gotrue.adopt_session("access.jwt.token", "refresh.jwt.token")

        assert result.ok
        assert result.user.id == "user-1"
        assert gotrue.has_active_session()
        http.get.assert_awaited_once_with(
            "/user", headers={"Authorization": "Bearer access.jwt.token"}
        )

    async def test_rejected(self, http, gotrue):
        http.get.return_value = _response(
            401, {"code": 401, "error_code": "bad_jwt", "msg": "invalid JWT"}
        )

        result = await gotrue.adopt_session("access.jwt.token", "refresh.jwt.token")

        assert not result.ok
        assert result.error.status == 401
        assert result.error.code == "bad_jwt"
        assert result.error.message == "invalid JWT"
        assert not gotrue.has_active_session()
        http.post.assert_not_called()

    async def test_expired_access_token_is_refreshed(self, http, gotrue):
        http.get.return_value = _response(
            403, {"error_code": "bad_jwt", "msg": "token is expired"}
        )
        http.post.return_value = _response(
            200,
            {"access_token": "fresh.jwt.token", "refresh_token": "r2", "user": USER},
        )

        result = await gotrue.adopt_session("access.jwt.token", "refresh.jwt.token")

        assert result.ok
        assert result.user.email == "tutor@example.com"
        http.post.assert_awaited_once_with(
            "/token",
            headers={},
            params={"grant_type": "refresh_token"},
            json={"refresh_token": "refresh.jwt.token"},
        )

        http.put.return_value = _response(200, USER)
        await gotrue.set_password("n3w-Passw0rd")
        assert http.put.await_args.kwargs["headers"] == {
            "Authorization": "Bearer fresh.jwt.token"
        }

    async def test_refresh_failure(self, http, gotrue):
        http.get.return_value = _response(401, {"msg": "token is expired"})
        http.post.return_value = _response(
            400,
            {"error": "invalid_grant", "error_description": "Refresh Token Not Found"},
        )

        result = await gotrue.adopt_session("access.jwt.token", "refresh.jwt.token")

        assert result.error.message == "Refresh Token Not Found"
        assert result.error.code == "invalid_grant"
        assert not gotrue.has_active_session()


class TestVerifyRecoveryToken:
    async def test_success(self, http, gotrue):
        http.post.return_value = _response(
            200, {"access_token": "a.b.c", "refresh_token": "r", "user": USER}
        )

        result = await gotrue.verify_recovery_token("valid-token-hash-12345")

        assert result.user.id == "user-1"
        assert gotrue.has_active_session()
        http.post.assert_awaited_once_with(
            "/verify",
            headers={},
            json={"type": "recovery", "token_hash": "valid-token-hash-12345"},
        )

    async def test_expired_otp(self, http, gotrue):
        http.post.return_value = _response(
            403, {"error_code": "otp_expired", "msg": "Email link is invalid or has expired"}
        )

        result = await gotrue.verify_recovery_token("valid-token-hash-12345")

        assert result.error.code == "otp_expired"
        assert not gotrue.has_active_session()

    async def test_success_without_session_payload(self, http, gotrue):
        http.post.return_value = _response(200, {})

        result = await gotrue.verify_recovery_token("valid-token-hash-12345")

        assert result.ok
        assert result.user is None
        assert not gotrue.has_active_session()


class TestTransportFailures:
    async def test_timeout(self, http, gotrue):
        http.post.side_effect = httpx.ReadTimeout("slow")
        result = await gotrue.verify_recovery_token("valid-token-hash-12345")
        assert result.error.network
        assert result.error.message == "request timed out"

    async def test_connect_error(self, http, gotrue):
        http.get.side_effect = httpx.ConnectError("refused")
        result = await gotrue.adopt_session("a.b.c", "d.e.f")
        assert result.error.network
        assert result.error.message == "network error"

    async def test_non_json_error_body(self, http, gotrue):
        http.post.return_value = httpx.Response(502, text="<html>Bad Gateway</html>")
        result = await gotrue.verify_recovery_token("valid-token-hash-12345")
        assert result.error.status == 502
        assert result.error.message == "HTTP 502"


class TestSetPassword:
    async def test_without_session(self, http, gotrue):
        result = await gotrue.set_password("n3w-Passw0rd")
        assert result.error.message == "no active session"
        http.put.assert_not_called()

    async def test_weak_password(self, http, gotrue):
        http.get.return_value = _response(200, USER)
        http.put.return_value = _response(
            422, {"error_code": "weak_password", "msg": "Password should be stronger"}
        )
        await gotrue.adopt_session("a.b.c", "d.e.f")

        result = await gotrue.set_password("n3w-Passw0rd")

        assert result.error.code == "weak_password"
        http.put.assert_awaited_once_with(
            "/user",
            headers={"Authorization": "Bearer a.b.c"},
            json={"password": "n3w-Passw0rd"},
        )


class TestTerminateSession:
    async def test_without_session_is_noop(self, http, gotrue):
        result = await gotrue.terminate_session()
        assert result.ok
        http.post.assert_not_called()

    async def test_logout(self, http, gotrue):
        http.get.return_value = _response(200, USER)
        http.post.return_value = _response(204)
        await gotrue.adopt_session("a.b.c", "d.e.f")

        result = await gotrue.terminate_session()

        assert result.ok
        assert not gotrue.has_active_session()
        http.post.assert_awaited_once_with(
            "/logout",
            headers={"Authorization": "Bearer a.b.c"},
            params={"scope": "local"},
        )

    @pytest.mark.parametrize("status", [401, 403, 404])
    async def test_already_signed_out(self, http, gotrue, status):
        http.get.return_value = _response(200, USER)
        http.post.return_value = _response(status, {"msg": "session not found"})
        await gotrue.adopt_session("a.b.c", "d.e.f")

        assert (await gotrue.terminate_session()).ok
        assert not gotrue.has_active_session()

    async def test_server_error_still_clears_session(self, http, gotrue):
        http.get.return_value = _response(200, USER)
        http.post.return_value = _response(500, {"msg": "boom"})
        await gotrue.adopt_session("a.b.c", "d.e.f")

        result = await gotrue.terminate_session()

        assert result.error.status == 500
        assert not gotrue.has_active_session()

    async def test_unexpected_exception_still_clears_session(self, http, gotrue):
        http.get.return_value = _response(200, USER)
        http.post.side_effect = RuntimeError("loop closed")
        await gotrue.adopt_session("a.b.c", "d.e.f")

        with pytest.raises(RuntimeError):
            await gotrue.terminate_session()
        assert not gotrue.has_active_session()
