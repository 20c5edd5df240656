"""
Unit tests for the Tuya cloud client.

Tests verify:
- Request signing over the sorted, whitelisted, non-empty parameters
  (``gid`` is not signed), pinned against a fixed digest.
- Region validation at construction.
- Login requests a token, sends the RSA-encrypted password hash and stores
  the session id; rejected logins raise CloudAuthError.
- Actions require a session.
- Every transport error, bad statuses and ``success: false`` map to
  CloudError subclasses.
- Device reads and writes send the expected action and payload.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: Fixed-digest signing, encrypted login, read errors

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from tuya_exporter.src.cloud import (
    REGION_ENDPOINTS,
    TuyaCloudClient,
    encrypt_password,
    sign_params,
)
from tuya_exporter.src.exceptions import (
    CloudAPIError,
    CloudAuthError,
    CloudConnectionError,
    CloudError,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

Handler = Callable[[httpx.Request], httpx.Response]

_LOGIN_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
_TOKEN_RESULT = {
    "token": "login-token",
    "publicKey": str(_LOGIN_KEY.public_key().public_numbers().n),
    "exponent": str(_LOGIN_KEY.public_key().public_numbers().e),
}
_HUNTER2_MD5 = hashlib.md5(b"hunter2").hexdigest()  # noqa: S324


def _form(request: httpx.Request) -> dict[str, str]:
    """Decode the form-encoded body of a captured request."""
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _decrypt(hex_ciphertext: str) -> str:
    return _LOGIN_KEY.decrypt(bytes.fromhex(hex_ciphertext), padding.PKCS1v15()).decode()


def _ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": result})


def _make_client(handler: Handler) -> TuyaCloudClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TuyaCloudClient(
        "key-123", "secret-456", "EU", "user@example.com", "hunter2", client=http
    )


def _routing_handler(
    results: dict[str, Any], seen: list[dict[str, str]] | None = None
) -> Handler:
    """Answer each action from *results*; the login handshake always succeeds."""

    def handler(request: httpx.Request) -> httpx.Response:
        form = _form(request)
        if seen is not None:
            seen.append(form)
        if form["a"] == "tuya.m.user.email.token.create":
            return _ok(_TOKEN_RESULT)
        if form["a"] == "tuya.m.user.email.password.login":
            return _ok({"sid": "session-1"})
        return _ok(results.get(form["a"]))

    return handler


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


class TestSignParams:
    def test_fixed_digest(self) -> None:
        params = {
            "a": "tuya.m.location.list",
            "v": "1.0",
            "clientId": "key-123",
            "deviceId": "dev-1",
            "os": "Linux",
            "lang": "en",
            "time": "1700000000",
            "postData": "{}",
            "gid": "g1",
            "sid": "session-1",
        }

        assert sign_params(params, "secret-456") == "f0cfe150b79646b30a38d0ef462285af"

    def test_gid_is_not_signed(self) -> None:
        params = {"a": "tuya.m.my.group.device.list", "postData": "{}"}
        assert sign_params({**params, "gid": "g1"}, "x") == sign_params(params, "x")

    def test_empty_values_skipped(self) -> None:
        expected = hashlib.md5(b"a=tuya.m.location.list||s3cret").hexdigest()  # noqa: S324
        assert sign_params({"a": "tuya.m.location.list", "sid": ""}, "s3cret") == expected

    def test_post_data_is_hashed(self) -> None:
        digest = hashlib.md5(b"{}").hexdigest()  # noqa: S324
        swapped = digest[8:16] + digest[0:8] + digest[24:32] + digest[16:24]
        expected = hashlib.md5(f"postData={swapped}||x".encode()).hexdigest()  # noqa: S324

        assert sign_params({"postData": "{}"}, "x") == expected


class TestEncryptPassword:
    def test_decrypts_to_password_hash(self) -> None:
        ciphertext = encrypt_password(
            "hunter2", _TOKEN_RESULT["publicKey"], _TOKEN_RESULT["exponent"]
        )

        assert len(ciphertext) == 2 * 256
        assert _decrypt(ciphertext) == _HUNTER2_MD5


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    @pytest.mark.parametrize("region", sorted(REGION_ENDPOINTS))
    def test_known_regions(self, region: str) -> None:
        client = TuyaCloudClient("k", "s", region.lower(), "e", "p")
        assert client.endpoint == REGION_ENDPOINTS[region]
        assert client.logged_in is False

    def test_unknown_region_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown Tuya region"):
            TuyaCloudClient("k", "s", "MARS", "e", "p")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_handshake(self) -> None:
        seen: list[dict[str, str]] = []
        client = _make_client(_routing_handler({}, seen))

        await client.login()

        assert client.logged_in is True
        assert [form["a"] for form in seen] == [
            "tuya.m.user.email.token.create",
            "tuya.m.user.email.password.login",
        ]
        assert json.loads(seen[0]["postData"]) == {
            "countryCode": "EU",
            "email": "user@example.com",
        }

        login = json.loads(seen[1]["postData"])
        assert login["token"] == "login-token"
        assert login["ifencrypt"] == 1
        assert login["countryCode"] == "EU"
        assert _decrypt(login["passwd"]) == _HUNTER2_MD5
        assert "sid" not in seen[1]
        assert seen[1]["clientId"] == "key-123"
        assert seen[1]["sign"] == sign_params(
            {k: v for k, v in seen[1].items() if k != "sign"}, "secret-456"
        )

    @pytest.mark.asyncio
    async def test_rejected_login(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if _form(request)["a"] == "tuya.m.user.email.token.create":
                return _ok(_TOKEN_RESULT)
            return httpx.Response(
                200,
                json={"success": False, "errorCode": "USER_PASSWD_WRONG", "errorMsg": "no"},
            )

        client = _make_client(handler)

        with pytest.raises(CloudAuthError, match="USER_PASSWD_WRONG"):
            await client.login()
        assert client.logged_in is False

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        client = _make_client(lambda _req: _ok({}))

        with pytest.raises(CloudAuthError, match="login token"):
            await client.login()

    @pytest.mark.asyncio
    async def test_unusable_key(self) -> None:
        client = _make_client(
            lambda _req: _ok({"token": "t", "publicKey": "not-a-number", "exponent": "3"})
        )

        with pytest.raises(CloudAuthError, match="Unusable login key"):
            await client.login()

    @pytest.mark.asyncio
    async def test_login_without_session_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if _form(request)["a"] == "tuya.m.user.email.token.create":
                return _ok(_TOKEN_RESULT)
            return _ok({})

        client = _make_client(handler)

        with pytest.raises(CloudAuthError, match="session id"):
            await client.login()

    @pytest.mark.asyncio
    async def test_actions_require_session(self) -> None:
        client = _make_client(_routing_handler({}))

        with pytest.raises(CloudAuthError, match="Not logged in"):
            await client.list_locations()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class TestActions:
    @pytest.mark.asyncio
    async def test_list_locations_and_devices(self) -> None:
        seen: list[dict[str, str]] = []
        client = _make_client(
            _routing_handler(
                {
                    "tuya.m.location.list": [{"groupId": "g1"}],
                    "tuya.m.my.group.device.list": [{"devId": "dev-1"}],
                },
                seen,
            )
        )
        await client.login()

        assert await client.list_locations() == [{"groupId": "g1"}]
        assert await client.list_group_devices("g1") == [{"devId": "dev-1"}]
        assert seen[-1]["gid"] == "g1"
        assert seen[-1]["sid"] == "session-1"
        assert seen[-1]["sign"] == sign_params(
            {k: v for k, v in seen[-1].items() if k not in ("sign", "gid")}, "secret-456"
        )

    @pytest.mark.asyncio
    async def test_get_and_publish_dps(self) -> None:
        seen: list[dict[str, str]] = []
        client = _make_client(
            _routing_handler({"tuya.m.device.dp.get": {"1": True, "5": 100}}, seen)
        )
        await client.login()

        assert await client.get_dps("g1", "dev-1") == {"1": True, "5": 100}
        await client.publish_dps("g1", "dev-1", {"1": False})

        assert seen[-1]["a"] == "tuya.m.device.dp.publish"
        assert seen[-1]["deviceId"] == "dev-1"
        assert json.loads(seen[-1]["postData"]) == {"devId": "dev-1", "dps": {"1": False}}


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError, httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError],
    )
    async def test_transport_errors(self, error: type[httpx.TransportError]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error("connection reset", request=request)

        client = _make_client(handler)

        with pytest.raises(CloudConnectionError):
            await client.login()

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        client = _make_client(_routing_handler({}))
        await client.login()

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        with pytest.raises(CloudConnectionError):
            await client.get_dps("g1", "dev-1")

    @pytest.mark.asyncio
    async def test_unexpected_status(self) -> None:
        client = _make_client(lambda _req: httpx.Response(503))

        with pytest.raises(CloudError):
            await client.login()

    @pytest.mark.asyncio
    async def test_api_failure_carries_action_and_code(self) -> None:
        login = _routing_handler({})

        def handler(request: httpx.Request) -> httpx.Response:
            if _form(request)["a"].startswith("tuya.m.user."):
                return login(request)
            return httpx.Response(
                200, json={"success": False, "errorCode": "PERMISSION_DENIED"}
            )

        client = _make_client(handler)
        await client.login()

        with pytest.raises(CloudAPIError) as exc_info:
            await client.get_dps("g1", "dev-1")

        assert exc_info.value.action == "tuya.m.device.dp.get"
        assert exc_info.value.error_code == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _make_client(lambda _req: httpx.Response(200, text="<html>"))

        with pytest.raises(CloudError):
            await client.login()
