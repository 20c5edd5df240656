"""
Async client for the Tuya mobile cloud API.

The exporter needs five operations from the cloud: login, list locations,
list the devices of a location, read a device's DPs and publish DPs to a
device.  :class:`CloudApi` is the protocol the rest of the package depends
on; :class:`TuyaCloudClient` implements it over ``httpx`` against the
``/api.json`` mobile endpoint with signed form requests.

Wire protocol (as spoken by the ``@tuyapi/cloud`` client):
- Every request is a form POST carrying ``a`` (action), ``v``, ``clientId``,
  ``deviceId``, ``os``, ``lang``, ``time`` and ``postData`` (JSON body),
  plus ``gid`` for location-scoped actions and ``sid`` once logged in.
- ``sign`` is the MD5 of the sorted ``key=value||`` pairs of the whitelisted
  keys (see :data:`SIGNED_KEYS`; ``gid`` is sent but not signed), followed
  by the app secret.  ``postData`` is signed as its word-swapped MD5.
- Login is two steps: ``tuya.m.user.email.token.create`` returns a token and
  an RSA public key (decimal modulus + exponent); the MD5 of the password
  is then RSA/PKCS#1 v1.5 encrypted, hex encoded and sent to
  ``tuya.m.user.email.password.login`` with ``ifencrypt=1``.

Every request is a single attempt.  Errors are raised, never retried: the
poll loop treats them as fatal and the process supervisor restarts the
service.

Operations:
- login(): Authenticate with email/password and keep the session id.
- list_locations(): ``tuya.m.location.list``
- list_group_devices(group_id): ``tuya.m.my.group.device.list``
- get_dps(group_id, device_id): ``tuya.m.device.dp.get``
- publish_dps(group_id, device_id, dps): ``tuya.m.device.dp.publish``

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: Sign only whitelisted keys; encrypted two-step login; map every
  transport error to CloudConnectionError

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from typing import Any, Protocol

import httpx
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from tuya_exporter.src.exceptions import (
    CloudAPIError,
    CloudAuthError,
    CloudConnectionError,
)

logger = logging.getLogger(__name__)

REGION_ENDPOINTS: dict[str, str] = {
    "AY": "https://a1.tuyacn.com/api.json",
    "AZ": "https://a1.tuyaus.com/api.json",
    "EU": "https://a1.tuyaeu.com/api.json",
    "IN": "https://a1.tuyain.com/api.json",
}
"""Tuya region code -> mobile API endpoint."""

SIGNED_KEYS: frozenset[str] = frozenset(
    {
        "a", "v", "lat", "lon", "lang", "deviceId", "imei", "imsi",
        "appVersion", "ttid", "isH5", "h5Token", "os", "clientId",
        "postData", "time", "requestId", "n4h5", "sid", "sp", "et",
    }
)  # fmt: skip
"""Form parameters that take part in the request signature."""

_API_VERSION = "1.0"
_TOKEN_ACTION = "tuya.m.user.email.token.create"
_LOGIN_ACTION = "tuya.m.user.email.password.login"


class CloudApi(Protocol):
    """Operations the exporter needs from the Tuya cloud."""

    async def login(self) -> None: ...

    async def list_locations(self) -> list[dict[str, Any]]: ...

    async def list_group_devices(self, group_id: str) -> list[dict[str, Any]]: ...

    async def get_dps(self, group_id: str, device_id: str) -> dict[str, Any]: ...

    async def publish_dps(
        self, group_id: str, device_id: str, dps: dict[str, Any]
    ) -> None: ...


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()  # noqa: S324


def _post_data_hash(post_data: str) -> str:
    """Hash of the JSON body as the mobile API expects it (word-swapped MD5)."""
    digest = _md5(post_data)
    return digest[8:16] + digest[0:8] + digest[24:32] + digest[16:24]


def sign_params(params: dict[str, str], secret: str) -> str:
    """Compute the request signature for a set of form parameters.

    Non-empty parameters listed in :data:`SIGNED_KEYS` are sorted by key and
    written as ``key=value||``; ``postData`` is replaced by its word-swapped
    MD5.  The app secret is appended and the whole string is MD5-hashed.
    Other parameters (``gid``) are sent unsigned.

    Args:
        params: Form parameters, without ``sign``.
        secret: Application secret.

    Returns:
        Hex MD5 signature.
    """
    to_sign = ""
    for key in sorted(params):
        value = params[key]
        if key not in SIGNED_KEYS or value == "":
            continue
        if key == "postData":
            value = _post_data_hash(value)
        to_sign += f"{key}={value}||"
    return _md5(to_sign + secret)


def encrypt_password(password: str, modulus: str, exponent: str) -> str:
    """Encrypt the MD5 of *password* with the login RSA key.

    Args:
        password: Plain account password.
        modulus: RSA modulus as a decimal string.
        exponent: RSA public exponent as a decimal string.

    Returns:
        Hex-encoded PKCS#1 v1.5 ciphertext.
    """
    public_key = rsa.RSAPublicNumbers(int(exponent), int(modulus)).public_key()
    return public_key.encrypt(_md5(password).encode("ascii"), padding.PKCS1v15()).hex()


class TuyaCloudClient:
    """Tuya mobile API client.

    Args:
        app_key: Application key (``clientId``).
        app_secret: Application secret used for request signing.
        region: Region code, one of :data:`REGION_ENDPOINTS`.
        email: Account email for :meth:`login`.
        password: Account password for :meth:`login`.
        country_code: Country code sent on login (defaults to *region*).
        timeout_s: Per-request timeout in seconds.
        client: Optional ``httpx.AsyncClient`` to use instead of an owned one.

    Raises:
        ValueError: If *region* is unknown.

    Usage::

        async with TuyaCloudClient(key, secret, "EU", email, pwd) as cloud:
            await cloud.login()
            locations = await cloud.list_locations()
    """

    def __init__(
        self,
        app_key: str,
        app_secret: str,
        region: str,
        email: str,
        password: str,
        *,
        country_code: str | None = None,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        endpoint = REGION_ENDPOINTS.get(region.upper())
        if endpoint is None:
            raise ValueError(
                f"Unknown Tuya region '{region}' "
                f"(expected one of {', '.join(sorted(REGION_ENDPOINTS))})"
            )
        self._endpoint = endpoint
        self._app_key = app_key
        self._app_secret = app_secret
        self._email = email
        self._password = password
        self._country_code = country_code or region.upper()
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None
        self._session_id: str | None = None
        self._client_device_id = uuid.uuid4().hex

    async def __aenter__(self) -> TuyaCloudClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def endpoint(self) -> str:
        """The region's API endpoint URL."""
        return self._endpoint

    @property
    def logged_in(self) -> bool:
        """Whether a session id has been obtained."""
        return self._session_id is not None

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def login(self) -> None:
        """Authenticate with email/password and store the session id.

        Requests a login token and RSA key, then sends the encrypted
        password hash together with the token.

        Raises:
            CloudAuthError: If the cloud rejects the credentials or returns
                no token or session id.
        """
        try:
            token = await self._request(
                _TOKEN_ACTION,
                {"countryCode": self._country_code, "email": self._email},
                require_session=False,
            )
            if not isinstance(token, dict) or not token.get("token"):
                raise CloudAuthError("Token response did not contain a login token")
            passwd = encrypt_password(
                self._password, token["publicKey"], token["exponent"]
            )
            result = await self._request(
                _LOGIN_ACTION,
                {
                    "countryCode": self._country_code,
                    "email": self._email,
                    "passwd": passwd,
                    "ifencrypt": 1,
                    "options": '{"group": 1}',
                    "token": token["token"],
                },
                require_session=False,
            )
        except CloudAPIError as exc:
            raise CloudAuthError(str(exc)) from exc
        except (KeyError, ValueError) as exc:
            raise CloudAuthError(f"Unusable login key: {exc}") from exc

        session_id = result.get("sid") if isinstance(result, dict) else None
        if not session_id:
            raise CloudAuthError("Login response did not contain a session id")
        self._session_id = session_id
        logger.info("Logged in to Tuya cloud at %s", self._endpoint)

    async def list_locations(self) -> list[dict[str, Any]]:
        """Return the account's locations (each carries a ``groupId``)."""
        return await self._request("tuya.m.location.list")

    async def list_group_devices(self, group_id: str) -> list[dict[str, Any]]:
        """Return the raw device records of one location."""
        return await self._request("tuya.m.my.group.device.list", gid=group_id)

    async def get_dps(self, group_id: str, device_id: str) -> dict[str, Any]:
        """Return the current raw DP snapshot of a device."""
        return await self._request(
            "tuya.m.device.dp.get", {"devId": device_id}, gid=group_id
        )

    async def publish_dps(
        self, group_id: str, device_id: str, dps: dict[str, Any]
    ) -> None:
        """Publish a raw DP snapshot to a device as one batched write."""
        await self._request(
            "tuya.m.device.dp.publish",
            {"devId": device_id, "dps": dps},
            gid=group_id,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_params(
        self, action: str, data: dict[str, Any], gid: str | None
    ) -> dict[str, str]:
        params = {
            "a": action,
            "v": _API_VERSION,
            "clientId": self._app_key,
            "deviceId": str(data.get("devId") or self._client_device_id),
            "os": "Linux",
            "lang": "en",
            "time": str(int(time.time())),
            "postData": json.dumps(data, separators=(",", ":")),
        }
        if gid:
            params["gid"] = gid
        if self._session_id:
            params["sid"] = self._session_id
        params["sign"] = sign_params(params, self._app_secret)
        return params

    async def _request(
        self,
        action: str,
        data: dict[str, Any] | None = None,
        *,
        gid: str | None = None,
        require_session: bool = True,
    ) -> Any:
        """POST a signed action and return its ``result`` member.

        Raises:
            CloudAuthError: If a session is required but :meth:`login` has
                not succeeded.
            CloudConnectionError: On network errors and timeouts.
            CloudAPIError: On a non-200 status or ``success: false``.
        """
        if require_session and self._session_id is None:
            raise CloudAuthError(f"Not logged in (action {action})")

        params = self._build_params(action, data or {}, gid)
        try:
            response = await self._client.post(self._endpoint, data=params)
        except httpx.TransportError as exc:
            raise CloudConnectionError(f"{action}: {exc}") from exc

        if response.status_code != 200:
            raise CloudAPIError(
                action, str(response.status_code), "unexpected HTTP status"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise CloudAPIError(action, None, "response is not JSON") from exc

        if not body.get("success"):
            raise CloudAPIError(
                action, body.get("errorCode"), body.get("errorMsg", "")
            )

        logger.debug("Cloud action %s succeeded", action)
        return body.get("result")
