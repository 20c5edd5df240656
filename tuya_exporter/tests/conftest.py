"""
Shared test fixtures for exporter tests.

Provides environment isolation for ExporterSettings tests and a mocked
cloud collaborator returning one location with metering sockets.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

# All ExporterSettings environment variable names, used for cleanup.
_ALL_EXPORTER_ENV_VARS = (
    "APP_KEY",
    "APPKEY",
    "APP_SECRET",
    "APPSECRET",
    "REGION",
    "COUNTRYCODE",
    "EMAIL",
    "PASSWORD",
    "LOGIN_COUNTRY_CODE",
    "LISTEN_HOST",
    "LISTEN_PORT",
    "POLL_DELAY_S",
    "WATCHDOG_TIMEOUT_S",
    "REFRESH_INTERVAL_S",
    "INACTIVE_TIMEOUT_S",
    "REQUEST_TIMEOUT_S",
    "EXPORTER_CONFIG_FILE",
)

SOCKET_PRODUCT_ID = "pLrthS5AKLKbAQ77"
NOW_S = 1_760_000_000.0
"""Fixed wall clock used by registry tests (seconds since the epoch)."""

SOCKET_RAW: dict[str, Any] = {"1": True, "4": 500, "5": 100, "6": 2300}


def make_raw_device(
    name: str,
    dev_id: str,
    *,
    product_id: str = SOCKET_PRODUCT_ID,
    dp_max_time: float | None = None,
) -> dict[str, Any]:
    """Build a raw device record as listed by ``tuya.m.my.group.device.list``."""
    raw: dict[str, Any] = {"name": name, "devId": dev_id, "productId": product_id}
    if dp_max_time is not None:
        raw["dpMaxTime"] = dp_max_time
    return raw


@pytest.fixture(autouse=True)
def _clean_exporter_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove exporter env vars and isolate from .env / config files.

    Changes working directory to tmp_path so no ``.env`` or
    ``config/config.json`` is accidentally loaded by BaseSettings.
    """
    for var in _ALL_EXPORTER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required credentials; everything else defaults."""
    env = {
        "APP_KEY": "key-123",
        "APP_SECRET": "secret-456",
        "REGION": "EU",
        "EMAIL": "user@example.com",
        "PASSWORD": "hunter2",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def fake_cloud() -> AsyncMock:
    """A cloud collaborator with one location holding two sockets.

    ``get_dps`` returns :data:`SOCKET_RAW` for every device.
    """
    cloud = AsyncMock()
    cloud.login = AsyncMock()
    cloud.list_locations = AsyncMock(return_value=[{"groupId": "g1", "name": "Home"}])
    cloud.list_group_devices = AsyncMock(
        return_value=[
            make_raw_device("Desk Lamp", "dev-1"),
            make_raw_device("Kettle", "dev-2"),
        ]
    )
    cloud.get_dps = AsyncMock(return_value=dict(SOCKET_RAW))
    cloud.publish_dps = AsyncMock()
    cloud.close = AsyncMock()
    return cloud
