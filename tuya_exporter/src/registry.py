"""
Registry of the live Tuya devices, rebuilt from the cloud on refresh.

A refresh clears the gauges and the device table, walks every location and
its devices, drops devices whose last DP report is older than the inactivity
timeout, dispatches the rest on product id and registers their gauges.
Devices are keyed by their normalized name; if two names normalize to the
same key the later one wins.

Cloud errors are not caught here: the poll loop treats a failed refresh as
fatal.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from tuya_exporter.src.device_classes import resolve_product
from tuya_exporter.src.devices import Device

if TYPE_CHECKING:
    from tuya_exporter.src.cloud import CloudApi
    from tuya_exporter.src.gauges import GaugeRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_REFRESH_INTERVAL_S: float = 60 * 60
"""Seconds between two device list refreshes."""

DEFAULT_INACTIVE_TIMEOUT_S: float = 30 * 60
"""Devices without a DP report for this long are left out of a refresh."""

_SEPARATORS = re.compile(r"[ \t\r\n_]+")
_DISALLOWED = re.compile(r"[^a-z0-9_]")


def normalize_device_name(name: str) -> str:
    """Turn a display name into the registry key / URL path segment.

    Lowercases, trims, collapses whitespace and underscore runs into a
    single ``_`` and strips anything outside ``[a-z0-9_]``.

    >>> normalize_device_name("  Living Room__Lamp (2) ")
    'living_room_lamp_2'
    """
    name = _SEPARATORS.sub("_", name.lower().strip())
    return _DISALLOWED.sub("", name)


class DeviceRegistry:
    """Live devices keyed by normalized name.

    Args:
        cloud: Cloud collaborator used to list locations and devices.
        gauges: Gauge registry reset and repopulated on every refresh.
        refresh_interval_s: Minimum seconds between refreshes.
        inactive_timeout_s: Inactivity window applied to ``dpMaxTime``.
        clock: Wall-clock source in seconds since the epoch.
    """

    def __init__(
        self,
        cloud: CloudApi,
        gauges: GaugeRegistry,
        *,
        refresh_interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
        inactive_timeout_s: float = DEFAULT_INACTIVE_TIMEOUT_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cloud = cloud
        self._gauges = gauges
        self._refresh_interval_s = refresh_interval_s
        self._inactive_timeout_s = inactive_timeout_s
        self._clock = clock
        self._devices: dict[str, Device] = {}
        self._last_refresh: float | None = None

    def __len__(self) -> int:
        return len(self._devices)

    @property
    def devices(self) -> Mapping[str, Device]:
        """Read-only view of the current devices."""
        return MappingProxyType(self._devices)

    @property
    def last_refresh(self) -> float | None:
        """Clock value at the start of the last refresh, or ``None``."""
        return self._last_refresh

    def refresh_due(self) -> bool:
        """Whether no refresh happened yet or the interval has elapsed."""
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh > self._refresh_interval_s

    def lookup(self, name: str) -> Device | None:
        """Resolve a device by (possibly un-normalized) name."""
        return self._devices.get(normalize_device_name(name))

    async def refresh(self) -> None:
        """Rebuild the device table and gauges from the cloud."""
        now = self._clock()
        self._last_refresh = now
        self._devices = {}
        self._gauges.reset()

        min_dp_max_time_ms = (now - self._inactive_timeout_s) * 1000

        locations = await self._cloud.list_locations()
        logger.info("Found %d location(s)", len(locations))

        for location in locations:
            group_id = location["groupId"]
            raw_devices = await self._cloud.list_group_devices(group_id)
            logger.info(
                "Location %s: %d device(s)", location.get("name", group_id), len(raw_devices)
            )
            for raw in raw_devices:
                self._add_device(raw, group_id, min_dp_max_time_ms)

        logger.info("Device refresh done: %d active device(s)", len(self._devices))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _add_device(
        self, raw: dict[str, Any], group_id: str, min_dp_max_time_ms: float
    ) -> None:
        name = raw.get("name", "")
        dp_max_time = raw.get("dpMaxTime")
        if dp_max_time and dp_max_time < min_dp_max_time_ms:
            logger.info("Skipping inactive device %r (dpMaxTime=%s)", name, dp_max_time)
            return

        device_class = resolve_product(raw.get("productId"))
        if device_class is None:
            logger.debug(
                "Ignoring device %r with unsupported product %s", name, raw.get("productId")
            )
            return

        device = Device(
            self._cloud,
            name=name,
            group_id=group_id,
            device_id=raw["devId"],
            device_class=device_class,
        )
        self._gauges.ensure_gauges(device_class)

        key = normalize_device_name(name)
        if key in self._devices:
            logger.warning(
                "Device %r replaces %r under key '%s'", name, self._devices[key].name, key
            )
        self._devices[key] = device
        logger.info("Registered %s device %r as '%s'", device.type_name, name, key)
