"""
A single Tuya device bound to its device class.

:class:`Device` reads and writes semantic fields; the translation itself is
done by the pure functions in :mod:`tuya_exporter.src.datapoints` using two
lookup tables built once when the device is created.  Devices are never
mutated after a refresh: the registry replaces them wholesale.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tuya_exporter.src.datapoints import (
    Values,
    index_by_name,
    index_by_raw_id,
    map_forward,
    map_reverse,
)

if TYPE_CHECKING:
    from tuya_exporter.src.cloud import CloudApi
    from tuya_exporter.src.device_classes import DeviceClass

logger = logging.getLogger(__name__)


class Device:
    """One physical device reachable through the cloud.

    Args:
        cloud: Cloud collaborator used for reads and writes.
        name: Display name as configured in the Tuya app.  Used as the
            gauge label value.
        group_id: Location (group) id the device belongs to.
        device_id: Tuya device id.
        device_class: Variant providing the DP map and derivation.
    """

    def __init__(
        self,
        cloud: CloudApi,
        *,
        name: str,
        group_id: str,
        device_id: str,
        device_class: DeviceClass,
    ) -> None:
        self._cloud = cloud
        self.name = name
        self.group_id = group_id
        self.device_id = device_id
        self.device_class = device_class
        self._by_raw_id = index_by_raw_id(device_class.datapoints)
        self._by_name = index_by_name(device_class.datapoints)

    def __repr__(self) -> str:
        return (
            f"Device(name={self.name!r}, device_id={self.device_id!r}, "
            f"type={self.device_class.type_name!r})"
        )

    @property
    def type_name(self) -> str:
        return self.device_class.type_name

    def map_forward(self, raw: dict[str, Any], *, add_unknown: bool = False) -> Values:
        """Translate a raw DP snapshot for this device's class."""
        return map_forward(
            raw,
            self._by_raw_id,
            add_unknown=add_unknown,
            derive=self.device_class.derive,
        )

    def map_reverse(self, values: dict[str, Any]) -> dict[str, Any]:
        """Translate semantic fields into the DPs this class can write."""
        return map_reverse(values, self._by_name)

    async def get(self, add_unknown: bool = False) -> Values:
        """Fetch the device's DPs from the cloud and translate them."""
        raw = await self._cloud.get_dps(self.group_id, self.device_id)
        return self.map_forward(raw, add_unknown=add_unknown)

    async def set(self, values: dict[str, Any]) -> None:
        """Write settable fields to the device in one batched publish.

        Fields that are unknown, virtual or read-only are dropped.  Nothing
        is sent when no field survives the translation.
        """
        dps = self.map_reverse(values)
        if not dps:
            logger.debug("Nothing to publish for %s (fields=%s)", self.name, list(values))
            return
        logger.info("Publishing %s to %s", dps, self.name)
        await self._cloud.publish_dps(self.group_id, self.device_id, dps)

    async def set_power(self, on: bool) -> None:
        """Switch the device on or off.

        Raises:
            ValueError: If the device class has no switch field.
        """
        field = self.device_class.switch_field
        if field is None:
            raise ValueError(f"Device class '{self.type_name}' cannot be switched")
        await self.set({field: 1 if on else 0})

    async def turn_on(self) -> None:
        await self.set_power(True)

    async def turn_off(self) -> None:
        await self.set_power(False)
