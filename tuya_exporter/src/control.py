"""
Control path: apply semantic field writes to registered devices.

:meth:`ControlEndpoint.submit` answers immediately whether the device exists
and runs the write in the background.  A failed write is logged and dropped;
it never reaches the caller and never stops the service.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tuya_exporter.src.devices import Device
    from tuya_exporter.src.registry import DeviceRegistry

logger = logging.getLogger(__name__)


class ControlEndpoint:
    """Resolves devices by name and schedules writes.

    Args:
        registry: Device registry used for name lookups.
    """

    def __init__(self, registry: DeviceRegistry) -> None:
        self._registry = registry
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of writes still running."""
        return len(self._pending)

    def submit(self, device_name: str, values: dict[str, Any]) -> bool:
        """Schedule ``Device.set(values)`` for the named device.

        Must be called from within the running event loop.

        Returns:
            ``False`` if no device has that name, ``True`` once the write is
            scheduled.
        """
        device = self._registry.lookup(device_name)
        if device is None:
            logger.info("Control request for unknown device '%s'", device_name)
            return False

        task = asyncio.get_running_loop().create_task(self._apply(device, values))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def _apply(self, device: Device, values: dict[str, Any]) -> None:
        try:
            await device.set(values)
        except Exception:
            logger.error("Failed to apply %s to %s", values, device.name, exc_info=True)
