"""
Poll loop: device refresh plus per-device metric collection.

State machine::

    IDLE -> POLLING -> IDLE
              |
              +-> FAILED (terminal)

Every cycle runs under a watchdog.  Within a cycle the device registry is
refreshed if due, then every device is read sequentially and its values are
written into the gauges.  A successful cycle marks the data as ready.

The loop never retries and never terminates the process.  Any failure is
raised as a :class:`~tuya_exporter.src.exceptions.FatalError` carrying the
exit code; the service shell decides what to do with it.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING

from tuya_exporter.src.exceptions import (
    PollCycleError,
    StartupError,
    WatchdogTimeout,
)

if TYPE_CHECKING:
    from tuya_exporter.src.cloud import CloudApi
    from tuya_exporter.src.gauges import GaugeRegistry
    from tuya_exporter.src.registry import DeviceRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_WATCHDOG_TIMEOUT_S: float = 30.0
"""Maximum duration of startup and of a single poll cycle."""

DEFAULT_POLL_DELAY_S: float = 2.0
"""Pause between the end of one cycle and the start of the next."""


class PollState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    FAILED = "failed"


class PollLoop:
    """Drives startup, refresh and collection.

    Args:
        cloud: Cloud collaborator (only used for login).
        registry: Device registry refreshed when due.
        gauges: Gauge registry receiving device values.
        watchdog_timeout_s: Watchdog for startup and for each cycle.
        poll_delay_s: Delay between cycles.
    """

    def __init__(
        self,
        cloud: CloudApi,
        registry: DeviceRegistry,
        gauges: GaugeRegistry,
        *,
        watchdog_timeout_s: float = DEFAULT_WATCHDOG_TIMEOUT_S,
        poll_delay_s: float = DEFAULT_POLL_DELAY_S,
    ) -> None:
        self._cloud = cloud
        self._registry = registry
        self._gauges = gauges
        self._watchdog_timeout_s = watchdog_timeout_s
        self._poll_delay_s = poll_delay_s
        self._state = PollState.IDLE
        self._data_ready = False
        self._cycles = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def data_ready(self) -> bool:
        """True once a cycle completed and until a cycle fails."""
        return self._data_ready

    @property
    def cycles(self) -> int:
        """Number of successfully completed cycles."""
        return self._cycles

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Log in and run the initial refresh under the watchdog.

        Raises:
            StartupError: On timeout or on any login/refresh failure.
        """
        logger.info("Startup: logging in and discovering devices")
        try:
            await asyncio.wait_for(self._start(), timeout=self._watchdog_timeout_s)
        except TimeoutError as exc:
            self._fail()
            raise StartupError(
                f"Startup did not finish within {self._watchdog_timeout_s}s"
            ) from exc
        except Exception as exc:
            self._fail()
            raise StartupError(f"Startup failed: {exc}") from exc
        logger.info("Startup done: %d device(s)", len(self._registry))

    async def _start(self) -> None:
        await self._cloud.login()
        await self._registry.refresh()

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def run_cycle(self) -> None:
        """Run one refresh-if-due + collect cycle under the watchdog.

        Raises:
            WatchdogTimeout: If the cycle exceeds the watchdog timeout.
            PollCycleError: If any step raises.
        """
        logger.debug("Poll start")
        self._state = PollState.POLLING
        try:
            await asyncio.wait_for(self._collect(), timeout=self._watchdog_timeout_s)
        except TimeoutError as exc:
            self._fail()
            raise WatchdogTimeout(
                f"Poll cycle did not finish within {self._watchdog_timeout_s}s"
            ) from exc
        except Exception as exc:
            self._fail()
            raise PollCycleError(f"Poll cycle failed: {exc}") from exc

        self._data_ready = True
        self._state = PollState.IDLE
        self._cycles += 1
        logger.debug("Poll end")

    async def _collect(self) -> None:
        if self._registry.refresh_due():
            await self._registry.refresh()

        for device in list(self._registry.devices.values()):
            values = await device.get()
            self._gauges.record(device.name, values)

    async def run(self) -> None:
        """Start up, then poll forever.

        Returns only by raising a :class:`FatalError`.
        """
        await self.start()
        while True:
            await self.run_cycle()
            await asyncio.sleep(self._poll_delay_s)

    def _fail(self) -> None:
        self._data_ready = False
        self._state = PollState.FAILED
