"""
Service shell: wires the exporter components and applies the crash-only policy.

:class:`ExporterService` owns the cloud client, gauges, device registry,
poll loop and control endpoint.  :meth:`ExporterService.supervise` runs the
poll loop and hands any :class:`~tuya_exporter.src.exceptions.FatalError`
to a termination callback; by default that exits the process with the
error's exit code and leaves the restart to the process supervisor.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING

from tuya_exporter.src.cloud import TuyaCloudClient
from tuya_exporter.src.control import ControlEndpoint
from tuya_exporter.src.exceptions import FatalError
from tuya_exporter.src.gauges import GaugeRegistry
from tuya_exporter.src.poll_loop import PollLoop
from tuya_exporter.src.registry import DeviceRegistry

if TYPE_CHECKING:
    from tuya_exporter.src.cloud import CloudApi
    from tuya_exporter.src.config import ExporterSettings

logger = logging.getLogger(__name__)

OnFatal = Callable[[FatalError], None]


def terminate_process(error: FatalError) -> None:
    """Exit immediately with the error's exit code."""
    logger.error("Fatal: %s, exiting with code %d", error, error.exit_code)
    logging.shutdown()
    os._exit(error.exit_code)


class ExporterService:
    """All exporter components sharing one cloud client.

    Args:
        cloud: Cloud collaborator.
        refresh_interval_s: Passed to :class:`DeviceRegistry`.
        inactive_timeout_s: Passed to :class:`DeviceRegistry`.
        watchdog_timeout_s: Passed to :class:`PollLoop`.
        poll_delay_s: Passed to :class:`PollLoop`.
    """

    def __init__(
        self,
        cloud: CloudApi,
        *,
        refresh_interval_s: float = 3600.0,
        inactive_timeout_s: float = 1800.0,
        watchdog_timeout_s: float = 30.0,
        poll_delay_s: float = 2.0,
    ) -> None:
        self.cloud = cloud
        self.gauges = GaugeRegistry()
        self.registry = DeviceRegistry(
            cloud,
            self.gauges,
            refresh_interval_s=refresh_interval_s,
            inactive_timeout_s=inactive_timeout_s,
        )
        self.poll_loop = PollLoop(
            cloud,
            self.registry,
            self.gauges,
            watchdog_timeout_s=watchdog_timeout_s,
            poll_delay_s=poll_delay_s,
        )
        self.control = ControlEndpoint(self.registry)

    @classmethod
    def from_settings(cls, settings: ExporterSettings) -> ExporterService:
        """Build the service with a :class:`TuyaCloudClient`."""
        cloud = TuyaCloudClient(
            settings.app_key,
            settings.app_secret,
            settings.region,
            settings.email,
            settings.password,
            country_code=settings.login_country_code,
            timeout_s=settings.request_timeout_s,
        )
        return cls(
            cloud,
            refresh_interval_s=settings.refresh_interval_s,
            inactive_timeout_s=settings.inactive_timeout_s,
            watchdog_timeout_s=settings.watchdog_timeout_s,
            poll_delay_s=settings.poll_delay_s,
        )

    @property
    def data_ready(self) -> bool:
        return self.poll_loop.data_ready

    async def supervise(self, on_fatal: OnFatal = terminate_process) -> None:
        """Run the poll loop until it fails, then call *on_fatal*."""
        try:
            await self.poll_loop.run()
        except FatalError as exc:
            logger.error("Poll loop stopped", exc_info=True)
            on_fatal(exc)

    async def close(self) -> None:
        """Wait for pending control writes and close the cloud client."""
        await self.control.drain()
        close = getattr(self.cloud, "close", None)
        if close is not None:
            await close()
