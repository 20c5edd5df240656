"""
Prometheus gauges backing the exported device fields.

One gauge exists per semantic field name, shared by every device of every
class and distinguished only by the ``name`` label (the device's display
name).  Gauges live in a private ``CollectorRegistry`` owned by
:class:`GaugeRegistry`, so :meth:`GaugeRegistry.reset` can drop every
definition at once at the start of a device refresh.

Single-writer: only the poll loop calls :meth:`record`, and everything runs
on one asyncio event loop, so no locking is used.  Introducing threads
requires a lock around ``reset``/``record``/``render``.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from tuya_exporter.src.datapoints import KIND_STRING
from tuya_exporter.src.exceptions import UnknownGaugeError

if TYPE_CHECKING:
    from tuya_exporter.src.device_classes import DeviceClass

logger = logging.getLogger(__name__)

LABEL_NAME = "name"


class GaugeRegistry:
    """Process-wide table of gauges keyed by semantic field name."""

    content_type: str = CONTENT_TYPE_LATEST

    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._gauges

    def __len__(self) -> int:
        return len(self._gauges)

    @property
    def names(self) -> list[str]:
        """Registered field names, in creation order."""
        return list(self._gauges)

    @property
    def registry(self) -> CollectorRegistry:
        """The ``CollectorRegistry`` currently holding the gauges."""
        return self._registry

    def ensure_gauges(self, device_class: DeviceClass) -> None:
        """Create gauges for every non-string field of *device_class*.

        Fields that already have a gauge (from this or another class) are
        left untouched, so calling this repeatedly is a no-op.
        """
        for dp in device_class.datapoints:
            if dp.kind == KIND_STRING or dp.name in self._gauges:
                continue
            self._gauges[dp.name] = Gauge(
                dp.name,
                dp.help,
                labelnames=[LABEL_NAME],
                registry=self._registry,
            )
            logger.debug("Registered gauge '%s'", dp.name)

    def record(self, instance_name: str, values: Mapping[str, Any]) -> None:
        """Write a device's semantic snapshot into the gauges.

        Booleans are written as 1/0, numbers as-is.  String values are not
        exported and are skipped.

        Raises:
            UnknownGaugeError: If a numeric field has no gauge.
        """
        for field, value in values.items():
            if isinstance(value, str):
                continue
            if isinstance(value, bool):
                value = 1 if value else 0

            gauge = self._gauges.get(field)
            if gauge is None:
                raise UnknownGaugeError(field)
            gauge.labels(**{LABEL_NAME: instance_name}).set(value)

    def reset(self) -> None:
        """Drop every gauge definition and its recorded samples."""
        logger.debug("Resetting %d gauges", len(self._gauges))
        self._registry = CollectorRegistry()
        self._gauges = {}

    def render(self) -> bytes:
        """Return the Prometheus text exposition of all gauges."""
        return generate_latest(self._registry)
