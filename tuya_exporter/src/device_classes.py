"""
Supported Tuya device classes and the product-id dispatch table.

Each :class:`DeviceClass` is a closed variant carrying its data-point map and
its virtual-field derivation as data.  New hardware is supported by adding a
variant and an entry in :data:`PRODUCT_CLASSES`; there is no subclassing.

Semantic names are shared across classes where the measurement is the same
(``power``, ``voltage``, ...) so a single gauge serves every class.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tuya_exporter.src.datapoints import (
    KIND_BOOLEAN,
    KIND_NUMBER,
    DataPoint,
    Derive,
    Values,
    index_by_name,
    index_by_raw_id,
    scaled,
)

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DeviceClass:
    """A device variant: its DP map and virtual-field step.

    Attributes:
        type_name: Short class identifier (e.g. ``"socket"``).
        datapoints: Every DP the class understands, virtual ones included.
        derive: Virtual-field step applied after forward mapping.
        switch_field: Semantic name of the on/off field, or ``None`` when
            the class cannot be switched.
    """

    type_name: str
    datapoints: tuple[DataPoint, ...]
    derive: Derive
    switch_field: str | None = field(default=None)

    def __post_init__(self) -> None:  # noqa: D105
        if len(index_by_raw_id(self.datapoints)) != len(self.datapoints):
            msg = f"Device class '{self.type_name}': duplicate DP id"
            raise ValueError(msg)
        if len(index_by_name(self.datapoints)) != len(self.datapoints):
            msg = f"Device class '{self.type_name}': duplicate field name"
            raise ValueError(msg)
        if self.switch_field is not None:
            switch = index_by_name(self.datapoints).get(self.switch_field)
            if switch is None or not switch.settable:
                msg = (
                    f"Device class '{self.type_name}': switch field "
                    f"'{self.switch_field}' must be a settable data point"
                )
                raise ValueError(msg)


def no_virtual_fields(values: Values) -> None:
    """Derivation for classes without virtual fields."""


# ---------------------------------------------------------------------------
# Metering socket (Stitch / generic Tuya plug with power monitoring)
# ---------------------------------------------------------------------------


def _power_on_reverse(on: object) -> bool:
    return bool(on)


def derive_socket_power(values: Values) -> None:
    """Add apparent power (``va``) and power factor (``pf``).

    ``va = current * voltage`` and ``pf = power / va``.  The power factor is
    exactly 1.0 when the apparent power is not positive.  Nothing is derived
    when the snapshot lacks one of the inputs.
    """
    if not {"current", "voltage", "power"} <= values.keys():
        return

    va = values["current"] * values["voltage"]
    values["va"] = va
    values["pf"] = 1.0 if va <= 0 else values["power"] / va


SOCKET = DeviceClass(
    type_name="socket",
    datapoints=(
        DataPoint(
            raw_id="1",
            name="power_on",
            help="On",
            kind=KIND_BOOLEAN,
            settable=True,
            reverse=_power_on_reverse,
        ),
        DataPoint(
            raw_id="4",
            name="current",
            help="Current (A)",
            kind=KIND_NUMBER,
            forward=scaled(1000.0),
        ),
        DataPoint(
            raw_id="5",
            name="power",
            help="Power (W)",
            kind=KIND_NUMBER,
            forward=scaled(10.0),
        ),
        DataPoint(
            raw_id="6",
            name="voltage",
            help="Voltage (V)",
            kind=KIND_NUMBER,
            forward=scaled(10.0),
        ),
        DataPoint(raw_id="v1", name="pf", help="Power factor", kind=KIND_NUMBER),
        DataPoint(raw_id="v2", name="va", help="Apparent Power (VA)", kind=KIND_NUMBER),
    ),
    derive=derive_socket_power,
    switch_field="power_on",
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

PRODUCT_CLASSES: dict[str, DeviceClass] = {
    "pLrthS5AKLKbAQ77": SOCKET,
}
"""Tuya product id -> device class.  Products not listed are ignored."""


def resolve_product(product_id: str | None) -> DeviceClass | None:
    """Return the device class for *product_id*, or ``None`` if unsupported."""
    if product_id is None:
        return None
    return PRODUCT_CLASSES.get(product_id)
