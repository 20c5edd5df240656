"""
Tuya data-point (DP) definitions and the raw <-> semantic translation.

Tuya devices report their state as a flat dict of opaque DP ids (``"1"``,
``"4"``, ...) to raw values. A :class:`DataPoint` describes one of those ids
for a given device class: the semantic field name it is exposed under, the
help text used for its gauge, its value kind, whether it can be written back,
and optional forward (raw -> semantic) and reverse (semantic -> raw)
transforms.

:func:`map_forward` and :func:`map_reverse` are **pure functions**: no I/O,
no clock, no hidden state. The output depends only on the snapshot passed in
and the lookup tables built from the class's data points.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------

KIND_BOOLEAN = "boolean"
KIND_NUMBER = "number"
KIND_STRING = "string"

_VALID_KINDS = frozenset({KIND_BOOLEAN, KIND_NUMBER, KIND_STRING})

UNKNOWN_PREFIX = "unknown_"
"""Prefix for fields surfaced from DP ids that have no definition."""

Values = dict[str, Any]
"""A semantic snapshot: field name -> value."""

Derive = Callable[[Values], None]
"""Virtual-field step: reads mapped fields and adds/overwrites entries in place."""


@dataclass(frozen=True, slots=True)
class DataPoint:
    """Definition of a single Tuya data point for one device class.

    Attributes:
        raw_id: DP identifier as reported by the cloud (dict key).
            Virtual fields use a synthetic id (e.g. ``"v1"``) that never
            appears in real snapshots.
        name: Semantic field name, unique within a device class.  Reused
            across classes for the same measurement so that one gauge
            serves all of them.
        help: Help text for the Prometheus gauge.
        kind: ``"boolean"``, ``"number"`` or ``"string"``.  String fields
            never get a gauge.
        settable: Whether the field may be written back to the device.
        forward: Optional raw -> semantic transform (identity when ``None``).
        reverse: Optional semantic -> raw transform (identity when ``None``).
    """

    raw_id: str
    name: str
    help: str
    kind: str
    settable: bool = False
    forward: Callable[[Any], Any] | None = None
    reverse: Callable[[Any], Any] | None = None

    def __post_init__(self) -> None:  # noqa: D105
        if self.kind not in _VALID_KINDS:
            msg = f"Data point '{self.name}': unknown kind '{self.kind}'"
            raise ValueError(msg)


def scaled(divisor: float) -> Callable[[Any], float]:
    """Return a forward transform dividing the raw integer by *divisor*.

    Tuya metering sockets report current in milliamps and power/voltage in
    tenths, so the forward transform of those DPs is a fixed division.
    """

    def _forward(raw: Any) -> float:
        return raw / divisor

    return _forward


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------


def index_by_raw_id(datapoints: Iterable[DataPoint]) -> dict[str, DataPoint]:
    """Build the forward lookup table (raw DP id -> definition)."""
    return {dp.raw_id: dp for dp in datapoints}


def index_by_name(datapoints: Iterable[DataPoint]) -> dict[str, DataPoint]:
    """Build the reverse lookup table (semantic name -> definition)."""
    return {dp.name: dp for dp in datapoints}


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def map_forward(
    raw: Mapping[str, Any],
    by_raw_id: Mapping[str, DataPoint],
    *,
    add_unknown: bool = False,
    derive: Derive | None = None,
) -> Values:
    """Translate a raw DP snapshot into semantic fields.

    Args:
        raw: DP id -> raw value, as returned by the cloud.
        by_raw_id: Forward lookup table for the device class.
        add_unknown: Surface DPs missing from the table as
            ``unknown_<raw_id>`` with their untransformed value instead of
            dropping them.
        derive: Virtual-field step run after every DP has been mapped.

    Returns:
        Semantic field name -> value.
    """
    values: Values = {}

    for raw_id, raw_value in raw.items():
        dp = by_raw_id.get(raw_id)
        if dp is None:
            if add_unknown:
                values[f"{UNKNOWN_PREFIX}{raw_id}"] = raw_value
            continue

        values[dp.name] = dp.forward(raw_value) if dp.forward else raw_value

    if derive is not None:
        derive(values)

    return values


def map_reverse(
    values: Mapping[str, Any],
    by_name: Mapping[str, DataPoint],
) -> dict[str, Any]:
    """Translate semantic fields back into a raw DP snapshot.

    Fields without a definition, virtual fields and any field not marked
    settable are dropped silently.

    Args:
        values: Semantic field name -> value.
        by_name: Reverse lookup table for the device class.

    Returns:
        DP id -> raw value, ready to publish.
    """
    raw: dict[str, Any] = {}

    for name, value in values.items():
        dp = by_name.get(name)
        if dp is None or not dp.settable:
            logger.debug("Field '%s' is not settable, dropping", name)
            continue

        raw[dp.raw_id] = dp.reverse(value) if dp.reverse else value

    return raw
