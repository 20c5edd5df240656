"""
Exception hierarchy for the Tuya exporter.

Cloud errors describe failures talking to the Tuya API. Fatal errors carry
the process exit code the service shell uses when it terminates after a
failed startup or poll cycle; the core never exits the process itself.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations


class ExporterError(Exception):
    """Base class for all exporter errors."""


# ---------------------------------------------------------------------------
# Cloud collaborator
# ---------------------------------------------------------------------------


class CloudError(ExporterError):
    """Any failure of a Tuya cloud request."""


class CloudConnectionError(CloudError):
    """The request never produced an HTTP response (network, timeout)."""


class CloudAPIError(CloudError):
    """The cloud answered with ``success: false`` or a non-200 status.

    Attributes:
        action: The API action that failed (e.g. ``tuya.m.device.dp.get``).
        error_code: Tuya error code string, when present.
    """

    def __init__(self, action: str, error_code: str | None, message: str) -> None:
        super().__init__(f"{action} failed: {error_code or 'unknown'}: {message}")
        self.action = action
        self.error_code = error_code


class CloudAuthError(CloudError):
    """Login was rejected or no session is available."""


# ---------------------------------------------------------------------------
# Gauges
# ---------------------------------------------------------------------------


class UnknownGaugeError(ExporterError, KeyError):
    """A numeric field was recorded without a registered gauge.

    Raised when ``ensure_gauges`` was not run for the device class that
    produced the field. This is a programming error, not a runtime condition.
    """


# ---------------------------------------------------------------------------
# Fatal conditions (crash-only contract)
# ---------------------------------------------------------------------------


class FatalError(ExporterError):
    """A condition after which the process must be restarted externally."""

    exit_code: int = 1


class StartupError(FatalError):
    """Login or the initial device refresh failed or timed out."""

    exit_code = 3


class WatchdogTimeout(FatalError):
    """A poll cycle did not finish within the watchdog timeout."""

    exit_code = 2


class PollCycleError(FatalError):
    """A poll cycle raised; the original error is chained as ``__cause__``."""

    exit_code = 1
