"""
Entrypoint for the Tuya power-socket exporter.

Loads :class:`~tuya_exporter.src.config.ExporterSettings`, installs
structured JSON logging, builds the exporter service and serves the FastAPI
application with uvicorn.  The poll loop runs as a background task of the
application; a fatal poll error exits the process with a non-zero code:

- 1: a poll cycle raised
- 2: a poll cycle hit the watchdog
- 3: login or the initial device refresh failed or hit the watchdog

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import UTC, datetime

import uvicorn

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the exporter.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    uvicorn's loggers propagate to the root logger.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, masking secrets.

    The app secret and the account password are logged only as
    length/hash fingerprints.

    Args:
        settings: An ExporterSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Exporter starting with config: "
        "region=%s, email=%s, app_key=%s, listen=%s:%s, "
        "poll_delay_s=%s, watchdog_timeout_s=%s, "
        "refresh_interval_s=%s, inactive_timeout_s=%s, "
        "app_secret_masked=%s, password_masked=%s",
        settings.region,  # type: ignore[attr-defined]
        settings.email,  # type: ignore[attr-defined]
        settings.app_key,  # type: ignore[attr-defined]
        settings.listen_host,  # type: ignore[attr-defined]
        settings.listen_port,  # type: ignore[attr-defined]
        settings.poll_delay_s,  # type: ignore[attr-defined]
        settings.watchdog_timeout_s,  # type: ignore[attr-defined]
        settings.refresh_interval_s,  # type: ignore[attr-defined]
        settings.inactive_timeout_s,  # type: ignore[attr-defined]
        _masked_token(settings.app_secret),  # type: ignore[attr-defined]
        _masked_token(settings.password),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Synchronous entrypoint for the exporter."""
    configure_logging()

    from tuya_exporter.src.api.main import create_app
    from tuya_exporter.src.config import ExporterSettings
    from tuya_exporter.src.service import ExporterService

    settings = ExporterSettings()
    log_config_summary(settings)

    service = ExporterService.from_settings(settings)
    app = create_app(service)

    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.listen_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
