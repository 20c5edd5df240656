"""
FastAPI application factory for the exporter.

The application lifespan starts the poll loop as a background task on the
server's event loop and, on shutdown, cancels it and closes the service.
A fatal poll-loop error is handed to the ``on_fatal`` callback, which by
default exits the process (crash-only: restart is up to the supervisor).

CHANGELOG:
- 2026-10-18: Initial creation
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tuya_exporter.src.api.devices import router as devices_router
from tuya_exporter.src.api.health import router as health_router
from tuya_exporter.src.api.metrics import router as metrics_router
from tuya_exporter.src.service import ExporterService, OnFatal, terminate_process

logger = logging.getLogger(__name__)


def create_app(
    service: ExporterService,
    *,
    on_fatal: OnFatal = terminate_process,
    autostart: bool = True,
) -> FastAPI:
    """Build the FastAPI application around *service*.

    Args:
        service: The wired exporter components.
        on_fatal: Called with the fatal error when the poll loop stops.
        autostart: Start the poll loop in the lifespan.  Disabled in tests
            that drive the service directly.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        task: asyncio.Task[None] | None = None
        if autostart:
            task = asyncio.create_task(service.supervise(on_fatal))
            logger.info("Poll loop started")
        yield
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await service.close()
        logger.info("Exporter shutting down")

    app = FastAPI(
        title="Tuya Exporter",
        description="Prometheus exporter and control API for Tuya power sockets.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    # /health before the /{device_name} catch-all.
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(devices_router)

    return app
