"""
Health check endpoint for the exporter.

Provides a simple GET /health endpoint for container HEALTHCHECK and process
supervisors.  It reports liveness only; readiness of the metrics is exposed
by the status code of ``GET /``.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, str | bool]:
    """Return the liveness status and whether metric data is ready.

    Returns:
        dict: ``{"status": "ok", "data_ready": <bool>}``.
    """
    return {"status": "ok", "data_ready": request.app.state.service.data_ready}
