"""
GET / endpoint serving the Prometheus text exposition.

Returns 500 with an empty body until the first poll cycle has completed, and
again after a cycle failed, so that scrapers never read stale or partial
data.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["metrics"])


@router.get("/")
async def metrics(request: Request) -> Response:
    """Render every gauge in the Prometheus text format.

    Returns:
        Response: 200 with the exposition body, or 500 with an empty body
        while data is not ready.
    """
    service = request.app.state.service
    if not service.data_ready:
        return Response(status_code=500)

    return Response(
        content=service.gauges.render(),
        media_type=service.gauges.content_type,
    )
