"""
Per-device endpoints: PUT to control a device, GET to inspect it.

``PUT /{device_name}`` takes a JSON object of semantic field -> value.  The
device name is normalized before lookup.  The request is acknowledged with
204 as soon as the device is known; the write itself runs in the background
and its failures are only logged.

``GET /{device_name}`` reads the device live and returns every field,
including ``unknown_<dp>`` entries for DPs without a definition, which helps
mapping new hardware.  A failed cloud read answers 502.

Both return 500 while metric data is not ready.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: GET answers 502 on cloud errors

TODO:
- None
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from tuya_exporter.src.exceptions import CloudError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"])


@router.put("/{device_name}", status_code=204)
async def control_device(device_name: str, request: Request) -> Response:
    """Schedule a semantic field update for a device.

    Args:
        device_name: Device name (normalized before lookup).
        request: The incoming FastAPI request.

    Returns:
        Response: 204 once the write is scheduled.

    Raises:
        HTTPException: 404 if the device is unknown.
        HTTPException: 400 if the body is not a JSON object.
    """
    service = request.app.state.service
    if not service.data_ready:
        return Response(status_code=500)

    if service.registry.lookup(device_name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown device '{device_name}'.")

    body = await request.body()
    try:
        values: Any = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Body is not valid JSON.") from None
    if not isinstance(values, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object.")

    # The registry may have been refreshed while the body was read.
    if not service.control.submit(device_name, values):
        raise HTTPException(status_code=404, detail=f"Unknown device '{device_name}'.")

    return Response(status_code=204)


@router.get("/{device_name}")
async def read_device(device_name: str, request: Request) -> Response:
    """Return the device's current fields, unknown DPs included.

    Raises:
        HTTPException: 404 if the device is unknown.
        HTTPException: 502 if the cloud read fails.
    """
    service = request.app.state.service
    if not service.data_ready:
        return Response(status_code=500)

    device = service.registry.lookup(device_name)
    if device is None:
        raise HTTPException(status_code=404, detail=f"Unknown device '{device_name}'.")

    try:
        values = await device.get(add_unknown=True)
    except CloudError as exc:
        logger.warning("Reading %s from the cloud failed: %s", device.name, exc)
        raise HTTPException(status_code=502, detail="Cloud request failed.") from exc
    return Response(
        content=json.dumps({"name": device.name, "type": device.type_name, "values": values}),
        media_type="application/json",
    )
