"""
Display routes - push images and frames to LED matrix devices
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from led_matrix.device_client import DeviceClient, build_http_client
from led_matrix.dependencies import get_pipeline
from led_matrix.frame_encoder import Frame, check_frame_size
from led_matrix.models import (
    DeviceGeometry,
    SendFrameRequest,
    SendImageRequest,
    SendStoredImageRequest,
    TransmissionResult,
)
from led_matrix.pipeline import TransmissionPipeline
from led_matrix.results import Failure, FailureReason
from led_matrix.validation import validate_endpoint

router = APIRouter(prefix="/display", tags=["Display"])
logger = logging.getLogger(__name__)


@router.post("/send-image", response_model=TransmissionResult)
async def send_image(
    request: SendImageRequest,
    pipeline: TransmissionPipeline = Depends(get_pipeline),
) -> TransmissionResult:
    """
    Send an image URL to a display.

    The server downloads the image, resizes it to the device's geometry
    and posts the raw RGBA frame to the device.
    """
    return await pipeline.send_image_by_url(request.image_url, request.endpoint_url)


@router.post("/send-stored-image", response_model=TransmissionResult)
async def send_stored_image(
    request: SendStoredImageRequest,
    pipeline: TransmissionPipeline = Depends(get_pipeline),
) -> TransmissionResult:
    """Send a stored image to a display."""
    return await pipeline.send_stored_image(request.image_id, request.endpoint_url)


def _raise_for_failure(failure: Failure) -> None:
    if failure.reason == FailureReason.INVALID_INPUT:
        raise HTTPException(status_code=400, detail=failure.message)
    if failure.reason == FailureReason.TIMEOUT:
        raise HTTPException(status_code=504, detail=failure.message)
    raise HTTPException(status_code=502, detail=failure.message)


@router.get("/configuration", response_model=DeviceGeometry)
async def get_configuration(
    endpoint_url: str = Query(description="Base URL of the device"),
    pipeline: TransmissionPipeline = Depends(get_pipeline),
) -> DeviceGeometry:
    """
    Fetch a device's display configuration.

    Server-side proxy for browser clients that cannot reach the device
    directly (CORS).
    """
    endpoint = validate_endpoint(endpoint_url)
    if isinstance(endpoint, Failure):
        _raise_for_failure(endpoint)

    async with build_http_client(pipeline.timeout, pipeline.transport) as client:
        device = DeviceClient(client, endpoint.value, pipeline.timeout)
        try:
            geometry = await device.fetch_geometry()
        except Exception as e:
            logger.warning(f"Configuration proxy to {endpoint.value} failed: {e}")
            raise HTTPException(status_code=502, detail=str(e) or "Unknown error")

    if isinstance(geometry, Failure):
        _raise_for_failure(geometry)
    return geometry.value


@router.post("/frame", response_model=TransmissionResult)
async def send_frame(
    request: SendFrameRequest,
    pipeline: TransmissionPipeline = Depends(get_pipeline),
) -> TransmissionResult:
    """
    Relay a pre-rendered RGBA frame to a device.

    The frame must match the device's current geometry exactly.
    """
    endpoint = validate_endpoint(request.endpoint_url)
    if isinstance(endpoint, Failure):
        _raise_for_failure(endpoint)

    try:
        data = bytes(request.frame_data)
    except ValueError:
        raise HTTPException(status_code=400, detail="frame_data must contain bytes (0-255)")

    async with build_http_client(pipeline.timeout, pipeline.transport) as client:
        device = DeviceClient(client, endpoint.value, pipeline.timeout)
        try:
            geometry = await device.fetch_geometry()
            if isinstance(geometry, Failure):
                return geometry.to_result()

            checked = check_frame_size(Frame(data=data, geometry=geometry.value))
            if isinstance(checked, Failure):
                return checked.to_result()

            sent = await device.send_frame(checked.value)
        except Exception as e:
            logger.warning(f"Frame relay to {endpoint.value} failed: {e}")
            return TransmissionResult(success=False, error=str(e) or "Unknown error")

    if isinstance(sent, Failure):
        return sent.to_result()
    return TransmissionResult(success=True)
