"""
Transmission Pipeline - pushes one still image to one LED matrix device.

Stages run strictly in order and stop at the first failure:

    validate inputs -> fetch device config -> obtain source bytes
        -> encode frame -> transmit frame

Both entry points (image by URL, stored image by id) use this order. Every
outcome, including unexpected exceptions, is returned as a
TransmissionResult; nothing is raised to the caller.
"""

import logging
from typing import Optional

import httpx
from fastapi.concurrency import run_in_threadpool

from led_matrix.device_client import DEFAULT_TIMEOUT, DeviceClient, build_http_client
from led_matrix.frame_encoder import FrameEncoder, check_frame_size
from led_matrix.models import TransmissionResult
from led_matrix.results import Failure, FailureReason
from led_matrix.sources import (
    ImageLookup,
    ImageSource,
    StoredImageSource,
    UrlImageSource,
)
from led_matrix.validation import validate_endpoint

logger = logging.getLogger(__name__)


class TransmissionPipeline:
    """
    Orchestrates frame transmission to LED matrix devices.

    A pipeline holds only configuration; each call builds its own HTTP
    client, so concurrent transmissions share no mutable state. Concurrent
    transmissions to the same device are not serialized.
    """

    def __init__(
        self,
        image_store: Optional[ImageLookup] = None,
        encoder: Optional[FrameEncoder] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            image_store: Store used by send_stored_image.
            encoder: Frame encoder; defaults to a Pillow cover-resize encoder.
            timeout: Deadline in seconds applied to each outbound call.
            transport: Optional httpx transport (used to stub devices).
        """
        self.image_store = image_store
        self.encoder = encoder or FrameEncoder()
        self.timeout = timeout
        self.transport = transport

    async def send_image_by_url(self, image_url: str, endpoint_url: str) -> TransmissionResult:
        """Download an image and display it on the device at endpoint_url."""
        return await self.transmit(UrlImageSource(image_url), endpoint_url)

    async def send_stored_image(self, image_id: str, endpoint_url: str) -> TransmissionResult:
        """Display a stored image on the device at endpoint_url."""
        if self.image_store is None:
            return TransmissionResult(success=False, error="Image store is not configured")
        return await self.transmit(
            StoredImageSource(image_id, self.image_store), endpoint_url
        )

    async def transmit(self, source: ImageSource, endpoint_url: str) -> TransmissionResult:
        """Run the full pipeline for one source image and one device."""
        try:
            failure = await self._run(source, endpoint_url)
        except httpx.RequestError as e:
            failure = Failure(
                reason=FailureReason.CONNECTION_ERROR,
                message=str(e) or f"Connection error: {type(e).__name__}",
            )
        except Exception as e:
            logger.exception(f"Unexpected error transmitting to {endpoint_url}")
            failure = Failure(
                reason=FailureReason.UNEXPECTED,
                message=str(e) or "Unknown error",
            )

        if failure is None:
            logger.info(f"Frame delivered to {endpoint_url}")
            return TransmissionResult(success=True)

        logger.warning(
            f"Transmission to {endpoint_url} failed "
            f"[{failure.category.value}/{failure.reason.value}]: {failure.message}"
        )
        return failure.to_result()

    async def _run(self, source: ImageSource, endpoint_url: str) -> Optional[Failure]:
        # 1. Validate inputs
        endpoint = validate_endpoint(endpoint_url)
        if isinstance(endpoint, Failure):
            return endpoint
        invalid = source.validate()
        if invalid is not None:
            return invalid

        async with build_http_client(self.timeout, self.transport) as client:
            device = DeviceClient(client, endpoint.value, self.timeout)

            # 2. Fetch and validate display configuration
            geometry = await device.fetch_geometry()
            if isinstance(geometry, Failure):
                return geometry

            # 3. Obtain source image bytes
            source_bytes = await source.fetch(client, self.timeout)
            if isinstance(source_bytes, Failure):
                return source_bytes

            # 4. Encode to a raw RGBA frame
            frame = await run_in_threadpool(
                self.encoder.encode, source_bytes.value, geometry.value
            )
            if isinstance(frame, Failure):
                return frame
            # Guard against encoders that skip their own size check
            checked = check_frame_size(frame.value)
            if isinstance(checked, Failure):
                return checked

            # 5. Send frame to display
            sent = await device.send_frame(checked.value)
            if isinstance(sent, Failure):
                return sent

        return None


async def send_image_by_url(
    image_url: str,
    endpoint_url: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> TransmissionResult:
    """Convenience wrapper around TransmissionPipeline.send_image_by_url."""
    return await TransmissionPipeline(timeout=timeout).send_image_by_url(
        image_url, endpoint_url
    )


async def send_stored_image(
    image_id: str,
    endpoint_url: str,
    image_store: ImageLookup,
    timeout: float = DEFAULT_TIMEOUT,
) -> TransmissionResult:
    """Convenience wrapper around TransmissionPipeline.send_stored_image."""
    pipeline = TransmissionPipeline(image_store=image_store, timeout=timeout)
    return await pipeline.send_stored_image(image_id, endpoint_url)
