"""
Device Client - HTTP communication with LED matrix display devices.

This module handles:
- Fetching and validating a device's display geometry
- Posting encoded frames to a device
- Enforcing a bounded deadline on every outbound call
"""

import asyncio
import logging
import os
from typing import Any, Awaitable, Optional, TypeVar

import httpx

from led_matrix.frame_encoder import Frame
from led_matrix.models import MAX_DIMENSION, MIN_DIMENSION, DeviceGeometry
from led_matrix.results import Failure, FailureReason, Ok, StageResult

logger = logging.getLogger(__name__)

# Per-call deadline for every outbound request, in seconds
DEFAULT_TIMEOUT = float(os.getenv("DEVICE_REQUEST_TIMEOUT_SECONDS", "15"))

T = TypeVar("T")


class DeadlineExceeded(Exception):
    """An outbound call did not complete within its deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"Request timed out after {timeout:g} seconds")
        self.timeout = timeout


async def with_deadline(awaitable: Awaitable[T], timeout: float) -> T:
    """
    Await one outbound call with a hard deadline.

    httpx timeouts only bound individual read/write phases, so the whole
    call is additionally wrapped in ``asyncio.wait_for``. Either kind of
    timeout is raised as DeadlineExceeded.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise DeadlineExceeded(timeout) from e


def timeout_failure(timeout: float) -> Failure:
    return Failure(
        reason=FailureReason.TIMEOUT,
        message=f"Request timed out after {timeout:g} seconds",
        details={"timeout_ms": int(timeout * 1000)},
    )


def _is_dimension(value: Any) -> bool:
    """JSON numbers with no fractional part count as integers; booleans don't."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return MIN_DIMENSION <= value <= MAX_DIMENSION
    if isinstance(value, float) and value.is_integer():
        return MIN_DIMENSION <= value <= MAX_DIMENSION
    return False


def parse_geometry(payload: Any) -> StageResult[DeviceGeometry]:
    """Validate a /configuration payload into a DeviceGeometry."""
    width = payload.get("width") if isinstance(payload, dict) else None
    height = payload.get("height") if isinstance(payload, dict) else None

    if not (_is_dimension(width) and _is_dimension(height)):
        return Failure(
            reason=FailureReason.INVALID_GEOMETRY,
            message=(
                f"Invalid display dimensions: width={width}, height={height}. "
                f"Expected integers between {MIN_DIMENSION} and {MAX_DIMENSION}."
            ),
            details={"width": width, "height": height},
        )

    return Ok(DeviceGeometry(width=int(width), height=int(height)))


class DeviceClient:
    """Client for one device's control API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the device client.

        Args:
            client: The HTTP client to issue requests with.
            endpoint: The validated base URL of the device.
            timeout: Per-request deadline in seconds.
        """
        self.client = client
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    async def fetch_geometry(self) -> StageResult[DeviceGeometry]:
        """
        Fetch the device's display geometry.

        Calls GET {endpoint}/configuration. Connection errors other than
        timeouts propagate to the caller.

        Returns:
            Ok(DeviceGeometry), or a Failure with reason
            ``config_unreachable``, ``invalid_geometry`` or ``timeout``.
        """
        config_url = f"{self.endpoint}/configuration"

        try:
            response = await with_deadline(
                self.client.get(config_url, timeout=self.timeout), self.timeout
            )
        except DeadlineExceeded:
            logger.warning(f"Timeout fetching configuration from {self.endpoint}")
            return timeout_failure(self.timeout)

        if not response.is_success:
            logger.warning(
                f"Device {self.endpoint} returned status {response.status_code} "
                f"for configuration"
            )
            return Failure(
                reason=FailureReason.CONFIG_UNREACHABLE,
                message=f"Failed to get display config: {response.status_code}",
                details={"http_status": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError:
            return Failure(
                reason=FailureReason.INVALID_GEOMETRY,
                message="Invalid display configuration: response is not valid JSON",
            )

        return parse_geometry(payload)

    async def send_frame(self, frame: Frame) -> StageResult[None]:
        """
        Send an encoded frame to the device.

        Posts a multipart body with a single ``frame`` part holding the raw
        RGBA bytes to {endpoint}/frame.

        Returns:
            Ok(None), or a Failure with reason ``frame_rejected`` or ``timeout``.
        """
        frame_url = f"{self.endpoint}/frame"
        files = {"frame": ("frame", frame.data, "application/octet-stream")}

        try:
            response = await with_deadline(
                self.client.post(frame_url, files=files, timeout=self.timeout),
                self.timeout,
            )
        except DeadlineExceeded:
            logger.warning(f"Timeout sending frame to {self.endpoint}")
            return timeout_failure(self.timeout)

        if not response.is_success:
            logger.warning(
                f"Device {self.endpoint} rejected frame with status {response.status_code}"
            )
            return Failure(
                reason=FailureReason.FRAME_REJECTED,
                message=f"Failed to send frame: {response.status_code}",
                details={"http_status": response.status_code},
            )

        return Ok(None)


def build_http_client(
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an HTTP client for one pipeline invocation."""
    return httpx.AsyncClient(timeout=timeout, transport=transport)
