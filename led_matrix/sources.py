"""
Source image acquisition.

A transmission needs the encoded bytes of one source image. They come
either from a remote URL or from the image store; both variants share the
same interface so the pipeline has a single encode/transmit tail.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from led_matrix.database import (
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY_SECONDS,
    is_retryable_error,
    with_retry,
)
from led_matrix.device_client import DeadlineExceeded, timeout_failure, with_deadline
from led_matrix.results import Failure, FailureReason, Ok, StageResult
from led_matrix.validation import validate_image_url

logger = logging.getLogger(__name__)

# Maximum size of a source image (10MB)
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))


class ImageLookup(Protocol):
    """Anything that can return stored image bytes by id."""

    def get_binary_by_id(self, image_id: str) -> Optional[bytes]: ...


@dataclass(frozen=True)
class DownloadedImage:
    data: bytes
    content_type: Optional[str] = None


def size_label(size: int) -> str:
    """Human-readable byte count for limits, e.g. 10MB or 512 bytes."""
    mb = 1024 * 1024
    if size >= mb and size % mb == 0:
        return f"{size // mb}MB"
    return f"{size} bytes"


def _too_large(max_bytes: int) -> Failure:
    return Failure(
        reason=FailureReason.IMAGE_TOO_LARGE,
        message=f"Image exceeds {size_label(max_bytes)} limit",
        details={"max_bytes": max_bytes},
    )


async def download_image(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_bytes: int = MAX_IMAGE_BYTES,
) -> StageResult[DownloadedImage]:
    """
    Download an image, enforcing a deadline and a size ceiling.

    The URL must already have been validated. Connection errors other than
    timeouts propagate to the caller.
    """

    async def _read() -> StageResult[DownloadedImage]:
        async with client.stream("GET", url, timeout=timeout) as response:
            if not response.is_success:
                return Failure(
                    reason=FailureReason.IMAGE_FETCH_FAILED,
                    message=f"Failed to fetch image: {response.status_code}",
                    details={"http_status": response.status_code},
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                return _too_large(max_bytes)

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    return _too_large(max_bytes)

            content_type = response.headers.get("content-type")
            if content_type:
                content_type = content_type.split(";")[0].strip()
            return Ok(DownloadedImage(data=bytes(buffer), content_type=content_type))

    try:
        return await with_deadline(_read(), timeout)
    except DeadlineExceeded:
        logger.warning(f"Timeout downloading image from {url}")
        return timeout_failure(timeout)


class ImageSource(ABC):
    """Where a transmission's source image comes from."""

    @abstractmethod
    def validate(self) -> Optional[Failure]:
        """Check the source's inputs before any network or store access."""

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, timeout: float) -> StageResult[bytes]:
        """Obtain the encoded image bytes."""


class UrlImageSource(ImageSource):
    """Image downloaded from a user-supplied http(s) URL."""

    def __init__(self, image_url: str, max_bytes: int = MAX_IMAGE_BYTES):
        self.image_url = image_url
        self.max_bytes = max_bytes

    def validate(self) -> Optional[Failure]:
        result = validate_image_url(self.image_url)
        return result if isinstance(result, Failure) else None

    async def fetch(self, client: httpx.AsyncClient, timeout: float) -> StageResult[bytes]:
        url = validate_image_url(self.image_url)
        if isinstance(url, Failure):
            return url
        result = await download_image(client, url.value, timeout, self.max_bytes)
        if isinstance(result, Failure):
            return result
        return Ok(result.value.data)


class StoredImageSource(ImageSource):
    """
    Image read from the image store.

    The lookup is retried on transient data-layer errors only. A missing
    record is a terminal ``image_not_found`` failure, never retried.
    """

    def __init__(
        self,
        image_id: str,
        store: ImageLookup,
        attempts: int = RETRY_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
    ):
        self.image_id = image_id
        self.store = store
        self.attempts = attempts
        self.base_delay = base_delay

    def validate(self) -> Optional[Failure]:
        if not self.image_id or not isinstance(self.image_id, str) or not self.image_id.strip():
            return Failure(reason=FailureReason.INVALID_INPUT, message="Invalid imageId")
        return None

    async def fetch(self, client: httpx.AsyncClient, timeout: float) -> StageResult[bytes]:
        try:
            data = await run_in_threadpool(
                with_retry,
                lambda: self.store.get_binary_by_id(self.image_id),
                self.attempts,
                self.base_delay,
            )
        except SQLAlchemyError as e:
            logger.error(f"Image lookup for {self.image_id} failed: {e}")
            return Failure(
                reason=FailureReason.DATA_LAYER_ERROR,
                message=(
                    "Database connection error, please try again"
                    if is_retryable_error(e)
                    else "Failed to load image"
                ),
                details={"error": str(e)},
            )

        if data is None:
            return Failure(
                reason=FailureReason.IMAGE_NOT_FOUND,
                message="Image not found",
                details={"image_id": self.image_id},
            )

        return Ok(data)
