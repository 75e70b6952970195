"""Frame encoding: source image bytes to a device-ready RGBA framebuffer.

The source image is decoded with Pillow, scaled and cropped to exactly fill
the device geometry ("cover": no letterboxing, overflow on the longer axis
is discarded), and serialized as raw RGBA, row-major, 4 bytes per pixel.
"""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from led_matrix.models import BYTES_PER_PIXEL, DeviceGeometry
from led_matrix.results import Failure, FailureReason, Ok, StageResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """Raw RGBA pixel buffer sized for one device geometry."""

    data: bytes
    geometry: DeviceGeometry

    @property
    def expected_size(self) -> int:
        return self.geometry.frame_size


def check_frame_size(frame: Frame) -> StageResult[Frame]:
    """Reject any frame whose length is not exactly width * height * 4."""
    got = len(frame.data)
    expected = frame.expected_size
    if got != expected:
        geometry = frame.geometry
        return Failure(
            reason=FailureReason.SIZE_MISMATCH,
            message=(
                f"Frame size mismatch: got {got} bytes, expected {expected} "
                f"({geometry.width}x{geometry.height}x{BYTES_PER_PIXEL})"
            ),
            details={"got": got, "expected": expected},
        )
    return Ok(frame)


class FrameEncoder:
    """Decodes, cover-resizes and serializes images for LED matrix devices."""

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS) -> None:
        """
        Args:
            resample: Pillow resampling filter used when scaling.
        """
        self._resample = resample

    def encode(self, source: bytes, geometry: DeviceGeometry) -> StageResult[Frame]:
        """
        Encode source image bytes into a frame for ``geometry``.

        Returns:
            Ok(Frame) on success, a ``decode_failed`` Failure for unreadable
            input, or a ``size_mismatch`` Failure if the rendered buffer does
            not have the exact expected length.
        """
        try:
            image = self._decode(source)
        except (
            UnidentifiedImageError,
            OSError,
            ValueError,
            SyntaxError,
            Image.DecompressionBombError,
        ) as e:
            logger.warning(f"Could not decode source image ({len(source)} bytes): {e}")
            return Failure(
                reason=FailureReason.DECODE_FAILED,
                message=f"Failed to decode image: {e}",
            )

        data = self._render(image, geometry)
        logger.debug(
            f"Encoded {image.width}x{image.height} source into "
            f"{geometry.width}x{geometry.height} frame ({len(data)} bytes)"
        )
        return check_frame_size(Frame(data=data, geometry=geometry))

    def _decode(self, source: bytes) -> Image.Image:
        if not source:
            raise ValueError("empty image data")
        image = Image.open(io.BytesIO(source))
        image.load()
        # Honour camera orientation tags before cropping
        image = ImageOps.exif_transpose(image)
        return image.convert("RGBA")

    def _render(self, image: Image.Image, geometry: DeviceGeometry) -> bytes:
        fitted = ImageOps.fit(
            image,
            (geometry.width, geometry.height),
            method=self._resample,
            centering=(0.5, 0.5),
        )
        return fitted.tobytes("raw", "RGBA")
