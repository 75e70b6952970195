"""
LED Matrix Control Service
Pydantic models for the HTTP API and the device protocol
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Device display bounds (inclusive)
MIN_DIMENSION = 1
MAX_DIMENSION = 1024

# Bytes per pixel in a frame (RGBA)
BYTES_PER_PIXEL = 4


# Device Models
class DeviceGeometry(BaseModel):
    """Display size reported by a device's /configuration endpoint."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=MIN_DIMENSION, le=MAX_DIMENSION)
    height: int = Field(ge=MIN_DIMENSION, le=MAX_DIMENSION)

    @property
    def frame_size(self) -> int:
        """Exact byte length of an RGBA frame for this geometry."""
        return self.width * self.height * BYTES_PER_PIXEL


# Transmission Models
class SendImageRequest(BaseModel):
    image_url: str
    endpoint_url: str


class SendStoredImageRequest(BaseModel):
    image_id: str
    endpoint_url: str


class SendFrameRequest(BaseModel):
    """Pre-rendered RGBA frame relayed to a device."""

    endpoint_url: str
    frame_data: List[int] = Field(description="Raw RGBA bytes, one int per byte")


class TransmissionResult(BaseModel):
    """Outcome of one frame transmission. No partial successes."""

    success: bool
    error: Optional[str] = None


# Instance Models
class InstanceCreate(BaseModel):
    name: str
    endpoint_url: str


class InstanceUpdate(BaseModel):
    name: str
    endpoint_url: str


class Instance(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    endpoint_url: str
    created_at: datetime
    updated_at: datetime


# Image Models
class ImageFromUrl(BaseModel):
    url: str


class StoreImageResponse(BaseModel):
    id: str
    is_new: bool


class ImageMetadata(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    content_hash: str
    original_url: Optional[str] = None
    mime_type: str
    created_at: datetime
