"""
Shared fixtures: in-memory database, image factory and a stub LED matrix device.
"""

import os

# Tests never touch a real database
os.environ["DATABASE_URL"] = "sqlite://"

import asyncio
import io
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from PIL import Image

from led_matrix.database import Base, SessionLocal, engine, init_db

DEVICE_URL = "http://device.local"
IMAGE_HOST = "http://images.example"


@pytest.fixture(autouse=True)
def database():
    """Create all tables before each test and drop them afterwards."""
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def encode_image(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for solid-colour encoded test images."""

    def _make(
        width: int,
        height: int,
        color: Tuple[int, ...] = (255, 0, 0),
        fmt: str = "PNG",
    ) -> bytes:
        mode = "RGBA" if len(color) == 4 else "RGB"
        return encode_image(Image.new(mode, (width, height), color), fmt)

    return _make


def frame_part(request: httpx.Request) -> Optional[bytes]:
    """Extract the ``frame`` part of a multipart request body."""
    content_type = request.headers.get("content-type", "")
    if "boundary=" not in content_type:
        return None
    boundary = content_type.split("boundary=", 1)[1].encode()
    for part in request.content.split(b"--" + boundary):
        if b'name="frame"' in part:
            _, _, data = part.partition(b"\r\n\r\n")
            return data[:-2]
    return None


class FakeDevice:
    """
    Stub for an LED matrix device and an image host, served through
    httpx.MockTransport.

    Device routes live on DEVICE_URL; images registered in ``images`` are
    served from IMAGE_HOST by path.
    """

    def __init__(
        self,
        width: int = 64,
        height: int = 32,
        config_status: int = 200,
        config_payload=None,
        frame_status: int = 200,
        frame_error: Optional[Exception] = None,
        frame_delay: float = 0.0,
    ):
        self.config_payload = (
            config_payload
            if config_payload is not None
            else {"width": width, "height": height}
        )
        self.config_status = config_status
        self.frame_status = frame_status
        self.frame_error = frame_error
        self.frame_delay = frame_delay
        self.images: Dict[str, Tuple[bytes, str]] = {}
        self.requests: List[httpx.Request] = []
        self.frames: List[bytes] = []

    def add_image(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        self.images[path] = (data, content_type)
        return f"{IMAGE_HOST}{path}"

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [
            r.url.path for r in self.requests if method is None or r.method == method
        ]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = f"{request.url.scheme}://{request.url.host}"

        if host == IMAGE_HOST:
            if request.url.path in self.images:
                data, content_type = self.images[request.url.path]
                return httpx.Response(200, content=data, headers={"content-type": content_type})
            return httpx.Response(404)

        if request.url.path == "/configuration" and request.method == "GET":
            if isinstance(self.config_payload, (bytes, str)):
                return httpx.Response(self.config_status, content=self.config_payload)
            return httpx.Response(self.config_status, json=self.config_payload)

        if request.url.path == "/frame" and request.method == "POST":
            if self.frame_delay:
                await asyncio.sleep(self.frame_delay)
            if self.frame_error is not None:
                raise self.frame_error
            data = frame_part(request)
            if data is not None:
                self.frames.append(data)
            return httpx.Response(self.frame_status)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def make_device() -> Callable[..., FakeDevice]:
    return FakeDevice
