"""
Tests for the device HTTP client (configuration fetch, frame send)
"""

import httpx
import pytest

from led_matrix.device_client import DeviceClient, parse_geometry
from led_matrix.frame_encoder import Frame
from led_matrix.models import DeviceGeometry
from led_matrix.results import Failure, FailureReason, Ok

DEVICE_URL = "http://device.local"


def _client(device, timeout: float = 15.0) -> DeviceClient:
    http = httpx.AsyncClient(transport=device.transport)
    return DeviceClient(http, DEVICE_URL + "/", timeout=timeout)


@pytest.mark.asyncio
async def test_fetch_geometry(make_device):
    device = make_device(width=64, height=32)
    client = _client(device)

    result = await client.fetch_geometry()

    assert result == Ok(DeviceGeometry(width=64, height=32))
    assert device.paths() == ["/configuration"]


@pytest.mark.asyncio
async def test_fetch_geometry_non_2xx(make_device):
    device = make_device(config_status=500)

    result = await _client(device).fetch_geometry()

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.CONFIG_UNREACHABLE
    assert result.message == "Failed to get display config: 500"
    assert result.details["http_status"] == 500


@pytest.mark.asyncio
async def test_fetch_geometry_non_json(make_device):
    device = make_device(config_payload=b"<html>nope</html>")

    result = await _client(device).fetch_geometry()

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.INVALID_GEOMETRY


@pytest.mark.asyncio
async def test_fetch_geometry_timeout(make_device, monkeypatch):
    device = make_device()

    async def slow_get(*args, **kwargs):
        raise httpx.ReadTimeout("timed out")

    client = _client(device, timeout=15.0)
    monkeypatch.setattr(client.client, "get", slow_get)

    result = await client.fetch_geometry()

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.TIMEOUT
    assert result.message == "Request timed out after 15 seconds"
    assert result.details == {"timeout_ms": 15000}


@pytest.mark.parametrize(
    "payload",
    [
        {"width": 0, "height": 32},
        {"width": 64, "height": 1025},
        {"width": -1, "height": 32},
        {"width": 64.5, "height": 32},
        {"width": "64", "height": 32},
        {"width": True, "height": 32},
        {"width": None, "height": 32},
        {"height": 32},
        {},
        [64, 32],
        "64x32",
    ],
)
def test_parse_geometry_rejects_invalid(payload):
    result = parse_geometry(payload)

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.INVALID_GEOMETRY
    assert result.message.startswith("Invalid display dimensions: width=")
    assert result.message.endswith("Expected integers between 1 and 1024.")


def test_parse_geometry_message():
    result = parse_geometry({"width": 2000, "height": 32})
    assert result.message == (
        "Invalid display dimensions: width=2000, height=32. "
        "Expected integers between 1 and 1024."
    )


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"width": 1, "height": 1}, (1, 1)),
        ({"width": 1024, "height": 1024}, (1024, 1024)),
        ({"width": 64.0, "height": 32.0}, (64, 32)),
        ({"width": 64, "height": 32, "brightness": 80}, (64, 32)),
    ],
)
def test_parse_geometry_accepts_valid(payload, expected):
    result = parse_geometry(payload)
    assert isinstance(result, Ok)
    assert (result.value.width, result.value.height) == expected


@pytest.mark.asyncio
async def test_send_frame_posts_multipart(make_device):
    device = make_device()
    frame = Frame(data=bytes(range(256)) * 32, geometry=DeviceGeometry(width=64, height=32))

    result = await _client(device).send_frame(frame)

    assert result == Ok(None)
    request = device.requests[0]
    assert request.method == "POST"
    assert request.url == httpx.URL(f"{DEVICE_URL}/frame")
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert device.frames == [frame.data]


@pytest.mark.asyncio
async def test_send_frame_rejected(make_device):
    device = make_device(frame_status=503)
    frame = Frame(data=bytes(8), geometry=DeviceGeometry(width=2, height=1))

    result = await _client(device).send_frame(frame)

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.FRAME_REJECTED
    assert result.message == "Failed to send frame: 503"


@pytest.mark.asyncio
async def test_send_frame_deadline(make_device):
    """A device that stalls past the deadline yields a timeout, not a hang."""
    device = make_device(frame_delay=1.0)
    frame = Frame(data=bytes(8), geometry=DeviceGeometry(width=2, height=1))

    result = await _client(device, timeout=0.05).send_frame(frame)

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.TIMEOUT
    assert result.message == "Request timed out after 0.05 seconds"


@pytest.mark.asyncio
async def test_connection_errors_propagate(make_device):
    device = make_device(frame_error=httpx.ConnectError("connection refused"))
    frame = Frame(data=bytes(8), geometry=DeviceGeometry(width=2, height=1))

    with pytest.raises(httpx.ConnectError):
        await _client(device).send_frame(frame)
