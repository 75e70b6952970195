"""
URL and input validation.

Device endpoints and image URLs come from users and are fetched server-side,
so only http(s) URLs are ever allowed through to the network layer.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

from led_matrix.results import Failure, FailureReason, Ok, StageResult

ALLOWED_SCHEMES = ("http", "https")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def validate_url(url: Optional[str]) -> StageResult[str]:
    """
    Validate that a URL is well formed and uses http or https.

    Rejects javascript:, data:, file: and every other scheme.

    Returns:
        Ok with the trimmed URL, or a Failure whose message is the reason
        (``URL is required``, ``Invalid URL format`` or
        ``URL must use http:// or https://``).
    """
    trimmed = (url or "").strip()

    if not trimmed:
        return _invalid("URL is required")

    try:
        parsed = urlsplit(trimmed)
    except ValueError:
        return _invalid("Invalid URL format")

    scheme = parsed.scheme.lower()
    if not scheme:
        return _invalid("Invalid URL format")

    if scheme not in ALLOWED_SCHEMES:
        return _invalid("URL must use http:// or https://")

    try:
        hostname = parsed.hostname
        _ = parsed.port  # raises on a non-numeric port
    except ValueError:
        return _invalid("Invalid URL format")

    if not hostname:
        return _invalid("Invalid URL format")

    return Ok(trimmed)


def validate_endpoint(url: Optional[str]) -> StageResult[str]:
    """Validate a device base URL and return it without trailing slashes."""
    result = validate_url(url)
    if isinstance(result, Failure):
        return _prefixed(result, "Invalid endpoint URL")
    return Ok(normalize_endpoint(result.value))


def validate_image_url(url: Optional[str]) -> StageResult[str]:
    """Validate a source image URL; it is fetched verbatim."""
    result = validate_url(url)
    if isinstance(result, Failure):
        return _prefixed(result, "Invalid image URL")
    return result


def normalize_endpoint(url: str) -> str:
    """Strip trailing slashes from a device base URL."""
    return url.rstrip("/")


def sanitize_string(value: Optional[str]) -> str:
    """Remove control characters (except tab/newline/CR) and surrounding whitespace."""
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub("", value).strip()


def _invalid(message: str) -> Failure:
    return Failure(reason=FailureReason.INVALID_INPUT, message=message)


def _prefixed(failure: Failure, prefix: str) -> Failure:
    return Failure(
        reason=failure.reason,
        message=f"{prefix}: {failure.message}",
        details=failure.details,
    )
