"""
Tagged stage results for the frame transmission pipeline.

Every pipeline stage returns either ``Ok(value)`` or a ``Failure``. Only the
pipeline turns a ``Failure`` into the public ``TransmissionResult``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, TypeVar, Union

from led_matrix.models import TransmissionResult

T = TypeVar("T")


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    CONFIG = "config"
    ENCODE = "encode"
    TRANSMIT = "transmit"
    DATA_LAYER = "data_layer"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class FailureReason(str, Enum):
    INVALID_INPUT = "invalid_input"
    CONFIG_UNREACHABLE = "config_unreachable"
    INVALID_GEOMETRY = "invalid_geometry"
    IMAGE_FETCH_FAILED = "image_fetch_failed"
    IMAGE_TOO_LARGE = "image_too_large"
    IMAGE_NOT_FOUND = "image_not_found"
    DATA_LAYER_ERROR = "data_layer_error"
    DECODE_FAILED = "decode_failed"
    SIZE_MISMATCH = "size_mismatch"
    FRAME_REJECTED = "frame_rejected"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    UNEXPECTED = "unexpected"


_CATEGORIES = {
    FailureReason.INVALID_INPUT: ErrorCategory.VALIDATION,
    FailureReason.CONFIG_UNREACHABLE: ErrorCategory.CONFIG,
    FailureReason.INVALID_GEOMETRY: ErrorCategory.CONFIG,
    FailureReason.IMAGE_FETCH_FAILED: ErrorCategory.VALIDATION,
    FailureReason.IMAGE_TOO_LARGE: ErrorCategory.VALIDATION,
    FailureReason.IMAGE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    FailureReason.DATA_LAYER_ERROR: ErrorCategory.DATA_LAYER,
    FailureReason.DECODE_FAILED: ErrorCategory.ENCODE,
    FailureReason.SIZE_MISMATCH: ErrorCategory.ENCODE,
    FailureReason.FRAME_REJECTED: ErrorCategory.TRANSMIT,
    FailureReason.TIMEOUT: ErrorCategory.TRANSMIT,
    FailureReason.CONNECTION_ERROR: ErrorCategory.TRANSMIT,
    FailureReason.UNEXPECTED: ErrorCategory.UNEXPECTED,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    """A stage failure with a human-readable message."""

    reason: FailureReason
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.reason]

    def to_result(self) -> TransmissionResult:
        return TransmissionResult(success=False, error=self.message)


StageResult = Union[Ok[T], Failure]
