from .types import (
    Capabilities,
    CapabilityError,
    CapabilityUnavailableError,
    CaptureCapability,
    CaptureError,
    EventSink,
    InputCapability,
    InputError,
    MouseButton,
    OcrCapability,
    OcrError,
    Point,
    Region,
)
from .async_adapter import AsyncCaptureAdapter, AsyncInputAdapter, AsyncOcrAdapter

__all__ = [
    "Capabilities",
    "CapabilityError",
    "CapabilityUnavailableError",
    "CaptureCapability",
    "CaptureError",
    "EventSink",
    "InputCapability",
    "InputError",
    "MouseButton",
    "OcrCapability",
    "OcrError",
    "Point",
    "Region",
    "AsyncCaptureAdapter",
    "AsyncInputAdapter",
    "AsyncOcrAdapter",
]
