"""
Capability contracts consumed by the flow executor.

Concrete input injection, screen capture and OCR inference live outside
this package; the executor only sees these typing-only protocols.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Protocol, Sequence

from ..ocr.types import OcrLine


class MouseButton(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Point:
    x: int
    y: int

    def is_valid(self) -> bool:
        return (
            isinstance(self.x, int)
            and isinstance(self.y, int)
            and self.x >= 0
            and self.y >= 0
        )


@dataclass(frozen=True)
class Region:
    """Screen rectangle (x, y, width, height)."""
    x: int
    y: int
    width: int
    height: int

    def is_valid(self) -> bool:
        return (
            all(isinstance(v, int) for v in (self.x, self.y, self.width, self.height))
            and self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
        )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


class CapabilityError(Exception):
    """A capability call failed; the step counts as "no match"."""


class InputError(CapabilityError):
    pass


class CaptureError(CapabilityError):
    pass


class OcrError(CapabilityError):
    pass


class CapabilityUnavailableError(CapabilityError):
    """The capability cannot work at all; fatal for the run."""


class InputCapability(Protocol):
    async def move_and_click(self, x: int, y: int, button: MouseButton) -> None:
        """Move the cursor to (x, y) and click ``button``."""
        ...

    async def set_modifier_key(self, held: bool) -> None:
        """Press (True) or release (False) the click modifier key (Shift)."""
        ...


class CaptureCapability(Protocol):
    async def grab_region(self, region: Region) -> Any:
        """Capture ``region`` of the screen."""
        ...

    async def variants(self, image: Any) -> Sequence[Any]:
        """The two preprocessed OCR variants of a captured image."""
        ...


class OcrCapability(Protocol):
    async def recognize_lines(self, image: Any) -> List[OcrLine]:
        """Recognize text lines with confidences (0-100)."""
        ...


class EventSink(Protocol):
    def emit(self, message: str, level: str = "info") -> None:
        """One-way, user-visible event."""
        ...


@dataclass
class Capabilities:
    """Capability bundle handed to the attempt loop."""
    input: InputCapability
    capture: CaptureCapability
    ocr: OcrCapability


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
]
