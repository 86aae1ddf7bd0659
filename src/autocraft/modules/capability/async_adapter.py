"""
Async wrappers for blocking capability implementations.

Input libraries, screen grabbers and OCR engines are usually synchronous.
These proxies offload each call to the shared thread pools so the attempt
loop's event loop keeps polling cancellation.

Usage::

    capabilities = Capabilities(
        input=AsyncInputAdapter(PyAutoGuiInput()),
        capture=AsyncCaptureAdapter(PreprocessingCapture(grab_screen)),
        ocr=AsyncOcrAdapter(TesseractLines()),
    )
"""
from __future__ import annotations

from typing import Any, List, Sequence

from ...core.thread_pool import run_in_compute, run_in_io
from ..ocr.types import OcrLine
from .types import MouseButton, Region


class AsyncInputAdapter:
    """Async proxy of a sync input implementation (I/O pool)."""

    def __init__(self, impl: Any) -> None:
        self._sync = impl

    @property
    def sync(self) -> Any:
        return self._sync

    async def move_and_click(self, x: int, y: int, button: MouseButton) -> None:
        return await run_in_io(self._sync.move_and_click, x, y, button)

    async def set_modifier_key(self, held: bool) -> None:
        return await run_in_io(self._sync.set_modifier_key, held)


class AsyncCaptureAdapter:
    """Async proxy of a sync capture implementation.

    Grabs run on the I/O pool, preprocessing on the compute pool.
    """

    def __init__(self, impl: Any) -> None:
        self._sync = impl

    @property
    def sync(self) -> Any:
        return self._sync

    async def grab_region(self, region: Region) -> Any:
        return await run_in_io(self._sync.grab_region, region)

    async def variants(self, image: Any) -> Sequence[Any]:
        return await run_in_compute(self._sync.variants, image)


class AsyncOcrAdapter:
    """Async proxy of a sync OCR engine (compute pool)."""

    def __init__(self, impl: Any) -> None:
        self._sync = impl

    @property
    def sync(self) -> Any:
        return self._sync

    async def recognize_lines(self, image: Any) -> List[OcrLine]:
        return await run_in_compute(self._sync.recognize_lines, image)


__all__ = ["AsyncCaptureAdapter", "AsyncInputAdapter", "AsyncOcrAdapter"]
