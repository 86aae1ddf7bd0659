import threading

import pytest

from autocraft.core.thread_pool import shutdown_pools
from autocraft.modules.capability import async_adapter as async_adapter_module
from autocraft.modules.capability.async_adapter import (
    AsyncCaptureAdapter,
    AsyncInputAdapter,
    AsyncOcrAdapter,
)
from autocraft.modules.capability.types import MouseButton, Point, Region
from autocraft.modules.ocr.types import OcrLine


class _DummyInput:
    def __init__(self):
        self.events = []

    def move_and_click(self, x, y, button):
        self.events.append(("click", x, y, button))

    def set_modifier_key(self, held):
        self.events.append(("modifier", held))


class _DummyCapture:
    def grab_region(self, region):
        return f"pixels:{region.as_tuple()}"

    def variants(self, image):
        return [f"{image}:a", f"{image}:b"]


class _DummyOcr:
    def recognize_lines(self, image):
        return [OcrLine(f"+6 to all ({image})", 90.0)]


@pytest.fixture()
def pool_calls(monkeypatch):
    calls = []

    async def _fake_run_in_io(func, *args):
        calls.append(("io", func.__name__))
        return func(*args)

    async def _fake_run_in_compute(func, *args):
        calls.append(("compute", func.__name__))
        return func(*args)

    monkeypatch.setattr(async_adapter_module, "run_in_io", _fake_run_in_io)
    monkeypatch.setattr(async_adapter_module, "run_in_compute", _fake_run_in_compute)
    return calls


@pytest.mark.asyncio
async def test_input_runs_on_io_pool(pool_calls):
    sync_input = _DummyInput()
    adapter = AsyncInputAdapter(sync_input)

    await adapter.set_modifier_key(True)
    await adapter.move_and_click(5, 6, MouseButton.RIGHT)

    assert adapter.sync is sync_input
    assert sync_input.events == [("modifier", True), ("click", 5, 6, MouseButton.RIGHT)]
    assert pool_calls == [("io", "set_modifier_key"), ("io", "move_and_click")]


@pytest.mark.asyncio
async def test_capture_grabs_on_io_and_preprocesses_on_compute(pool_calls):
    adapter = AsyncCaptureAdapter(_DummyCapture())

    image = await adapter.grab_region(Region(1, 2, 3, 4))
    variants = await adapter.variants(image)

    assert variants == ["pixels:(1, 2, 3, 4):a", "pixels:(1, 2, 3, 4):b"]
    assert pool_calls == [("io", "grab_region"), ("compute", "variants")]


@pytest.mark.asyncio
async def test_ocr_runs_on_compute_pool(pool_calls):
    adapter = AsyncOcrAdapter(_DummyOcr())

    lines = await adapter.recognize_lines("img")

    assert lines == [OcrLine("+6 to all (img)", 90.0)]
    assert pool_calls == [("compute", "recognize_lines")]


@pytest.mark.asyncio
async def test_adapters_use_real_pools_off_loop_thread():
    loop_thread = threading.get_ident()
    seen = []

    class _ThreadRecordingInput(_DummyInput):
        def move_and_click(self, x, y, button):
            seen.append(threading.get_ident())

    try:
        await AsyncInputAdapter(_ThreadRecordingInput()).move_and_click(1, 1, MouseButton.LEFT)
    finally:
        shutdown_pools()

    assert seen and seen[0] != loop_thread


def test_point_and_region_validity():
    assert Point(0, 0).is_valid()
    assert not Point(-1, 0).is_valid()
    assert Region(0, 0, 10, 10).is_valid()
    assert not Region(0, 0, 0, 10).is_valid()
    assert not Region(-5, 0, 10, 10).is_valid()
