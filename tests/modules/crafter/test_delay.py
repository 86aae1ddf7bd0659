import asyncio
import time

import pytest

from autocraft.modules.crafter import delay as delay_module
from autocraft.modules.crafter.delay import cancellable_delay
from autocraft.modules.crafter.state import AttemptLoopState


class _FakeClock:
    def __init__(self):
        self.now = 0.0
        self.hooks = []

    def monotonic(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds
        for at, fn in list(self.hooks):
            if self.now >= at:
                fn()
                self.hooks.remove((at, fn))


@pytest.fixture()
def clock(monkeypatch):
    fake = _FakeClock()
    monkeypatch.setattr(delay_module, "monotonic", fake.monotonic)
    monkeypatch.setattr(delay_module, "sleep", fake.sleep)
    return fake


@pytest.mark.asyncio
async def test_long_delay_aborts_after_threshold_when_stopped(clock):
    state = AttemptLoopState()
    clock.hooks.append((2.0, state.request_stop))

    completed = await cancellable_delay(10_000, state, poll_ms=30, abort_after_ms=5000)

    assert completed is False
    # not immediately, not after the full ten seconds
    assert 5.0 < clock.now <= 5.0 + 0.03 + 1e-6


@pytest.mark.asyncio
async def test_long_delay_runs_out_without_stop(clock):
    completed = await cancellable_delay(10_000, AttemptLoopState(), poll_ms=30, abort_after_ms=5000)

    assert completed is True
    assert clock.now == pytest.approx(10.0)


@pytest.mark.asyncio
async def test_short_delay_ignores_stop(clock):
    state = AttemptLoopState()
    state.request_stop()

    completed = await cancellable_delay(3000, state, poll_ms=30, abort_after_ms=5000)

    assert completed is True
    assert clock.now == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_delay_uses_settings_defaults(clock, monkeypatch):
    monkeypatch.setattr(delay_module.settings, "delay_abort_after_ms", 1000)
    monkeypatch.setattr(delay_module.settings, "delay_poll_ms", 100)
    state = AttemptLoopState()
    state.request_stop()

    completed = await cancellable_delay(4000, state)

    assert completed is False
    assert 1.0 < clock.now <= 1.1 + 1e-6


@pytest.mark.asyncio
async def test_zero_or_negative_delay_returns_immediately(clock):
    assert await cancellable_delay(0) is True
    assert await cancellable_delay(-5) is True
    assert clock.now == 0.0


@pytest.mark.asyncio
async def test_real_clock_abort():
    state = AttemptLoopState()
    loop = asyncio.get_running_loop()
    loop.call_later(0.02, state.request_stop)

    started = time.monotonic()
    completed = await cancellable_delay(2000, state, poll_ms=10, abort_after_ms=100)
    elapsed = time.monotonic() - started

    assert completed is False
    assert 0.09 < elapsed < 0.5
