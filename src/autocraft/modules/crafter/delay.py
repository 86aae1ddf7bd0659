"""
Cancellable delay.

Short waits (up to the abort threshold, 5 s by default) always sleep out in
full so click timings stay stable even while a stop is pending. Longer waits
give up the remaining time once the threshold has elapsed and a stop is
observed, which bounds stop latency to about threshold + poll interval.
"""
from __future__ import annotations

from asyncio import sleep
from time import monotonic
from typing import Optional

from ...core.config import settings
from .state import AttemptLoopState


async def cancellable_delay(
    duration_ms: int,
    state: Optional[AttemptLoopState] = None,
    *,
    poll_ms: Optional[int] = None,
    abort_after_ms: Optional[int] = None,
) -> bool:
    """Sleep ``duration_ms``, polling ``state`` for a stop.

    Returns:
        True when the delay ran to completion, False when it was cut short.
    """
    if duration_ms <= 0:
        return True
    if poll_ms is None:
        poll_ms = settings.delay_poll_ms
    if abort_after_ms is None:
        abort_after_ms = settings.delay_abort_after_ms

    poll = max(1, poll_ms) / 1000.0
    total = duration_ms / 1000.0
    threshold = abort_after_ms / 1000.0
    started = monotonic()

    while True:
        elapsed = monotonic() - started
        if elapsed >= total:
            return True
        if (
            state is not None
            and elapsed > threshold
            and state.is_stop_requested()
        ):
            return False
        await sleep(min(poll, total - elapsed))


__all__ = ["cancellable_delay"]
