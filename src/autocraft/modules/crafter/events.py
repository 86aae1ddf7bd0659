"""
User-visible run events.

The attempt loop reports progress through an ``EventSink``; emitting is
fire-and-forget, a failing sink never interrupts the run.
"""
from __future__ import annotations

from typing import Optional

from ...core.constants import LogLevel
from ...core.logger import logger
from ..capability.types import EventSink

_LEVELS = {
    LogLevel.DEBUG.value: "DEBUG",
    LogLevel.INFO.value: "INFO",
    LogLevel.SUCCESS.value: "SUCCESS",
    LogLevel.WARNING.value: "WARNING",
    LogLevel.ERROR.value: "ERROR",
}

_log = logger.bind(module="events")


class LoguruEventSink:
    """Default sink: forwards events to loguru."""

    def __init__(self, **extra) -> None:
        self._log = logger.bind(module="AutoCrafter", **extra)

    def emit(self, message: str, level: str = LogLevel.INFO.value) -> None:
        self._log.opt(depth=1).log(_LEVELS.get(level, "INFO"), message)


def emit(sink: Optional[EventSink], message: str, level: str = LogLevel.INFO.value) -> None:
    """Send an event to ``sink`` without letting sink errors escape."""
    if sink is None:
        return
    try:
        sink.emit(message, level)
    except Exception as exc:
        _log.warning(f"event sink failed: {exc}")


__all__ = ["LoguruEventSink", "emit"]
