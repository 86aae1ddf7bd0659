"""
Mutable state of one attempt-loop run.

Cancellation is cooperative: ``request_stop`` (or the out-of-band stop
signal file) only raises a flag, which the executor polls before each node
and the delay primitive polls while sleeping.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ...core.config import settings
from ...core.logger import logger

_log = logger.bind(module="AttemptLoopState")


@dataclass
class AttemptLoopState:
    """Flags shared by the attempt loop, the executor and the delay primitive.

    Attributes:
        running: a run is in progress
        stop_requested: cancellation flag
        modifier_held: the click modifier key (Shift) is currently pressed
        attempts: attempts started in the current run
        signal_file: optional file whose appearance requests a stop
    """
    running: bool = False
    stop_requested: bool = False
    modifier_held: bool = False
    attempts: int = 0
    signal_file: Optional[Path] = field(default=None)

    def __post_init__(self) -> None:
        if self.signal_file is None and settings.stop_signal_file:
            self.signal_file = Path(settings.stop_signal_file)

    def request_stop(self) -> None:
        if not self.stop_requested:
            _log.info("stop requested")
        self.stop_requested = True

    def is_stop_requested(self) -> bool:
        """Poll the flag and the stop signal file (consumed when seen)."""
        if not self.stop_requested and self._consume_signal_file():
            _log.info(f"stop signal file seen: {self.signal_file}")
            self.stop_requested = True
        return self.stop_requested

    def begin(self) -> None:
        """Reset for a new run; drops an idle stop request and a stale signal file."""
        self.running = True
        self.stop_requested = False
        self.attempts = 0
        self.clear_signal_file()

    def finish(self) -> None:
        self.running = False

    def clear_signal_file(self) -> None:
        if self.signal_file is None:
            return
        try:
            self.signal_file.unlink(missing_ok=True)
        except OSError as e:
            _log.warning(f"could not remove stop signal file {self.signal_file}: {e}")

    def _consume_signal_file(self) -> bool:
        if self.signal_file is None or not self.signal_file.exists():
            return False
        self.clear_signal_file()
        return True


def create_stop_signal(path: Optional[str] = None) -> Path:
    """Write the stop signal file (for hotkey helpers or another process)."""
    path = path or settings.stop_signal_file
    if not path:
        raise ValueError("no stop signal file configured")
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text("stop", encoding="utf-8")
    return target


__all__ = ["AttemptLoopState", "create_stop_signal"]
