"""
Step dispatch for flow graph nodes.

Each handler performs one node's side effects through the capabilities and
reports whether a target modifier was found. Capability failures are caught
here: the step simply produces no match, unless the capability is reported
unavailable or keeps failing, which is escalated as
``CapabilityUnavailableError``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ...core.config import settings
from ...core.constants import LogLevel, NodeKind
from ...core.logger import logger
from ..capability.types import (
    Capabilities,
    CapabilityUnavailableError,
    EventSink,
    MouseButton,
)
from ..crafter.delay import cancellable_delay
from ..crafter.events import emit
from ..crafter.state import AttemptLoopState
from ..mods.catalog import KnownModCatalog
from ..mods.matcher import ExclusionPolicy, find_match
from ..mods.types import ModifierMatch, ModifierSpec
from ..ocr.aggregate import aggregate
from ..ocr.recognize import recognize_variants
from ..ocr.types import ModifierLine
from .types import CheckRegionData, ClickData, DelayData, Node, StepConfigurationError


@dataclass
class StepOutcome:
    found: bool = False
    match: Optional[ModifierMatch] = None
    lines: List[ModifierLine] = field(default_factory=list)


def summarize_lines(lines: Sequence[ModifierLine], limit: int = 2) -> str:
    """Top lines for the "detected" log entry."""
    texts = [l.original_text for l in lines if len(l.original_text) > 5]
    return " | ".join(texts[:limit])


class StepExecutor:
    """Executes single nodes against the capabilities."""

    def __init__(
        self,
        capabilities: Capabilities,
        state: AttemptLoopState,
        *,
        known_mods: Optional[KnownModCatalog] = None,
        fallback_modifiers: Sequence[ModifierSpec] = (),
        policy: Optional[ExclusionPolicy] = None,
        sink: Optional[EventSink] = None,
        failure_limit: Optional[int] = None,
    ) -> None:
        self.capabilities = capabilities
        self.state = state
        self.known_mods = known_mods
        self.fallback_modifiers = list(fallback_modifiers)
        self.policy = policy
        self.sink = sink
        self.failure_limit = (
            settings.capability_failure_limit if failure_limit is None else failure_limit
        )
        self._failures: Dict[str, int] = {}
        self._log = logger.bind(module="StepExecutor")
        self._handlers: Dict[str, Callable[[Node], Awaitable[StepOutcome]]] = {
            NodeKind.LEFT_CLICK.value: self._left_click,
            NodeKind.RIGHT_CLICK.value: self._right_click,
            NodeKind.CHECK_REGION.value: self._check_region,
            NodeKind.DELAY.value: self._delay,
        }

    async def execute(self, node: Node) -> StepOutcome:
        handler = self._handlers.get(node.kind)
        if handler is None:
            emit(self.sink, f'unknown node kind "{node.kind}" ({node.id}), skipping', LogLevel.WARNING.value)
            return StepOutcome()
        emit(self.sink, node.display_name, LogLevel.DEBUG.value)
        return await handler(node)

    # ── capability failure bookkeeping ──

    def _succeeded(self, capability: str) -> None:
        self._failures[capability] = 0

    def _failed(self, capability: str, node: Node, exc: Exception) -> None:
        count = self._failures.get(capability, 0) + 1
        self._failures[capability] = count
        self._log.warning(f"{capability} failed on {node.display_name} ({count}x): {exc!r}")
        emit(self.sink, f"{capability} error on {node.display_name}: {exc}", LogLevel.WARNING.value)
        if self.failure_limit > 0 and count >= self.failure_limit:
            raise CapabilityUnavailableError(
                f"{capability} failed {count} times in a row: {exc}"
            ) from exc

    # ── modifier key ──

    async def set_modifier_key(self, held: bool) -> None:
        """Bring the modifier key to ``held``; no-op when already there."""
        if held == self.state.modifier_held:
            return
        await self.capabilities.input.set_modifier_key(held)
        self.state.modifier_held = held
        emit(
            self.sink,
            "modifier key pressed" if held else "modifier key released",
            LogLevel.DEBUG.value,
        )
        await cancellable_delay(settings.modifier_key_settle_ms, self.state)

    async def release_modifier_key(self) -> None:
        """Release the modifier key if held; never raises."""
        if not self.state.modifier_held:
            return
        try:
            await self.capabilities.input.set_modifier_key(False)
            emit(self.sink, "modifier key released", LogLevel.INFO.value)
        except Exception as exc:
            self._log.warning(f"failed to release modifier key: {exc!r}")
        finally:
            self.state.modifier_held = False

    # ── handlers ──

    async def _left_click(self, node: Node) -> StepOutcome:
        return await self._click(node, MouseButton.LEFT)

    async def _right_click(self, node: Node) -> StepOutcome:
        return await self._click(node, MouseButton.RIGHT)

    async def _click(self, node: Node, button: MouseButton) -> StepOutcome:
        data = node.data
        if not isinstance(data, ClickData) or data.position is None:
            raise StepConfigurationError(node, "no click position set")
        if not data.position.is_valid():
            raise StepConfigurationError(node, f"invalid click position {data.position}")

        try:
            # right clicks leave the held key alone
            if button == MouseButton.LEFT:
                await self.set_modifier_key(data.use_shift)
            await self.capabilities.input.move_and_click(
                data.position.x, data.position.y, button
            )
        except CapabilityUnavailableError:
            raise
        except Exception as exc:
            self._failed("input", node, exc)
            return StepOutcome()
        self._succeeded("input")

        await cancellable_delay(data.post_delay_ms, self.state)
        return StepOutcome()

    async def _delay(self, node: Node) -> StepOutcome:
        duration = node.data.duration_ms if isinstance(node.data, DelayData) else 0
        emit(self.sink, f"waiting {duration}ms", LogLevel.DEBUG.value)
        await cancellable_delay(duration, self.state)
        return StepOutcome()

    async def _check_region(self, node: Node) -> StepOutcome:
        data = node.data
        if not isinstance(data, CheckRegionData) or data.region is None:
            raise StepConfigurationError(node, "no region set")
        if not data.region.is_valid():
            raise StepConfigurationError(node, f"invalid region {data.region.as_tuple()}")
        modifiers = data.modifiers or self.fallback_modifiers
        if not modifiers:
            raise StepConfigurationError(node, "no modifiers to look for")

        capture = self.capabilities.capture
        try:
            image = await capture.grab_region(data.region)
            images = await capture.variants(image)
        except CapabilityUnavailableError:
            raise
        except Exception as exc:
            self._failed("capture", node, exc)
            return StepOutcome()
        self._succeeded("capture")

        try:
            candidate_sets = await recognize_variants(self.capabilities.ocr, images)
        except CapabilityUnavailableError:
            raise
        except Exception as exc:
            self._failed("ocr", node, exc)
            return StepOutcome()
        self._succeeded("ocr")

        lines = aggregate(candidate_sets, self.known_mods)
        emit(self.sink, f"detected: {summarize_lines(lines) or '-'}", LogLevel.DEBUG.value)

        match = find_match(lines, modifiers, self.policy)
        if match is None:
            return StepOutcome(lines=lines)
        return StepOutcome(found=True, match=match, lines=lines)


__all__ = ["StepExecutor", "StepOutcome", "summarize_lines"]
