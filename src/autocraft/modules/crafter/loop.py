"""
Attempt loop.

Repeats flow graph traversals until a target modifier is found, the attempt
limit is reached, a stop is requested or a fatal error occurs. The modifier
key is released after every attempt and on every exit path.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from time import monotonic
from typing import Optional
from uuid import uuid4

from ...core.constants import LogLevel, LoopOutcome
from ...core.logger import get_run_logger
from ..capability.types import Capabilities, CapabilityUnavailableError, EventSink
from ..flow.executor import FlowExecutor
from ..flow.steps import StepExecutor
from ..flow.types import FlowResult, StepConfigurationError
from ..mods.catalog import load_known_mods
from ..mods.matcher import ExclusionPolicy
from ..mods.types import ModifierSpec
from .config import CraftConfig
from .delay import cancellable_delay
from .events import LoguruEventSink, emit
from .state import AttemptLoopState

# progress is reported on the first attempt and every N-th after it
PROGRESS_EVERY = 10


@dataclass(frozen=True)
class AttemptResult:
    found: bool
    attempts: int
    duration_ms: int
    outcome: LoopOutcome
    matched_modifier: Optional[ModifierSpec] = None
    detected_text: Optional[str] = None
    error: Optional[str] = None


async def run_attempt_loop(
    config: CraftConfig,
    capabilities: Capabilities,
    *,
    state: Optional[AttemptLoopState] = None,
    sink: Optional[EventSink] = None,
    policy: Optional[ExclusionPolicy] = None,
) -> AttemptResult:
    """Run attempts until found, exhausted, stopped or failed.

    Args:
        config: flow graph, attempt limit, fallback modifiers, known mods
        capabilities: input, capture and OCR implementations
        state: shared run state; a fresh one is used when omitted
        sink: receives user-visible events (defaults to loguru)
        policy: modifier exclusion policy (defaults to settings)

    Raises:
        GraphValidationError: the flow graph is malformed; no attempt runs
    """
    graph = config.flow_graph.ensure_valid()
    state = state if state is not None else AttemptLoopState()
    sink = sink if sink is not None else LoguruEventSink()
    log = get_run_logger(uuid4().hex[:8]).bind(module="AttemptLoop")

    steps = StepExecutor(
        capabilities,
        state,
        known_mods=config.known_mods,
        fallback_modifiers=config.modifiers,
        policy=policy,
        sink=sink,
    )
    executor = FlowExecutor(graph, steps, state, sink)

    outcome = LoopOutcome.EXHAUSTED
    found: Optional[FlowResult] = None
    error: Optional[str] = None
    resume_at: Optional[str] = None
    started = monotonic()
    state.begin()
    log.info(f"attempt loop started: max_attempts={config.max_attempts}")

    try:
        if config.start_delay_ms > 0:
            emit(sink, f"starting in {config.start_delay_ms}ms", LogLevel.INFO.value)
            await cancellable_delay(config.start_delay_ms, state)

        while True:
            if state.is_stop_requested():
                outcome = LoopOutcome.STOPPED
                break
            if state.attempts >= config.max_attempts:
                outcome = LoopOutcome.EXHAUSTED
                break

            state.attempts += 1
            if state.attempts == 1 or state.attempts % PROGRESS_EVERY == 0:
                emit(
                    sink,
                    f"attempt {state.attempts}/{config.max_attempts}",
                    LogLevel.INFO.value,
                )

            try:
                result = await executor.run(start_at=resume_at)
            finally:
                await steps.release_modifier_key()

            if result.found:
                outcome = LoopOutcome.FOUND
                found = result
                break
            if result.stopped:
                outcome = LoopOutcome.STOPPED
                break
            resume_at = result.resume_at

    except (StepConfigurationError, CapabilityUnavailableError) as e:
        outcome = LoopOutcome.ERROR
        error = str(e)
        log.error(f"attempt loop aborted: {error}")
        emit(sink, f"aborted: {error}", LogLevel.ERROR.value)
    except Exception as e:
        outcome = LoopOutcome.ERROR
        error = str(e) or type(e).__name__
        log.exception(f"attempt loop crashed: {error}")
        emit(sink, f"error: {error}", LogLevel.ERROR.value)
    finally:
        await steps.release_modifier_key()
        state.finish()

    duration_ms = int((monotonic() - started) * 1000)
    attempts = state.attempts

    if outcome == LoopOutcome.FOUND:
        emit(
            sink,
            f"FOUND after {attempts} attempts: {found.detected_text}",
            LogLevel.SUCCESS.value,
        )
        emit(sink, f"matched: {found.matched_modifier.describe()}", LogLevel.SUCCESS.value)
    elif outcome == LoopOutcome.EXHAUSTED:
        emit(sink, f"max attempts reached ({attempts})", LogLevel.WARNING.value)
    elif outcome == LoopOutcome.STOPPED:
        emit(sink, f"stopped after {attempts} attempts", LogLevel.INFO.value)

    log.info(f"attempt loop finished: {outcome.value}, {attempts} attempts, {duration_ms}ms")
    return AttemptResult(
        found=found is not None,
        attempts=attempts,
        duration_ms=duration_ms,
        outcome=outcome,
        matched_modifier=found.matched_modifier if found else None,
        detected_text=found.detected_text if found else None,
        error=error,
    )


class AutoCrafter:
    """Owns the run state so a hotkey or another task can stop a run."""

    def __init__(
        self,
        capabilities: Capabilities,
        *,
        sink: Optional[EventSink] = None,
        policy: Optional[ExclusionPolicy] = None,
        state: Optional[AttemptLoopState] = None,
        load_catalog: bool = False,
    ) -> None:
        self.capabilities = capabilities
        self.sink = sink
        self.policy = policy
        self.state = state if state is not None else AttemptLoopState()
        # fetch the known-mod catalog when a config carries none
        self.load_catalog = load_catalog

    @property
    def running(self) -> bool:
        return self.state.running

    async def run(self, config: CraftConfig) -> AttemptResult:
        if self.state.running:
            raise RuntimeError("crafting is already running")
        if config.known_mods is None and self.load_catalog:
            config = dataclasses.replace(config, known_mods=await load_known_mods())
        return await run_attempt_loop(
            config,
            self.capabilities,
            state=self.state,
            sink=self.sink,
            policy=self.policy,
        )

    def request_stop(self) -> None:
        """Stop the current run at the next node or delay poll.

        Only affects a run in progress: ``run()`` starts with a cleared flag,
        so a stop requested while idle is dropped.
        """
        self.state.request_stop()

    def is_stop_requested(self) -> bool:
        return self.state.is_stop_requested()


__all__ = ["AttemptResult", "AutoCrafter", "run_attempt_loop"]
