import pytest

from autocraft.core.config import settings
from autocraft.core.constants import LoopOutcome
from autocraft.modules.capability.types import (
    Capabilities,
    CapabilityUnavailableError,
    MouseButton,
    Point,
    Region,
)
from autocraft.modules.crafter import loop as loop_module
from autocraft.modules.crafter.config import CraftConfig
from autocraft.modules.crafter.loop import AutoCrafter, run_attempt_loop
from autocraft.modules.crafter.state import AttemptLoopState
from autocraft.modules.flow.executor import FlowExecutor
from autocraft.modules.flow.graph import FlowGraph
from autocraft.modules.flow.types import (
    CheckRegionData,
    ClickData,
    Edge,
    GraphValidationError,
    Node,
)
from autocraft.modules.mods.catalog import KnownModCatalog
from autocraft.modules.mods.types import ModifierSpec
from autocraft.modules.ocr.types import OcrLine

REGION = Region(600, 300, 420, 260)
TARGET = ModifierSpec("+# to Level of all Spell Skills", 5, 7, True)
MISS = [OcrLine("+4 to Level of all Spell Skills", 90), OcrLine("+45 to maximum Life", 80)]
HIT = [OcrLine("+6 to Level of all Spell Skills", 90)]


class _FakeInput:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def move_and_click(self, x, y, button):
        self.calls.append(("click", x, y, button))
        if self.error is not None:
            raise self.error

    async def set_modifier_key(self, held):
        self.calls.append(("modifier", held))


class _FakeCapture:
    def __init__(self, on_grab=None):
        self.grabs = 0
        self.on_grab = on_grab

    async def grab_region(self, region):
        self.grabs += 1
        if self.on_grab is not None:
            self.on_grab(self.grabs)
        return "image"

    async def variants(self, image):
        return ["a", "b"]


class _ScriptedOcr:
    """Returns one script entry per capture (both variants see the same lines)."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    async def recognize_lines(self, image):
        index = self.calls // 2
        self.calls += 1
        if index < len(self.script):
            return list(self.script[index])
        return list(self.script[-1]) if self.script else []


class _RecordingSink:
    def __init__(self):
        self.events = []

    def emit(self, message, level="info"):
        self.events.append((level, message))

    def messages(self, level):
        return [m for lv, m in self.events if lv == level]


@pytest.fixture(autouse=True)
def _fast_settings(monkeypatch):
    monkeypatch.setattr(settings, "modifier_key_settle_ms", 0)
    monkeypatch.setattr(settings, "stop_signal_file", "")


def _caps(ocr_script=(MISS,), input_=None, capture=None):
    return Capabilities(
        input=input_ or _FakeInput(),
        capture=capture or _FakeCapture(),
        ocr=_ScriptedOcr(ocr_script),
    )


def _self_loop_graph(modifiers=(TARGET,)):
    return FlowGraph(
        [
            Node("start", "start"),
            Node("A", "checkRegion", CheckRegionData(REGION, list(modifiers))),
            Node("end", "end"),
        ],
        [Edge("start", "A"), Edge("A", "end", "true"), Edge("A", "A", "false")],
    )


def _reroll_graph(region=REGION):
    return FlowGraph(
        [
            Node("start", "start"),
            Node("orb", "rightClick", ClickData(Point(100, 200), False, 0)),
            Node("item", "leftClick", ClickData(Point(640, 380), True, 0)),
            Node("check", "checkRegion", CheckRegionData(region, [TARGET])),
            Node("end", "end"),
        ],
        [
            Edge("start", "orb"),
            Edge("orb", "item"),
            Edge("item", "check"),
            Edge("check", "end", "true"),
            Edge("check", "orb", "false"),
        ],
    )


@pytest.mark.asyncio
async def test_never_matching_run_stops_at_max_attempts():
    caps = _caps()
    config = CraftConfig(flow_graph=_self_loop_graph(), max_attempts=3)

    result = await run_attempt_loop(config, caps, sink=_RecordingSink())

    assert result.found is False
    assert result.attempts == 3
    assert result.outcome == LoopOutcome.EXHAUSTED
    assert result.matched_modifier is None
    assert caps.capture.grabs == 3


@pytest.mark.asyncio
async def test_self_loop_never_follows_true_edge(monkeypatch):
    followed = []
    original_run = FlowExecutor.run

    async def _spy_run(self, start_at=None):
        result = await original_run(self, start_at=start_at)
        followed.append(result)
        return result

    monkeypatch.setattr(FlowExecutor, "run", _spy_run)
    config = CraftConfig(flow_graph=_self_loop_graph(), max_attempts=25)

    result = await run_attempt_loop(config, _caps(), sink=_RecordingSink())

    assert result.attempts == 25
    assert all(r.found is False and r.resume_at == "A" for r in followed)


@pytest.mark.asyncio
async def test_found_on_third_attempt():
    caps = _caps([MISS, MISS, HIT])
    sink = _RecordingSink()
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=10)

    result = await run_attempt_loop(config, caps, sink=sink)

    assert result.found is True
    assert result.outcome == LoopOutcome.FOUND
    assert result.attempts == 3
    assert result.matched_modifier == TARGET
    assert result.detected_text == "+6 to Level of all Spell Skills"
    assert result.duration_ms >= 0
    assert sink.messages("success") == [
        "FOUND after 3 attempts: +6 to Level of all Spell Skills",
        "matched: +# to Level of all Spell Skills (5-7)",
    ]


@pytest.mark.asyncio
async def test_modifier_key_released_after_every_attempt():
    fake_input = _FakeInput()
    caps = _caps(input_=fake_input)
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=2)

    result = await run_attempt_loop(config, caps, sink=_RecordingSink())

    assert result.attempts == 2
    assert fake_input.calls == [
        ("click", 100, 200, MouseButton.RIGHT),
        ("modifier", True),
        ("click", 640, 380, MouseButton.LEFT),
        ("modifier", False),
        ("click", 100, 200, MouseButton.RIGHT),
        ("modifier", True),
        ("click", 640, 380, MouseButton.LEFT),
        ("modifier", False),
    ]


@pytest.mark.asyncio
async def test_step_configuration_error_is_fatal():
    fake_input = _FakeInput()
    caps = _caps(input_=fake_input)
    sink = _RecordingSink()
    state = AttemptLoopState()
    config = CraftConfig(flow_graph=_reroll_graph(region=None), max_attempts=10)

    result = await run_attempt_loop(config, caps, state=state, sink=sink)

    assert result.outcome == LoopOutcome.ERROR
    assert result.found is False
    assert result.attempts == 1
    assert "no region set" in result.error
    assert fake_input.calls[-1] == ("modifier", False)
    assert state.modifier_held is False
    assert state.running is False
    assert any("aborted" in m for m in sink.messages("error"))


@pytest.mark.asyncio
async def test_unavailable_capability_is_fatal():
    caps = _caps(input_=_FakeInput(error=CapabilityUnavailableError("input driver missing")))
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=10)

    result = await run_attempt_loop(config, caps, sink=_RecordingSink())

    assert result.outcome == LoopOutcome.ERROR
    assert result.attempts == 1
    assert result.error == "input driver missing"


@pytest.mark.asyncio
async def test_unexpected_error_still_releases_modifier(monkeypatch):
    async def _boom(self, start_at=None):
        self.state.modifier_held = True
        raise KeyError("corrupt")

    monkeypatch.setattr(FlowExecutor, "run", _boom)
    fake_input = _FakeInput()
    state = AttemptLoopState()
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=10)

    result = await run_attempt_loop(config, _caps(input_=fake_input), state=state, sink=_RecordingSink())

    assert result.outcome == LoopOutcome.ERROR
    assert "corrupt" in result.error
    assert fake_input.calls == [("modifier", False)]
    assert state.running is False


@pytest.mark.asyncio
async def test_invalid_graph_rejected_before_any_attempt():
    caps = _caps()
    graph = FlowGraph(
        [Node("start", "start"), Node("A", "checkRegion", CheckRegionData(REGION, [TARGET]))],
        [Edge("start", "A")],
    )
    state = AttemptLoopState()

    with pytest.raises(GraphValidationError):
        await run_attempt_loop(CraftConfig(flow_graph=graph, max_attempts=3), caps, state=state)

    assert caps.capture.grabs == 0
    assert state.attempts == 0
    assert state.running is False


@pytest.mark.asyncio
async def test_stop_request_ends_run():
    state = AttemptLoopState()

    def _stop_on_second_grab(count):
        if count == 2:
            state.request_stop()

    caps = _caps(capture=_FakeCapture(on_grab=_stop_on_second_grab))
    sink = _RecordingSink()
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=100)

    result = await run_attempt_loop(config, caps, state=state, sink=sink)

    assert result.outcome == LoopOutcome.STOPPED
    assert result.found is False
    assert result.attempts == 2
    assert "stopped after 2 attempts" in sink.messages("info")


@pytest.mark.asyncio
async def test_start_delay_runs_before_first_attempt(monkeypatch):
    waits = []

    async def _fake_delay(duration_ms, state=None, **kwargs):
        waits.append(duration_ms)
        state.request_stop()
        return False

    monkeypatch.setattr(loop_module, "cancellable_delay", _fake_delay)
    caps = _caps()
    config = CraftConfig(flow_graph=_reroll_graph(), max_attempts=10, start_delay_ms=3000)

    result = await run_attempt_loop(config, caps, sink=_RecordingSink())

    assert waits == [3000]
    assert result.outcome == LoopOutcome.STOPPED
    assert result.attempts == 0
    assert caps.capture.grabs == 0


@pytest.mark.asyncio
async def test_fallback_modifiers_from_config():
    graph = _self_loop_graph(modifiers=())
    life = ModifierSpec("+# to maximum Life", min_value=40, use_range=True)
    config = CraftConfig(flow_graph=graph, max_attempts=5, modifiers=[life])

    result = await run_attempt_loop(config, _caps(), sink=_RecordingSink())

    assert result.found is True
    assert result.matched_modifier == life
    assert result.attempts == 1


@pytest.mark.asyncio
async def test_progress_reported_every_ten_attempts():
    sink = _RecordingSink()
    config = CraftConfig(flow_graph=_self_loop_graph(), max_attempts=20)

    await run_attempt_loop(config, _caps(), sink=sink)

    progress = [m for m in sink.messages("info") if m.startswith("attempt ")]
    assert progress == ["attempt 1/20", "attempt 10/20", "attempt 20/20"]
    assert "max attempts reached (20)" in sink.messages("warning")


@pytest.mark.asyncio
async def test_auto_crafter_facade(monkeypatch):
    async def _catalog():
        return KnownModCatalog(["+# to maximum Life"])

    monkeypatch.setattr(loop_module, "load_known_mods", _catalog)
    crafter = AutoCrafter(_caps([HIT]), sink=_RecordingSink(), load_catalog=True)
    config = CraftConfig(flow_graph=_self_loop_graph(), max_attempts=3)

    result = await crafter.run(config)

    # catalog has no spell-level family, so the line is filtered out
    assert result.found is False
    assert result.attempts == 3
    assert crafter.running is False
    assert config.known_mods is None

    crafter.request_stop()
    assert crafter.is_stop_requested() is True


@pytest.mark.asyncio
async def test_auto_crafter_rejects_concurrent_run():
    crafter = AutoCrafter(_caps())
    crafter.state.running = True

    with pytest.raises(RuntimeError):
        await crafter.run(CraftConfig(flow_graph=_self_loop_graph(), max_attempts=1))


@pytest.mark.asyncio
async def test_stop_requested_while_idle_is_dropped():
    caps = _caps()
    crafter = AutoCrafter(caps, sink=_RecordingSink())
    crafter.request_stop()

    result = await crafter.run(CraftConfig(flow_graph=_self_loop_graph(), max_attempts=3))

    assert result.outcome == LoopOutcome.EXHAUSTED
    assert result.attempts == 3
    assert caps.capture.grabs == 3


@pytest.mark.asyncio
async def test_check_without_branch_edges_rejected_before_any_attempt():
    caps = _caps([HIT])
    graph = FlowGraph(
        [
            Node("start", "start"),
            Node("A", "checkRegion", CheckRegionData(REGION, [TARGET])),
            Node("end", "end"),
        ],
        [Edge("start", "A"), Edge("A", "end")],
    )

    with pytest.raises(GraphValidationError) as exc_info:
        await run_attempt_loop(CraftConfig(flow_graph=graph, max_attempts=3), caps)

    assert "edge A->end: checkRegion needs a true or false branch" in exc_info.value.errors
    assert caps.capture.grabs == 0
