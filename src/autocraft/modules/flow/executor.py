"""
Flow graph interpreter.

Walks the graph from ``start`` (or from a resume node), dispatching each node
to the StepExecutor and choosing the outgoing edge from the step outcome:

- checkRegion follows its ``true``/``false`` edge; a match whose ``true``
  edge goes straight to ``end`` returns immediately as found
- every other kind follows its unconditional edge
- a missing edge ends the traversal without a match

One traversal is one attempt. Re-entering a node already dispatched in this
traversal (a back edge, e.g. a ``false`` self-loop) ends the attempt; the
result carries ``resume_at`` so the attempt loop continues from there.
"""
from __future__ import annotations

from typing import Optional, Set

from ...core.constants import END_NODE_ID, START_NODE_ID, Branch, LogLevel, NodeKind
from ...core.logger import logger
from ..capability.types import EventSink
from ..crafter.events import emit
from ..crafter.state import AttemptLoopState
from .graph import FlowGraph
from .steps import StepExecutor
from .types import FlowResult


class FlowExecutor:
    """Runs one attempt over an immutable FlowGraph."""

    def __init__(
        self,
        graph: FlowGraph,
        steps: StepExecutor,
        state: AttemptLoopState,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.graph = graph
        self.steps = steps
        self.state = state
        self.sink = sink
        self._log = logger.bind(module="FlowExecutor")

    async def run(self, start_at: Optional[str] = None) -> FlowResult:
        current: Optional[str] = start_at or START_NODE_ID
        visited: Set[str] = set()

        while current is not None:
            if self.state.is_stop_requested():
                return FlowResult(stopped=True)

            node = self.graph.node(current)
            if node is None:
                emit(self.sink, f'edge leads to missing node "{current}"', LogLevel.WARNING.value)
                return FlowResult()
            if node.kind == NodeKind.END.value:
                return FlowResult()

            visited.add(node.id)
            self._log.debug(f"dispatch {node.display_name}")

            if node.kind == NodeKind.START.value:
                edge = self.graph.next_edge(node.id)
            elif node.kind == NodeKind.CHECK_REGION.value:
                outcome = await self.steps.execute(node)
                if outcome.found:
                    edge = self.graph.next_edge(node.id, Branch.TRUE.value)
                    if edge is not None and edge.target == END_NODE_ID:
                        return FlowResult(
                            found=True,
                            matched_modifier=outcome.match.modifier,
                            detected_text=outcome.match.line.original_text,
                        )
                    if edge is None:
                        emit(
                            self.sink,
                            f'{node.display_name} matched but has no "true" edge',
                            LogLevel.WARNING.value,
                        )
                else:
                    edge = self.graph.next_edge(node.id, Branch.FALSE.value)
            else:
                await self.steps.execute(node)
                edge = self.graph.next_edge(node.id)

            current = edge.target if edge is not None else None
            if current is not None and current in visited:
                return FlowResult(resume_at=current)

        return FlowResult()


async def run_flow_graph(
    graph: FlowGraph,
    steps: StepExecutor,
    state: AttemptLoopState,
    *,
    sink: Optional[EventSink] = None,
    start_at: Optional[str] = None,
) -> FlowResult:
    """One traversal of ``graph``; see FlowExecutor."""
    return await FlowExecutor(graph, steps, state, sink).run(start_at=start_at)


__all__ = ["FlowExecutor", "run_flow_graph"]
