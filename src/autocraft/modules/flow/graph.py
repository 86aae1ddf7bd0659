from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from ...core.constants import END_NODE_ID, START_NODE_ID, Branch, NodeKind
from .types import Edge, GraphValidationError, Node

_BRANCHES = {Branch.TRUE.value, Branch.FALSE.value}


class FlowGraph:
    """User-authored automation graph.

    Read-only once built; the executor never mutates it.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self._nodes: List[Node] = list(nodes)
        self._edges: List[Edge] = list(edges)
        self._by_id: Dict[str, Node] = {}
        for node in self._nodes:
            self._by_id.setdefault(node.id, node)
        self._adj: Dict[str, List[Edge]] = {}
        for edge in self._edges:
            self._adj.setdefault(edge.source, []).append(edge)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    def node(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def edges_from(self, node_id: str) -> List[Edge]:
        return self._adj.get(node_id, [])

    def next_edge(self, node_id: str, branch: Optional[str] = None) -> Optional[Edge]:
        """The unconditional edge (``branch=None``) or the edge with that label."""
        for edge in self.edges_from(node_id):
            if edge.branch == branch:
                return edge
        return None

    def reachable_from(self, source: str = START_NODE_ID) -> Set[str]:
        seen = {source}
        q = deque([source])
        while q:
            node_id = q.popleft()
            for edge in self.edges_from(node_id):
                if edge.target not in seen:
                    seen.add(edge.target)
                    q.append(edge.target)
        return seen

    def validate(self) -> List[str]:
        """Structural checks; an empty list means the graph is runnable."""
        errors: List[str] = []

        ids: Set[str] = set()
        for node in self._nodes:
            if node.id in ids:
                errors.append(f"duplicate node id '{node.id}'")
            ids.add(node.id)

        for required, kind in ((START_NODE_ID, NodeKind.START), (END_NODE_ID, NodeKind.END)):
            count = sum(1 for n in self._nodes if n.id == required)
            if count == 0:
                errors.append(f"missing '{required}' node")
            elif self._by_id[required].kind != kind.value:
                errors.append(f"node '{required}' must be of kind '{kind.value}'")

        for node in self._nodes:
            if node.id in (START_NODE_ID, END_NODE_ID):
                continue
            if node.kind in (NodeKind.START.value, NodeKind.END.value):
                errors.append(f"node '{node.id}' of kind '{node.kind}' must have id '{node.kind}'")

        seen_out: Set[tuple] = set()
        for edge in self._edges:
            if edge.source not in ids:
                errors.append(f"edge source '{edge.source}' does not exist")
            if edge.target not in ids:
                errors.append(f"edge target '{edge.target}' does not exist")
            if edge.branch is not None and edge.branch not in _BRANCHES:
                errors.append(f"edge {edge.source}->{edge.target}: unknown branch '{edge.branch}'")
            source = self._by_id.get(edge.source)
            if source is not None and edge.source != END_NODE_ID:
                is_check = source.kind == NodeKind.CHECK_REGION.value
                if is_check and edge.branch is None:
                    errors.append(f"edge {edge.source}->{edge.target}: checkRegion needs a true or false branch")
                elif not is_check and edge.branch is not None:
                    errors.append(f"edge {edge.source}->{edge.target}: only checkRegion edges can be branches")
            key = (edge.source, edge.branch)
            if key in seen_out:
                label = edge.branch or "unconditional"
                errors.append(f"node '{edge.source}' has more than one {label} edge")
            seen_out.add(key)
            if edge.source == END_NODE_ID:
                errors.append("'end' node cannot have outgoing edges")

        if START_NODE_ID in ids and not errors:
            reachable = self.reachable_from(START_NODE_ID)
            for node in self._nodes:
                if node.id != END_NODE_ID and node.id not in reachable:
                    errors.append(f"node '{node.id}' is not reachable from 'start'")

        return errors

    def ensure_valid(self) -> "FlowGraph":
        errors = self.validate()
        if errors:
            raise GraphValidationError(errors)
        return self


__all__ = ["FlowGraph"]
