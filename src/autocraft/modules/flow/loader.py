"""
Build a FlowGraph from a config document.

Accepts both the snake_case layout and the node editor's export layout
(kind in ``data.type``, branch in ``sourceHandle``, camelCase step fields).
Click/region coordinates come from ``data`` only; a node's top-level
``position`` is its place on the editor canvas.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...core.config import settings
from ...core.constants import NodeKind
from ..capability.types import Point, Region
from ..mods.types import ModifierSpec
from .graph import FlowGraph
from .types import (
    CheckRegionData,
    ClickData,
    DelayData,
    Edge,
    EmptyData,
    GraphValidationError,
    Node,
    StepData,
)

# older exports name the check step "checkTooltip"
KIND_ALIASES = {"checkTooltip": NodeKind.CHECK_REGION.value}


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_int(value: Any, where: str, errors: List[str]) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(f"{where}: expected a number, got {value!r}")
        return None
    return int(round(value))


def _parse_point(value: Any, where: str, errors: List[str]) -> Optional[Point]:
    if value is None:
        return None
    if not isinstance(value, dict):
        errors.append(f"{where}: position must be a mapping with x and y")
        return None
    x = _as_int(value.get("x"), f"{where}.x", errors)
    y = _as_int(value.get("y"), f"{where}.y", errors)
    if x is None or y is None:
        return None
    return Point(x, y)


def _parse_region(value: Any, where: str, errors: List[str]) -> Optional[Region]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)) and len(value) == 4:
        value = dict(zip(("x", "y", "width", "height"), value))
    if not isinstance(value, dict):
        errors.append(f"{where}: region must be a mapping or [x, y, width, height]")
        return None
    parts = [
        _as_int(value.get(k), f"{where}.{k}", errors)
        for k in ("x", "y", "width", "height")
    ]
    if any(p is None for p in parts):
        return None
    return Region(*parts)


def parse_modifiers(value: Any, where: str, errors: List[str]) -> List[ModifierSpec]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    modifiers: List[ModifierSpec] = []
    for i, item in enumerate(value):
        try:
            spec = ModifierSpec.from_value(item)
        except (TypeError, ValueError) as e:
            errors.append(f"{where}[{i}]: {e}")
            continue
        if not spec.pattern:
            errors.append(f"{where}[{i}]: empty modifier pattern")
            continue
        modifiers.append(spec)
    return modifiers


def _parse_step_data(kind: str, data: Dict[str, Any], where: str, errors: List[str]) -> StepData:
    if kind in (NodeKind.LEFT_CLICK.value, NodeKind.RIGHT_CLICK.value):
        default_delay = (
            settings.left_click_post_delay_ms
            if kind == NodeKind.LEFT_CLICK.value
            else settings.right_click_post_delay_ms
        )
        post_delay = _as_int(
            _pick(data, "postDelayMs", "post_delay_ms", "delayMs", default=default_delay),
            f"{where}.postDelayMs",
            errors,
        )
        return ClickData(
            position=_parse_point(data.get("position"), f"{where}.position", errors),
            use_shift=bool(_pick(data, "useShift", "use_shift", default=False)),
            post_delay_ms=max(0, post_delay or 0),
        )

    if kind == NodeKind.CHECK_REGION.value:
        modifiers = parse_modifiers(
            _pick(data, "modifiers", "modifierList", "modifier_list"),
            f"{where}.modifiers",
            errors,
        )
        legacy = (data.get("modifierText") or "").strip()
        if not modifiers and legacy:
            modifiers = [ModifierSpec(pattern=legacy)]
        return CheckRegionData(
            region=_parse_region(data.get("region"), f"{where}.region", errors),
            modifiers=modifiers,
        )

    if kind == NodeKind.DELAY.value:
        duration = _as_int(
            _pick(data, "durationMs", "duration_ms", "delayMs", default=0),
            f"{where}.durationMs",
            errors,
        )
        return DelayData(duration_ms=max(0, duration or 0))

    return EmptyData()


def parse_node(raw: Dict[str, Any], index: int, errors: List[str]) -> Optional[Node]:
    where = f"nodes[{index}]"
    if not isinstance(raw, dict):
        errors.append(f"{where}: node must be a mapping")
        return None
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        errors.append(f"{where}: missing node id")
        return None

    data = raw.get("data") or {}
    if not isinstance(data, dict):
        errors.append(f"{where}: data must be a mapping")
        data = {}
    kind = data.get("type") or raw.get("kind") or raw.get("type")
    if not kind:
        errors.append(f"{where} ({node_id}): missing node kind")
        return None
    kind = KIND_ALIASES.get(str(kind), str(kind))

    return Node(
        id=node_id,
        kind=kind,
        data=_parse_step_data(kind, data, f"{where} ({node_id})", errors),
        label=str(data.get("customName") or data.get("label") or raw.get("label") or ""),
    )


def parse_edge(raw: Dict[str, Any], index: int, errors: List[str]) -> Optional[Edge]:
    where = f"edges[{index}]"
    if not isinstance(raw, dict):
        errors.append(f"{where}: edge must be a mapping")
        return None
    source, target = raw.get("source"), raw.get("target")
    if not source or not target:
        errors.append(f"{where}: edge needs source and target")
        return None
    branch = _pick(raw, "branch", "sourceHandle", "source_handle")
    if isinstance(branch, bool):
        branch = "true" if branch else "false"
    return Edge(source=str(source), target=str(target), branch=str(branch) if branch else None)


def parse_flow_graph(doc: Dict[str, Any]) -> FlowGraph:
    """Parse and validate a ``{"nodes": [...], "edges": [...]}`` mapping.

    Raises:
        GraphValidationError: listing every problem found.
    """
    errors: List[str] = []
    if not isinstance(doc, dict):
        raise GraphValidationError(["flow graph must be a mapping"])
    raw_nodes = doc.get("nodes")
    raw_edges = doc.get("edges") or []
    if not isinstance(raw_nodes, list) or not raw_nodes:
        raise GraphValidationError(["flow graph has no nodes"])
    if not isinstance(raw_edges, list):
        raise GraphValidationError(["edges must be a list"])

    nodes = [n for i, raw in enumerate(raw_nodes) if (n := parse_node(raw, i, errors))]
    edges = [e for i, raw in enumerate(raw_edges) if (e := parse_edge(raw, i, errors))]
    graph = FlowGraph(nodes, edges)
    errors.extend(graph.validate())
    if errors:
        raise GraphValidationError(errors)
    return graph


__all__ = ["parse_edge", "parse_flow_graph", "parse_modifiers", "parse_node"]
