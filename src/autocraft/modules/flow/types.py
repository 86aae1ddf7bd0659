"""
Flow graph value types.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..capability.types import Point, Region
from ..mods.types import ModifierSpec


@dataclass(frozen=True)
class ClickData:
    """leftClick / rightClick"""
    position: Optional[Point] = None
    use_shift: bool = False
    post_delay_ms: int = 0


@dataclass(frozen=True)
class CheckRegionData:
    """checkRegion: OCR the region and test the modifiers."""
    region: Optional[Region] = None
    modifiers: List[ModifierSpec] = field(default_factory=list)


@dataclass(frozen=True)
class DelayData:
    duration_ms: int = 0


@dataclass(frozen=True)
class EmptyData:
    """start / end / unknown kinds"""


StepData = Union[ClickData, CheckRegionData, DelayData, EmptyData]


@dataclass(frozen=True)
class Node:
    id: str
    # a NodeKind value; unknown kinds are kept as authored
    kind: str
    data: StepData = field(default_factory=EmptyData)
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    # None for unconditional edges, "true"/"false" out of checkRegion
    branch: Optional[str] = None


@dataclass(frozen=True)
class FlowResult:
    """Outcome of one traversal of the graph (one attempt)."""
    found: bool = False
    matched_modifier: Optional[ModifierSpec] = None
    detected_text: Optional[str] = None
    # set when the traversal stopped at a back edge; the next attempt starts here
    resume_at: Optional[str] = None
    stopped: bool = False


class GraphValidationError(ValueError):
    """Malformed flow graph; rejected before any attempt runs."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid flow graph")


class StepConfigurationError(RuntimeError):
    """A node lacks data it needs (position, region, modifiers).

    Retrying cannot fix it, so the whole attempt loop stops.
    """

    def __init__(self, node: Node, reason: str) -> None:
        self.node = node
        self.reason = reason
        super().__init__(f'node "{node.display_name}": {reason}')


__all__ = [
    "CheckRegionData",
    "ClickData",
    "DelayData",
    "Edge",
    "EmptyData",
    "FlowResult",
    "GraphValidationError",
    "Node",
    "StepConfigurationError",
    "StepData",
]
