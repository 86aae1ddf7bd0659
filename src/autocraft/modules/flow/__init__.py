"""
Flow graph model and loader.

The executor lives in ``flow.executor`` and is imported from there.
"""
from .types import (
    CheckRegionData,
    ClickData,
    DelayData,
    Edge,
    EmptyData,
    FlowResult,
    GraphValidationError,
    Node,
    StepConfigurationError,
)
from .graph import FlowGraph
from .loader import parse_flow_graph

__all__ = [
    "CheckRegionData",
    "ClickData",
    "DelayData",
    "Edge",
    "EmptyData",
    "FlowGraph",
    "FlowResult",
    "GraphValidationError",
    "Node",
    "StepConfigurationError",
    "parse_flow_graph",
]
