"""
Constants and enums.
"""
from enum import Enum


class NodeKind(str, Enum):
    """Flow graph node kinds."""
    START = "start"
    END = "end"
    LEFT_CLICK = "leftClick"
    RIGHT_CLICK = "rightClick"
    CHECK_REGION = "checkRegion"
    DELAY = "delay"


class Branch(str, Enum):
    """Branch labels on conditional edges."""
    TRUE = "true"
    FALSE = "false"


class LogLevel(str, Enum):
    """Levels accepted by EventSink.emit."""
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class LoopOutcome(str, Enum):
    """Why the attempt loop stopped."""
    FOUND = "found"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"
    ERROR = "error"


START_NODE_ID = "start"
END_NODE_ID = "end"

# placeholder for the numeric part of a modifier template
PLACEHOLDER = "#"
