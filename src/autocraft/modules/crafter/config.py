"""
Run configuration loader.

Reads craft configs (flow graph, attempt limit, fallback modifiers, known
mods) from YAML or JSON files, validates them into ``CraftConfig`` and
caches them per file. A file is reloaded when its modification time changes.

Document layout (camelCase keys from the node editor are accepted too)::

    max_attempts: 500
    start_delay_ms: 3000
    modifiers:
      - "+# to Level of all Spell Skills"
      - {pattern: "#% increased Cast Speed", min_value: 20}
    known_mods: known_mods.json      # or an inline list of mod texts
    flow_graph:
      nodes: [...]
      edges: [...]
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ...core.config import settings
from ...core.logger import logger
from ..flow.graph import FlowGraph
from ..flow.loader import parse_flow_graph, parse_modifiers
from ..flow.types import GraphValidationError
from ..mods.catalog import CatalogError, KnownModCatalog
from ..mods.types import ModifierSpec

CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


@dataclass
class CraftConfig:
    """Everything one attempt-loop run needs besides the capabilities."""
    flow_graph: FlowGraph
    max_attempts: int = field(default_factory=lambda: settings.max_attempts)
    # None disables the known-mod filter
    known_mods: Optional[KnownModCatalog] = None
    # used by checkRegion nodes that carry no modifiers of their own
    modifiers: List[ModifierSpec] = field(default_factory=list)
    start_delay_ms: int = field(default_factory=lambda: settings.start_delay_ms)


class CraftConfigError(ValueError):
    """Craft config document could not be turned into a CraftConfig."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid craft config")


def _first(doc: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if doc.get(key) is not None:
            return doc[key]
    return None


def _int_at_least(value: Any, name: str, errors: List[str], *, minimum: int = 0) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(f"{name} must be an integer >= {minimum}, got {value!r}")
        return None
    return value


def _load_known_mods(value: Any, base_dir: Optional[Path], errors: List[str]) -> Optional[KnownModCatalog]:
    if value is None:
        return None
    if isinstance(value, list):
        return KnownModCatalog(str(v) for v in value if v)
    if isinstance(value, str):
        path = Path(value)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        try:
            return KnownModCatalog.from_file(path)
        except CatalogError as e:
            errors.append(f"known_mods: {e}")
            return None
    errors.append(f"known_mods must be a list or a file path, got {type(value).__name__}")
    return None


def parse_craft_config(doc: Dict[str, Any], base_dir: Optional[Path] = None) -> CraftConfig:
    """Validate a config document.

    Args:
        doc: parsed YAML/JSON mapping
        base_dir: directory relative ``known_mods`` paths resolve against

    Raises:
        CraftConfigError: with every problem found
    """
    if not isinstance(doc, dict):
        raise CraftConfigError(["config must be a mapping"])
    errors: List[str] = []

    graph_doc = _first(doc, "flow_graph", "flowGraph")
    if graph_doc is None and "nodes" in doc:
        graph_doc = {"nodes": doc.get("nodes"), "edges": doc.get("edges")}
    graph: Optional[FlowGraph] = None
    if graph_doc is None:
        errors.append("missing 'flow_graph'")
    else:
        try:
            graph = parse_flow_graph(graph_doc)
        except GraphValidationError as e:
            errors.extend(f"flow_graph: {err}" for err in e.errors)

    max_attempts = _first(doc, "max_attempts", "maxAttempts")
    if max_attempts is None:
        max_attempts = settings.max_attempts
    max_attempts = _int_at_least(max_attempts, "max_attempts", errors, minimum=1)

    start_delay = _first(doc, "start_delay_ms", "startDelayMs")
    if start_delay is None:
        start_delay = settings.start_delay_ms
    start_delay = _int_at_least(start_delay, "start_delay_ms", errors)

    modifiers = parse_modifiers(
        _first(doc, "modifiers", "modifierList"), "modifiers", errors
    )
    known_mods = _load_known_mods(
        _first(doc, "known_mods", "knownMods"), base_dir, errors
    )

    if errors:
        raise CraftConfigError(errors)
    return CraftConfig(
        flow_graph=graph,
        max_attempts=max_attempts,
        known_mods=known_mods,
        modifiers=modifiers,
        start_delay_ms=start_delay,
    )


@dataclass
class _CacheEntry:
    config: CraftConfig
    mtime: float


class FlowConfigLoader:
    """Craft config loader with per-file mtime cache."""

    def __init__(self, base_dir: str = "configs"):
        self._base_dir = Path(base_dir)
        self._cache: Dict[str, _CacheEntry] = {}
        self._log = logger.bind(module="FlowConfigLoader")

    def resolve(self, name: str) -> Optional[Path]:
        """A path as given, or ``{base_dir}/{name}`` with a config suffix."""
        path = Path(name)
        if path.suffix.lower() in CONFIG_SUFFIXES:
            return path if path.exists() else None
        for suffix in CONFIG_SUFFIXES:
            candidate = self._base_dir / f"{name}{suffix}"
            if candidate.exists():
                return candidate
        return None

    def load(self, name: str) -> Optional[CraftConfig]:
        """Load a craft config.

        Returns:
            the validated config; None when the file is missing or invalid
            (problems are logged)
        """
        file_path = self.resolve(name)
        if file_path is None:
            self._log.warning(f"craft config not found: {name}")
            return None

        key = str(file_path.resolve())
        current_mtime = os.path.getmtime(file_path)
        cached = self._cache.get(key)
        if cached and cached.mtime == current_mtime:
            return cached.config

        try:
            config = self.load_file(file_path)
        except yaml.YAMLError as e:
            self._log.error(f"config parse failed: {file_path}: {e}")
            return None
        except CraftConfigError as e:
            for err in e.errors:
                self._log.error(f"config invalid [{file_path.name}]: {err}")
            return None
        except OSError as e:
            self._log.error(f"config read failed: {file_path}: {e}")
            return None

        self._cache[key] = _CacheEntry(config=config, mtime=current_mtime)
        self._log.info(f"craft config loaded: {file_path}")
        return config

    @staticmethod
    def load_file(file_path: Path) -> CraftConfig:
        """Read and validate one file; raises on any problem."""
        with open(file_path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
        return parse_craft_config(doc, base_dir=file_path.parent)

    def clear(self) -> None:
        self._cache.clear()


__all__ = [
    "CraftConfig",
    "CraftConfigError",
    "FlowConfigLoader",
    "parse_craft_config",
]
