from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import yaml

from .modules.crafter.config import CraftConfigError, FlowConfigLoader
from .modules.mods.catalog import fetch_known_mods
from .modules.mods.matcher import find_match
from .modules.mods.types import ModifierSpec
from .modules.ocr.normalize import normalize
from .modules.ocr.types import ModifierLine


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="autocraft",
        description="Offline tools for crafting flow configs and modifier matching.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    v = sub.add_parser("validate", help="Validate a craft config (YAML or JSON).")
    v.add_argument("file", type=Path, help="Config file path.")

    m = sub.add_parser("match", help="Test a modifier against OCR text lines.")
    m.add_argument("--mod", required=True, help='Modifier pattern, "#" marks the value.')
    m.add_argument("--min", type=int, default=None, help="Lower bound for the value.")
    m.add_argument("--max", type=int, default=None, help="Upper bound for the value.")
    m.add_argument("lines", nargs="+", help="Tooltip lines as read by OCR.")

    f = sub.add_parser("fetch-mods", help="Download the known-mod catalog.")
    f.add_argument("--out", required=True, type=Path, help="Output JSON file.")
    f.add_argument("--url", default=None, help="Stats endpoint (default from settings).")
    f.add_argument("--group", default=None, help="Stat group id (default: explicit).")
    return p


def _validate(path: Path) -> int:
    if not path.exists():
        print(f"not found: {path}")
        return 1
    try:
        config = FlowConfigLoader.load_file(path)
    except yaml.YAMLError as e:
        print(f"parse error: {e}")
        return 1
    except CraftConfigError as e:
        for err in e.errors:
            print(f"error: {err}")
        return 1

    graph = config.flow_graph
    print(
        f"ok: {len(graph.nodes)} nodes, {len(graph.edges)} edges, "
        f"max_attempts={config.max_attempts}, "
        f"known_mods={'off' if config.known_mods is None else len(config.known_mods)}"
    )
    return 0


def _match(pattern: str, min_value, max_value, lines) -> int:
    try:
        modifier = ModifierSpec.from_value(
            {"pattern": pattern, "minValue": min_value, "maxValue": max_value}
        )
    except ValueError as e:
        print(f"error: {e}")
        return 1

    candidates = [ModifierLine(line, normalize(line), 100.0) for line in lines]
    match = find_match(candidates, [modifier])
    if match is None:
        print(f"no match for {modifier.describe()}")
        return 1
    print(f"match: {match.line.original_text}")
    return 0


def _fetch_mods(out: Path, url, group) -> int:
    catalog = asyncio.run(fetch_known_mods(url, group=group))
    if not len(catalog):
        print("no modifiers fetched")
        return 1
    catalog.save(out)
    print(f"saved {len(catalog)} modifier families to {out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.command == "validate":
        return _validate(args.file)
    if args.command == "match":
        return _match(args.mod, args.min, args.max, args.lines)
    return _fetch_mods(args.out, args.url, args.group)


if __name__ == "__main__":
    raise SystemExit(main())
