"""Merge OCR candidates from several image variants into modifier lines.

Two stages:

1. coarse recall: the raw line must start like a modifier does;
2. precision: after normalization the line must be mostly alphanumeric and
   carry at least one signal token (a number, a sign, or a modifier verb).

An optional known-mod catalog is the last gate, so OCR hallucinations never
reach the matcher. Survivors are deduplicated by normalized text.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from ...core.config import settings
from ...core.logger import logger
from .normalize import normalize
from .types import ModifierLine, OcrLine

if TYPE_CHECKING:
    from ..mods.catalog import KnownModCatalog

_log = logger.bind(module="aggregate")

MODIFIER_START_PATTERNS = [
    re.compile(r"^[+\-]"),
    re.compile(r"^\d+"),
    re.compile(r"^to\s+", re.IGNORECASE),
    re.compile(r"^(increased|reduced|more|less|grants|adds)\s+", re.IGNORECASE),
    re.compile(
        r"^(all|spell|attack|cold|fire|lightning|physical|chaos|elemental|spirit"
        r"|strength|dexterity|intelligence)\s+",
        re.IGNORECASE,
    ),
    re.compile(r"^(life|mana|energy|damage|armor|evasion|resistance|spirit)\b", re.IGNORECASE),
]

_SIGNAL_CHARS = re.compile(r"[+%\-\d]")
_SIGNAL_WORDS = re.compile(
    r"\b(increased|reduced|more|less|to|all|spell|attack|grants|adds)\b"
)
_ALNUM = re.compile(r"[a-z0-9]")


def looks_like_modifier_start(text: str) -> bool:
    """Coarse recall filter on the raw OCR text."""
    return any(p.match(text) for p in MODIFIER_START_PATTERNS)


def alnum_density(normalized: str) -> float:
    """Share of ``[a-z0-9]`` characters in a normalized line."""
    if not normalized:
        return 0.0
    return len(_ALNUM.findall(normalized)) / len(normalized)


def has_signal(normalized: str) -> bool:
    return bool(_SIGNAL_CHARS.search(normalized) or _SIGNAL_WORDS.search(normalized))


def _better(candidate: ModifierLine, current: ModifierLine) -> bool:
    if candidate.confidence != current.confidence:
        return candidate.confidence > current.confidence
    if len(candidate.original_text) != len(current.original_text):
        return len(candidate.original_text) > len(current.original_text)
    # full tie: lexical order keeps the result independent of variant order
    return candidate.original_text < current.original_text


def aggregate(
    candidate_sets: Iterable[Sequence[OcrLine]],
    known_mods: Optional["KnownModCatalog"] = None,
    *,
    min_length: Optional[int] = None,
    min_density: Optional[float] = None,
) -> List[ModifierLine]:
    """Filter, deduplicate and rank OCR lines.

    Args:
        candidate_sets: one sequence of OCR lines per image variant
        known_mods: optional allow-list; ``None`` or an empty catalog
            disables the filter
        min_length: minimum raw and normalized length (settings default)
        min_density: minimum alphanumeric density (settings default)

    Returns:
        One ModifierLine per distinct normalized text, by confidence
        descending.
    """
    if min_length is None:
        min_length = settings.ocr_min_line_length
    if min_density is None:
        min_density = settings.ocr_min_alnum_density
    use_catalog = known_mods is not None and len(known_mods) > 0

    best: Dict[str, ModifierLine] = {}
    for candidates in candidate_sets:
        for item in candidates:
            raw = (item.text or "").strip()
            if len(raw) < min_length:
                continue
            if not looks_like_modifier_start(raw):
                continue

            normalized = normalize(raw)
            if len(normalized) < min_length:
                continue
            if alnum_density(normalized) < min_density:
                continue
            if not has_signal(normalized):
                continue
            if use_catalog and not known_mods.is_known(normalized):
                _log.debug(f"not a known modifier: {raw!r}")
                continue

            line = ModifierLine(
                original_text=raw,
                normalized_text=normalized,
                confidence=float(item.confidence),
            )
            current = best.get(normalized)
            if current is None or _better(line, current):
                best[normalized] = line

    return sorted(
        best.values(),
        key=lambda l: (-l.confidence, -len(l.original_text), l.normalized_text),
    )


__all__ = [
    "MODIFIER_START_PATTERNS",
    "aggregate",
    "alnum_density",
    "has_signal",
    "looks_like_modifier_start",
]
