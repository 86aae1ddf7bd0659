"""Canonical form of modifier text.

OCR on stylized tooltip fonts returns the same modifier with different
casing, dashes, brackets and stray punctuation. ``normalize`` maps all of
those to one comparable key; it is used both for deduplicating OCR lines and
for matching them against modifier templates.
"""
from __future__ import annotations

import re

from ...core.constants import PLACEHOLDER

_DASHES = re.compile("[–—−]")
_TIMES = re.compile("×")
_BRACKETS = re.compile(r"[\[\]()]")
_SEPARATORS = re.compile(r"[:;|]+")
# OCR often reads "Spell Skill Gems" where the tooltip says "Spell Skills"
_SKILL_GEMS = re.compile(r"\bskill\s+gems?\b")
_DISALLOWED = re.compile(r"[^a-z0-9%+\-. ]")
_WHITESPACE = re.compile(r"\s+")

# survives normalize() unchanged, never produced by OCR text
_PLACEHOLDER_SENTINEL = "zqplaceholderqz"


def normalize(raw: str) -> str:
    """Normalize raw OCR or template text.

    Pure, total and idempotent::

        >>> normalize("+6 to Level of all Spell Skill Gems")
        '+6 to level of all spell skills'
    """
    if not raw:
        return ""
    text = raw.lower()
    text = _DASHES.sub("-", text)
    text = _TIMES.sub("x", text)
    text = _BRACKETS.sub("", text)
    text = _SEPARATORS.sub(" ", text)
    text = _SKILL_GEMS.sub("skills", text)
    text = _DISALLOWED.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()
    # separators dropped above can join "skill" and "gems" again
    return _SKILL_GEMS.sub("skills", text)


def normalize_pattern(pattern: str, placeholder: str = PLACEHOLDER) -> str:
    """Normalize a modifier template, keeping its placeholder token.

    ``normalize`` drops ``#`` like any other symbol, so the placeholder is
    swapped for an alphabetic sentinel first and restored afterwards.
    """
    if not pattern:
        return ""
    if not placeholder or placeholder not in pattern:
        return normalize(pattern)
    protected = pattern.replace(placeholder, _PLACEHOLDER_SENTINEL)
    return normalize(protected).replace(_PLACEHOLDER_SENTINEL, placeholder)


__all__ = ["normalize", "normalize_pattern"]
