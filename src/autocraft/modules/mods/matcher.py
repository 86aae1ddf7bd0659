"""Decide whether normalized OCR lines satisfy modifier specifications.

Modifiers are tried in the order the user listed them and, for each one, the
lines from highest to lowest confidence; the first pair that
matches wins. Matches are not scored against each other.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from ...core.config import settings
from ...core.constants import PLACEHOLDER
from ...core.logger import logger
from ..ocr.normalize import normalize, normalize_pattern
from ..ocr.types import ModifierLine
from .types import ModifierMatch, ModifierSpec

_log = logger.bind(module="matcher")

_WORDS = re.compile(r"\w+")
_DIGITS = re.compile(r"\d+")


@dataclass(frozen=True)
class ExclusionPolicy:
    """Keeps scoped modifiers from passing as the "all ..." variant.

    When the target pattern contains ``trigger_word`` and the candidate text
    contains ``context_word`` together with any of ``excluded_words``, the
    keyword fallbacks reject the candidate. "+6 to Level of all Fire Spell
    Skills" therefore never satisfies "+6 to Level of all Spell Skills".
    """
    trigger_word: str = "all"
    context_word: str = "spell"
    excluded_words: Tuple[str, ...] = field(
        default=(
            "fire",
            "cold",
            "lightning",
            "chaos",
            "physical",
            "minion",
            "melee",
            "bow",
            "wand",
        )
    )
    enabled: bool = True

    @classmethod
    def from_settings(cls) -> "ExclusionPolicy":
        return cls(
            trigger_word=settings.exclusion_trigger_word,
            context_word=settings.exclusion_context_word,
            excluded_words=tuple(w.lower() for w in settings.exclusion_words),
        )

    def rejects(self, target: str, text: str) -> Optional[str]:
        """Return the excluded word that rejects ``text``, if any."""
        if not self.enabled or not self.trigger_word:
            return None
        if self.trigger_word not in target.split():
            return None
        if self.context_word and self.context_word not in text:
            return None
        for word in self.excluded_words:
            if word in text and word not in target:
                return word
        return None


_default_policy: Optional[ExclusionPolicy] = None


def default_policy() -> ExclusionPolicy:
    global _default_policy
    if _default_policy is None:
        _default_policy = ExclusionPolicy.from_settings()
    return _default_policy


def _keywords_present(keywords: Sequence[str], text: str) -> bool:
    return all(word in text for word in keywords)


def _check_plain(text: str, modifier: ModifierSpec, policy: ExclusionPolicy) -> bool:
    target = normalize(modifier.pattern)
    if not target:
        return False

    if target in text:
        _log.debug(f"exact match: {target!r}")
        return True

    excluded = policy.rejects(target, text)
    if excluded:
        _log.debug(f"rejected {text!r}: found {excluded!r} while looking for {target!r}")
        return False

    words = [w for w in _WORDS.findall(target) if len(w) > 2]
    if not _keywords_present(words, text):
        return False
    if not _keywords_present(_DIGITS.findall(target), text):
        return False

    _log.debug(f"keyword match: {target!r} in {text!r}")
    return True


def build_range_regex(pattern: str, placeholder: str = PLACEHOLDER) -> Optional[re.Pattern]:
    """Regex for a normalized template, placeholder as a capturing number.

    Returns None when the template has no placeholder.
    """
    if placeholder not in pattern:
        return None
    parts = [re.escape(part) for part in pattern.split(placeholder)]
    return re.compile(r"(\d+)".join(parts))


def _check_range(text: str, modifier: ModifierSpec, policy: ExclusionPolicy) -> bool:
    pattern = normalize_pattern(modifier.pattern)
    if not pattern:
        return False

    regex = build_range_regex(pattern)
    if regex is not None:
        match = regex.search(text)
        if match:
            value = int(match.group(1))
            in_range = modifier.in_range(value)
            _log.debug(
                f"range match {value} for {modifier.describe()!r}: "
                f"{'accepted' if in_range else 'out of range'}"
            )
            return in_range

    # OCR dropped or mangled a word: keywords plus any in-range number
    bare = pattern.replace(PLACEHOLDER, " ").replace("+", " ").replace("%", " ")
    keywords = [w for w in bare.split() if len(w) > 2]

    excluded = policy.rejects(pattern, text)
    if excluded:
        _log.debug(f"rejected {text!r}: found {excluded!r}")
        return False
    if not _keywords_present(keywords, text):
        return False

    for digits in _DIGITS.findall(text):
        if modifier.in_range(int(digits)):
            _log.debug(f"flexible range match {digits} for {modifier.describe()!r}")
            return True
    return False


def check_one(
    text: str,
    modifier: ModifierSpec,
    policy: Optional[ExclusionPolicy] = None,
) -> bool:
    """Does one normalized line satisfy one modifier?"""
    if policy is None:
        policy = default_policy()
    if modifier.use_range:
        return _check_range(text, modifier, policy)
    return _check_plain(text, modifier, policy)


def find_match(
    lines: Sequence[ModifierLine],
    modifiers: Sequence[ModifierSpec],
    policy: Optional[ExclusionPolicy] = None,
) -> Optional[ModifierMatch]:
    """First modifier (in order) satisfied by any line (by confidence).

    ``lines`` are expected in the aggregator's order, highest confidence
    first.
    """
    if policy is None:
        policy = default_policy()
    for modifier in modifiers:
        for line in lines:
            if check_one(line.normalized_text, modifier, policy):
                return ModifierMatch(modifier=modifier, line=line)
    return None


__all__ = [
    "ExclusionPolicy",
    "build_range_regex",
    "check_one",
    "default_policy",
    "find_match",
]
