"""OCR line data structures."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OcrLine:
    """One recognized text line from one image variant."""

    text: str
    # 0-100, as reported by the OCR engine
    confidence: float


@dataclass(frozen=True)
class ModifierLine:
    """A plausible modifier line that survived aggregation."""

    original_text: str
    normalized_text: str
    confidence: float
