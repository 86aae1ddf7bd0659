"""Run the OCR capability over the preprocessing variants of one capture."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Sequence

from .types import OcrLine

if TYPE_CHECKING:
    from ..capability.types import OcrCapability


async def recognize_variants(
    ocr: "OcrCapability",
    images: Sequence[Any],
) -> List[List[OcrLine]]:
    """Recognize each variant in turn, one candidate set per image.

    Variants are recognized sequentially; aggregation does not depend on the
    order of the returned sets.
    """
    candidate_sets: List[List[OcrLine]] = []
    for image in images:
        lines = await ocr.recognize_lines(image)
        candidate_sets.append(list(lines or []))
    return candidate_sets


__all__ = ["recognize_variants"]
