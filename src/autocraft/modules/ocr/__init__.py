from .types import ModifierLine, OcrLine
from .normalize import normalize, normalize_pattern
from .aggregate import aggregate, alnum_density, has_signal, looks_like_modifier_start
from .recognize import recognize_variants

__all__ = [
    "ModifierLine",
    "OcrLine",
    "normalize",
    "normalize_pattern",
    "aggregate",
    "alnum_density",
    "has_signal",
    "looks_like_modifier_start",
    "recognize_variants",
]
