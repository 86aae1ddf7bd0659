"""Modifier specification."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..ocr.types import ModifierLine


@dataclass(frozen=True)
class ModifierSpec:
    """A target modifier.

    Attributes:
        pattern: template text, e.g. "+# to Level of all Spell Skills"
        min_value: lower bound for the placeholder value (inclusive)
        max_value: upper bound for the placeholder value (inclusive)
        use_range: match the placeholder value against the bounds
    """
    pattern: str
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    use_range: bool = False

    def __post_init__(self) -> None:
        if self.use_range and self.min_value is None and self.max_value is None:
            raise ValueError(f"range modifier needs a bound: {self.pattern!r}")
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(
                f"min_value {self.min_value} > max_value {self.max_value}: {self.pattern!r}"
            )

    def in_range(self, value: int) -> bool:
        """Inclusive bound check, open-ended where a bound is missing."""
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True

    def describe(self) -> str:
        """Pattern with its range, for logs."""
        if not self.use_range:
            return self.pattern
        low = "" if self.min_value is None else str(self.min_value)
        high = "+" if self.max_value is None else f"-{self.max_value}"
        return f"{self.pattern} ({low}{high})"

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any], "ModifierSpec"]) -> "ModifierSpec":
        """Build from a config value.

        Accepts a plain string (exact/keyword match) or a mapping with
        ``pattern``/``text`` and optional ``minValue``/``maxValue``
        (snake_case also accepted). ``use_range`` is implied by a bound.
        """
        if isinstance(value, ModifierSpec):
            return value
        if isinstance(value, str):
            return cls(pattern=value.strip())
        if not isinstance(value, dict):
            raise ValueError(f"unsupported modifier value: {value!r}")

        pattern = value.get("pattern") or value.get("text") or ""
        min_value = _first(value, "minValue", "min_value")
        max_value = _first(value, "maxValue", "max_value")
        use_range = bool(
            value.get("useRange")
            or value.get("use_range")
            or value.get("hasRange")
            or min_value is not None
            or max_value is not None
        )
        return cls(
            pattern=str(pattern).strip(),
            min_value=None if min_value is None else int(min_value),
            max_value=None if max_value is None else int(max_value),
            use_range=use_range,
        )


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class ModifierMatch:
    """A modifier and the OCR line that satisfied it."""
    modifier: ModifierSpec
    line: ModifierLine


__all__ = ["ModifierSpec", "ModifierMatch"]
