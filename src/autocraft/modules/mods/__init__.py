from .types import ModifierMatch, ModifierSpec
from .matcher import ExclusionPolicy, build_range_regex, check_one, default_policy, find_match
from .catalog import (
    CatalogError,
    KnownModCatalog,
    extract_stat_texts,
    family_key,
    fetch_known_mods,
    load_known_mods,
)

__all__ = [
    "ModifierMatch",
    "ModifierSpec",
    "ExclusionPolicy",
    "build_range_regex",
    "check_one",
    "default_policy",
    "find_match",
    "CatalogError",
    "KnownModCatalog",
    "extract_stat_texts",
    "family_key",
    "fetch_known_mods",
    "load_known_mods",
]
