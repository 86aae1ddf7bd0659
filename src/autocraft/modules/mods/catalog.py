"""
Known-mod catalog.

Allow-list of modifier families used by the OCR aggregator to drop lines
that do not correspond to any real modifier. A family is the normalized
template with every number replaced by ``#``, so "+6 to Level of all Spell
Skills" and "+# to Level of all Spell Skills" share one family.

Sources: an in-memory list, a JSON/text file, or the game's trade stats
endpoint.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional, Set

import httpx

from ...core.config import settings
from ...core.constants import PLACEHOLDER
from ...core.logger import logger
from ..ocr.normalize import normalize_pattern

_log = logger.bind(module="KnownModCatalog")

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_PLACEHOLDER_RUN = re.compile(r"#(?:\s*#)*")

# a line template shorter than this share of a family is not a fragment of it
MIN_FRAGMENT_RATIO = 0.6

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


class CatalogError(RuntimeError):
    """Known-mod source could not be read."""


def family_key(text: str) -> str:
    """Normalized template of a modifier text, numbers as ``#``."""
    normalized = normalize_pattern(text)
    return _PLACEHOLDER_RUN.sub(PLACEHOLDER, _NUMBER.sub(PLACEHOLDER, normalized))


class KnownModCatalog:
    """Set of known modifier families."""

    def __init__(self, texts: Iterable[str] = ()) -> None:
        self._families: Set[str] = set()
        for text in texts:
            self.add(text)

    def __len__(self) -> int:
        return len(self._families)

    def __contains__(self, text: object) -> bool:
        return isinstance(text, str) and self.is_known(text)

    def add(self, text: str) -> None:
        key = family_key(text or "")
        if key:
            self._families.add(key)

    @property
    def families(self) -> List[str]:
        return sorted(self._families)

    def is_known(self, normalized_line: str) -> bool:
        """Is the line an instance, or a long fragment, of a known family?"""
        key = family_key(normalized_line)
        if not key:
            return False
        if key in self._families:
            return True
        for family in self._families:
            if family in key:
                return True
            if key in family and len(key) >= len(family) * MIN_FRAGMENT_RATIO:
                return True
        return False

    # ── loading ──

    @classmethod
    def from_file(cls, path: str | Path) -> "KnownModCatalog":
        """Load from a JSON list, a stats API dump, or one mod per line."""
        file_path = Path(path)
        if not file_path.exists():
            raise CatalogError(f"catalog file not found: {file_path}")

        content = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() == ".json":
            try:
                payload = json.loads(content)
            except json.JSONDecodeError as e:
                raise CatalogError(f"invalid catalog JSON {file_path}: {e}") from e
            texts = payload if isinstance(payload, list) else extract_stat_texts(payload)
        else:
            texts = [line.strip() for line in content.splitlines()]

        catalog = cls(t for t in texts if isinstance(t, str) and t)
        _log.info(f"known mods loaded from {file_path}: {len(catalog)} families")
        return catalog

    def save(self, path: str | Path) -> None:
        """Write the families as a JSON list."""
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(json.dumps(self.families, indent=2), encoding="utf-8")


def extract_stat_texts(payload: Any, group: Optional[str] = None) -> List[str]:
    """Pull modifier texts of one group out of a trade stats response.

    Expected shape: ``{"result": [{"id": "explicit", "entries": [{"text": ...}]}]}``.
    """
    group = group or settings.mods_catalog_group
    groups = payload.get("result") if isinstance(payload, dict) else None
    if not isinstance(groups, list):
        return []
    selected = next(
        (g for g in groups if isinstance(g, dict) and g.get("id") == group),
        None,
    )
    if selected is None:
        return []
    entries = selected.get("entries") or []

    seen: Set[str] = set()
    texts: List[str] = []
    for entry in entries:
        text = (entry.get("text") or "").strip() if isinstance(entry, dict) else ""
        if text and text not in seen:
            seen.add(text)
            texts.append(text)
    return texts


async def fetch_known_mods(
    url: Optional[str] = None,
    *,
    group: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> KnownModCatalog:
    """Fetch the known-mod list from the trade stats endpoint.

    Any failure is logged and yields an empty catalog, which disables the
    allow-list filter instead of blocking the run.
    """
    url = url or settings.mods_catalog_url
    timeout = timeout or settings.mods_catalog_timeout_sec
    _log.info(f"loading known mods from {url}")
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers=DEFAULT_HEADERS,
            transport=transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        _log.error(f"failed to load known mods: {e}")
        return KnownModCatalog()

    texts = extract_stat_texts(payload, group)
    catalog = KnownModCatalog(texts)
    _log.info(f"known mods loaded: {len(texts)} '{group or settings.mods_catalog_group}' entries")
    return catalog


async def load_known_mods() -> KnownModCatalog:
    """Catalog from the configured cache file, else from the endpoint.

    A successful fetch is written back to the cache file when one is set.
    """
    cache = settings.mods_catalog_cache
    if cache and Path(cache).exists():
        try:
            return KnownModCatalog.from_file(cache)
        except CatalogError as e:
            _log.warning(f"ignoring known-mod cache: {e}")

    catalog = await fetch_known_mods()
    if cache and len(catalog):
        catalog.save(cache)
    return catalog


__all__ = [
    "CatalogError",
    "KnownModCatalog",
    "extract_stat_texts",
    "family_key",
    "fetch_known_mods",
    "load_known_mods",
]
