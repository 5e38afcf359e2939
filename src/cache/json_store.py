# src/cache/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT, one file
per fingerprint.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from tomatoscan.cache.base_cache_store import BaseCacheStore
from tomatoscan.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            return CacheEntry(**json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to read cache entry %s: %s", path.name, e)
            return None

    def _all(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in sorted(self._root.glob("*.json")):
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    async def get(self, key: str) -> CacheEntry | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        return self._read(path)

    async def put(self, key: str, entry: CacheEntry) -> None:
        path = self._entry_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def delete_expired(self, now: datetime) -> int:
        removed = 0
        for entry in self._all():
            if entry.is_expired(now):
                await self.delete(entry.fingerprint)
                removed += 1
        return removed

    async def list_valid(self, now: datetime) -> list[CacheEntry]:
        return [e for e in self._all() if not e.is_expired(now)]

    async def count(self) -> int:
        return len(self._all())

    async def keys_by_last_access(self) -> list[str]:
        entries = sorted(self._all(), key=lambda e: e.last_accessed_at)
        return [e.fingerprint for e in entries]

    async def update_access(self, key: str, accessed_at: datetime) -> None:
        entry = await self.get(key)
        if entry is None:
            return
        await self.put(
            key,
            entry.model_copy(
                update={
                    "access_count": entry.access_count + 1,
                    "last_accessed_at": accessed_at,
                }
            ),
        )

    async def clear(self) -> None:
        for path in self._root.glob("*.json"):
            path.unlink()

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
