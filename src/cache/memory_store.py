# src/cache/memory_store.py — v1
"""In-process cache store (CACHE_BACKEND=memory, default)."""

from __future__ import annotations

from datetime import datetime

from tomatoscan.cache.base_cache_store import BaseCacheStore
from tomatoscan.cache.models import CacheEntry


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed store. Entries do not survive the process."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        # Re-insert so dict order tracks write order for LRU ties.
        self._entries.pop(key, None)
        self._entries[key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_expired(self, now: datetime) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def list_valid(self, now: datetime) -> list[CacheEntry]:
        return [e for e in self._entries.values() if not e.is_expired(now)]

    async def count(self) -> int:
        return len(self._entries)

    async def keys_by_last_access(self) -> list[str]:
        return sorted(self._entries, key=lambda k: self._entries[k].last_accessed_at)

    async def update_access(self, key: str, accessed_at: datetime) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        self._entries[key] = entry.model_copy(
            update={
                "access_count": entry.access_count + 1,
                "last_accessed_at": accessed_at,
            }
        )

    async def clear(self) -> None:
        self._entries.clear()
