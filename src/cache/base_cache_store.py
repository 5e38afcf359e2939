# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Backends only store and query entries. Similarity matching, TTL and LRU
policy live in ResultCache.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from tomatoscan.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by exact fingerprint key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store cache entry (upsert)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry; missing keys are ignored."""

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove entries with ``expires_at < now``; return how many."""

    @abstractmethod
    async def list_valid(self, now: datetime) -> list[CacheEntry]:
        """All entries not yet expired at ``now``."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries, expired ones included."""

    @abstractmethod
    async def keys_by_last_access(self) -> list[str]:
        """All keys, least recently accessed first."""

    @abstractmethod
    async def update_access(self, key: str, accessed_at: datetime) -> None:
        """Increment ``access_count`` and set ``last_accessed_at``."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    def close(self) -> None:
        """Release backend resources."""
