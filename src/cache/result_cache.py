# src/cache/result_cache.py — v1
"""Fingerprint-keyed cache of diagnostic reports with TTL and LRU eviction.

Lookup tries the exact fingerprint first, then scans live entries for the
most similar one at or above the similarity threshold. Writes to a key are
serialized by a per-key lock; unrelated keys never wait on each other.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from PIL import Image

from tomatoscan.cache.base_cache_store import BaseCacheStore
from tomatoscan.cache.fingerprint import fingerprint, similarity
from tomatoscan.cache.inflight import InflightLease, InflightRegistry
from tomatoscan.cache.models import CacheEntry, CacheLookupResult, CacheStats
from tomatoscan.config.settings import Settings
from tomatoscan.core.models import DiagnosticReport

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultCache:
    """Shared result cache used by every pipeline run.

    Args:
        store: Storage backend.
        ttl_seconds: Lifetime of an entry from the moment it is stored.
        max_entries: Capacity enforced by LRU eviction after each store.
        similarity_threshold: Minimum fingerprint similarity for a hit.
        hash_size: Perceptual-hash grid size.
        enabled: When False, lookups miss and stores are dropped.
        cleanup_interval_seconds: Minimum gap between automatic expiry sweeps.
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        ttl_seconds: float = 7 * 86400.0,
        max_entries: int = 100,
        similarity_threshold: float = 0.95,
        hash_size: int = 8,
        enabled: bool = True,
        cleanup_interval_seconds: float = 24 * 3600.0,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._threshold = similarity_threshold
        self._hash_size = hash_size
        self._enabled = enabled
        self._cleanup_interval = timedelta(seconds=cleanup_interval_seconds)
        self._clock = clock or _utcnow
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_sweep: datetime | None = None
        self._inflight = InflightRegistry(similarity_threshold)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: BaseCacheStore | None = None,
        clock: Clock | None = None,
    ) -> ResultCache:
        if store is None:
            from tomatoscan.cache.cache_factory import create_cache_store
            store = create_cache_store(settings)
        return cls(
            store,
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.max_cache_size,
            similarity_threshold=settings.hash_similarity_threshold,
            hash_size=settings.phash_size,
            enabled=settings.cache_enabled,
            cleanup_interval_seconds=settings.cache_cleanup_interval_hours * 3600.0,
            clock=clock,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def store_backend(self) -> BaseCacheStore:
        return self._store

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def fingerprint_of(self, image: Image.Image) -> str:
        return fingerprint(image, self._hash_size)

    # --- Lookup ---

    async def lookup(self, image: Image.Image) -> DiagnosticReport | None:
        """Report cached for ``image`` or a similar image, if any."""
        result = await self.lookup_fingerprint(self.fingerprint_of(image))
        return result.matched_entry.report if result.matched_entry else None

    async def lookup_fingerprint(self, key: str) -> CacheLookupResult:
        if not self._enabled:
            return CacheLookupResult()

        now = self._clock()
        hit_level: str
        entry = await self._store.get(key)
        if entry is not None and not entry.is_expired(now):
            hit_level, score = "exact", 1.0
        else:
            entry, score = await self._most_similar(key, now)
            hit_level = "similar"
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return CacheLookupResult()

        async with self._lock_for(entry.fingerprint):
            await self._store.update_access(entry.fingerprint, now)

        logger.debug("Cache %s hit for %s (similarity %.3f)", hit_level, key, score)
        return CacheLookupResult(
            hit_level=hit_level,  # type: ignore[arg-type]
            matched_entry=entry,
            similarity_score=score,
        )

    async def _most_similar(
        self, key: str, now: datetime
    ) -> tuple[CacheEntry | None, float]:
        best: CacheEntry | None = None
        best_score = 0.0
        for candidate in await self._store.list_valid(now):
            score = similarity(key, candidate.fingerprint)
            if score >= self._threshold and score > best_score:
                best, best_score = candidate, score
        return best, best_score

    # --- Store / evict ---

    async def store(self, image: Image.Image, report: DiagnosticReport) -> None:
        await self.store_fingerprint(self.fingerprint_of(image), report)

    async def store_fingerprint(self, key: str, report: DiagnosticReport) -> None:
        """Upsert ``report`` under ``key`` and enforce capacity."""
        if not self._enabled:
            return

        now = self._clock()
        entry = CacheEntry(
            fingerprint=key,
            report=report,
            cached_at=now,
            expires_at=now + self._ttl,
            access_count=1,
            last_accessed_at=now,
        )
        async with self._lock_for(key):
            await self._store.put(key, entry)
        logger.debug("Cached report for %s (expires %s)", key, entry.expires_at.isoformat())

        await self._maybe_sweep(now)
        await self.evict_overflow()

    async def evict_overflow(self) -> int:
        """Evict least recently used entries until within capacity."""
        excess = await self._store.count() - self._max_entries
        if excess <= 0:
            return 0
        victims = (await self._store.keys_by_last_access())[:excess]
        for key in victims:
            await self._delete(key)
        logger.info("Evicted %d least recently used cache entries", len(victims))
        return len(victims)

    async def sweep_expired(self) -> int:
        """Delete every entry whose ``expires_at`` is in the past."""
        now = self._clock()
        removed = await self._store.delete_expired(now)
        self._last_sweep = now
        self._prune_locks()
        if removed:
            logger.info("Swept %d expired cache entries", removed)
        return removed

    async def evict_expired_and_overflow(self) -> int:
        """Run the expiry sweep then enforce capacity; return entries removed."""
        return await self.sweep_expired() + await self.evict_overflow()

    async def _maybe_sweep(self, now: datetime) -> None:
        if self._last_sweep is None or now - self._last_sweep >= self._cleanup_interval:
            await self.sweep_expired()

    async def _delete(self, key: str) -> None:
        async with self._lock_for(key):
            await self._store.delete(key)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def _prune_locks(self) -> None:
        """Drop per-key locks nobody holds; they are recreated on demand."""
        for key in [k for k, lock in self._locks.items() if not lock.locked()]:
            del self._locks[key]

    async def clear(self) -> None:
        await self._store.clear()
        self._locks.clear()

    async def stats(self) -> CacheStats:
        now = self._clock()
        total = await self._store.count()
        valid = len(await self._store.list_valid(now))
        return CacheStats(
            total_entries=total,
            valid_entries=valid,
            expired_entries=total - valid,
            max_entries=self._max_entries,
            ttl_seconds=self._ttl.total_seconds(),
        )

    # --- Single-flight ---

    def begin(self, key: str) -> InflightLease:
        """Lead or join the in-flight validation for ``key``."""
        return self._inflight.acquire(key)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)
