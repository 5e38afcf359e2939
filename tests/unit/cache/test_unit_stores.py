# tests/unit/cache/test_unit_stores.py — v2
"""Tests for cache store backends — memory, JSON files and SQLite share one contract."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tomatoscan.cache.cache_factory import create_cache_store
from tomatoscan.cache.json_store import JsonCacheStore
from tomatoscan.cache.memory_store import MemoryCacheStore
from tomatoscan.cache.models import CacheEntry
from tomatoscan.cache.sqlite_store import SqliteCacheStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        backend = MemoryCacheStore()
    elif request.param == "json":
        backend = JsonCacheStore(tmp_path / "json")
    else:
        backend = SqliteCacheStore(tmp_path / "cache.db")
    yield backend
    backend.close()


def _entry(key: str, report, at: datetime = T0, ttl_days: float = 7) -> CacheEntry:
    return CacheEntry(
        fingerprint=key,
        report=report,
        cached_at=at,
        expires_at=at + timedelta(days=ttl_days),
        last_accessed_at=at,
    )


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_put_get(self, store, sample_report):
        await store.put("0101", _entry("0101", sample_report))
        entry = await store.get("0101")
        assert entry is not None
        assert entry.report.disease_name == "Healthy"
        assert await store.get("1111") is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store, report_factory):
        await store.put("0101", _entry("0101", report_factory("Healthy")))
        await store.put("0101", _entry("0101", report_factory("Leaf Mold")))
        assert (await store.get("0101")).report.disease_name == "Leaf Mold"
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_delete(self, store, sample_report):
        await store.put("0101", _entry("0101", sample_report))
        await store.delete("0101")
        await store.delete("missing")
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_expiry(self, store, sample_report):
        await store.put("old", _entry("old", sample_report, ttl_days=1))
        await store.put("new", _entry("new", sample_report, ttl_days=10))
        later = T0 + timedelta(days=2)
        assert [e.fingerprint for e in await store.list_valid(later)] == ["new"]
        assert await store.delete_expired(later) == 1
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_lru_order_and_access(self, store, sample_report):
        for i, key in enumerate(["a", "b", "c"]):
            await store.put(key, _entry(key, sample_report, at=T0 + timedelta(seconds=i)))
        await store.update_access("a", T0 + timedelta(seconds=10))
        assert await store.keys_by_last_access() == ["b", "c", "a"]
        assert (await store.get("a")).access_count == 2

    @pytest.mark.asyncio
    async def test_update_access_missing_is_noop(self, store):
        await store.update_access("missing", T0)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_clear(self, store, sample_report):
        await store.put("a", _entry("a", sample_report))
        await store.put("b", _entry("b", sample_report))
        await store.clear()
        assert await store.count() == 0


class TestPersistence:
    @pytest.mark.asyncio
    async def test_sqlite_survives_reopen(self, tmp_path, sample_report):
        first = SqliteCacheStore(tmp_path / "cache.db")
        await first.put("0101", _entry("0101", sample_report))
        first.close()
        second = SqliteCacheStore(tmp_path / "cache.db")
        assert (await second.get("0101")).report == sample_report
        second.close()

    @pytest.mark.asyncio
    async def test_json_skips_corrupt_files(self, tmp_path, sample_report):
        store = JsonCacheStore(tmp_path)
        await store.put("0101", _entry("0101", sample_report))
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        assert await store.count() == 1


class TestCacheFactory:
    def test_default_memory(self):
        assert isinstance(create_cache_store(), MemoryCacheStore)

    def test_json(self, settings, tmp_path):
        custom = settings.model_copy(update={"cache_backend": "json"})
        assert isinstance(create_cache_store(custom), JsonCacheStore)

    def test_sqlite(self, settings):
        custom = settings.model_copy(update={"cache_backend": "sqlite"})
        store = create_cache_store(custom)
        assert isinstance(store, SqliteCacheStore)
        store.close()

    def test_unknown(self, settings):
        custom = settings.model_copy(update={"cache_backend": "redis"})
        with pytest.raises(ValueError, match="Unsupported cache backend"):
            create_cache_store(custom)
