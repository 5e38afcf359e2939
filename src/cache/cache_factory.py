# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from pathlib import Path

from tomatoscan.cache.base_cache_store import BaseCacheStore
from tomatoscan.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from tomatoscan.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    cache_root = Path(settings.cache_root).expanduser()  # type: ignore[union-attr]

    if backend == "json":
        from tomatoscan.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root)

    if backend == "sqlite":
        from tomatoscan.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=cache_root / "result_cache.db")

    raise ValueError(f"Unsupported cache backend: {backend!r}")
