# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. Timestamps are indexed as
epoch seconds so expiry and LRU queries run in SQL.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from tomatoscan.cache.base_cache_store import BaseCacheStore
from tomatoscan.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS result_cache (
    fingerprint TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    expires_at REAL NOT NULL,
    last_accessed_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_expires_at ON result_cache(expires_at);
CREATE INDEX IF NOT EXISTS idx_last_accessed_at ON result_cache(last_accessed_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store that persists across runs."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    @staticmethod
    def _decode(key: str, raw: str) -> CacheEntry | None:
        try:
            return CacheEntry(**json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def get(self, key: str) -> CacheEntry | None:
        row = self._conn.execute(
            "SELECT data FROM result_cache WHERE fingerprint = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return self._decode(key, row[0])

    async def put(self, key: str, entry: CacheEntry) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO result_cache
               (fingerprint, data, expires_at, last_accessed_at)
               VALUES (?, ?, ?, ?)""",
            (
                key,
                entry.model_dump_json(),
                entry.expires_at.timestamp(),
                entry.last_accessed_at.timestamp(),
            ),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM result_cache WHERE fingerprint = ?", (key,))
        self._conn.commit()

    async def delete_expired(self, now: datetime) -> int:
        cursor = self._conn.execute(
            "DELETE FROM result_cache WHERE expires_at < ?", (now.timestamp(),)
        )
        self._conn.commit()
        return cursor.rowcount

    async def list_valid(self, now: datetime) -> list[CacheEntry]:
        cursor = self._conn.execute(
            "SELECT fingerprint, data FROM result_cache WHERE expires_at >= ? ORDER BY rowid",
            (now.timestamp(),),
        )
        entries: list[CacheEntry] = []
        for key, raw in cursor.fetchall():
            entry = self._decode(key, raw)
            if entry is not None:
                entries.append(entry)
        return entries

    async def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM result_cache").fetchone()[0]

    async def keys_by_last_access(self) -> list[str]:
        cursor = self._conn.execute(
            "SELECT fingerprint FROM result_cache ORDER BY last_accessed_at ASC, rowid ASC"
        )
        return [row[0] for row in cursor.fetchall()]

    async def update_access(self, key: str, accessed_at: datetime) -> None:
        entry = await self.get(key)
        if entry is None:
            return
        updated = entry.model_copy(
            update={
                "access_count": entry.access_count + 1,
                "last_accessed_at": accessed_at,
            }
        )
        self._conn.execute(
            """UPDATE result_cache SET data = ?, last_accessed_at = ?
               WHERE fingerprint = ?""",
            (updated.model_dump_json(), accessed_at.timestamp(), key),
        )
        self._conn.commit()

    async def clear(self) -> None:
        self._conn.execute("DELETE FROM result_cache")
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
