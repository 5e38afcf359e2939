# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheLookupResult, CacheStats."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from tomatoscan.core.models import DiagnosticReport


class CacheEntry(BaseModel):
    """Validated report stored under the exact fingerprint of its image."""

    fingerprint: str
    report: DiagnosticReport
    cached_at: datetime
    expires_at: datetime
    access_count: int = Field(default=1, ge=0)
    last_accessed_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class CacheLookupResult(BaseModel):
    """Outcome of a fingerprint lookup."""

    hit_level: Literal["exact", "similar"] | None = None
    matched_entry: CacheEntry | None = None
    similarity_score: float | None = None

    @property
    def is_hit(self) -> bool:
        return self.matched_entry is not None


class CacheStats(BaseModel):
    """Point-in-time view of the result cache."""

    total_entries: int
    valid_entries: int
    expired_entries: int
    max_entries: int
    ttl_seconds: float
