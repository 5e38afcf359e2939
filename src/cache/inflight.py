# src/cache/inflight.py — v1
"""Single-flight coordination of validator calls per fingerprint.

The first caller for a fingerprint becomes the leader and does the work.
Callers arriving while it runs, with the same or a similar fingerprint,
become followers and await the leader's report. Registration is
synchronous, so it is atomic with respect to other tasks on the loop.
"""

from __future__ import annotations

import asyncio
import logging

from tomatoscan.cache.fingerprint import similarity
from tomatoscan.core.models import DiagnosticReport

logger = logging.getLogger(__name__)


class InflightLease:
    """One caller's stake in an in-flight computation.

    Followers call ``wait()``; a ``None`` result means the leader gave up
    (it was cancelled or failed) and the follower must try again. The
    leader must call ``complete()`` or ``release()``.
    """

    def __init__(
        self,
        registry: InflightRegistry,
        key: str,
        future: asyncio.Future[DiagnosticReport | None],
        is_leader: bool,
    ) -> None:
        self._registry = registry
        self.key = key
        self._future = future
        self.is_leader = is_leader

    async def wait(self) -> DiagnosticReport | None:
        # Shielded so a cancelled follower does not cancel the shared future.
        return await asyncio.shield(self._future)

    def complete(self, report: DiagnosticReport) -> None:
        if self.is_leader:
            self._registry._finish(self.key, self._future, report)

    def release(self) -> None:
        """Give up leadership without a result. No-op once completed."""
        if self.is_leader:
            self._registry._finish(self.key, self._future, None)


class InflightRegistry:
    """Fingerprint → future of the report being produced for it."""

    def __init__(self, similarity_threshold: float = 0.95) -> None:
        self._similarity_threshold = similarity_threshold
        self._inflight: dict[str, asyncio.Future[DiagnosticReport | None]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def _find(self, key: str) -> tuple[str, asyncio.Future[DiagnosticReport | None]] | None:
        future = self._inflight.get(key)
        if future is not None:
            return key, future
        for other, future in self._inflight.items():
            if similarity(key, other) >= self._similarity_threshold:
                return other, future
        return None

    def acquire(self, key: str) -> InflightLease:
        """Join the in-flight computation for ``key`` or start a new one."""
        found = self._find(key)
        if found is not None:
            leader_key, future = found
            logger.debug("Joining in-flight validation for %s", leader_key)
            return InflightLease(self, leader_key, future, is_leader=False)

        created: asyncio.Future[DiagnosticReport | None] = (
            asyncio.get_running_loop().create_future()
        )
        self._inflight[key] = created
        return InflightLease(self, key, created, is_leader=True)

    def _finish(
        self,
        key: str,
        future: asyncio.Future[DiagnosticReport | None],
        report: DiagnosticReport | None,
    ) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
        if not future.done():
            future.set_result(report)
