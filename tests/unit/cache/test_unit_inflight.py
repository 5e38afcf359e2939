# tests/unit/cache/test_unit_inflight.py — v1
"""Tests for cache/inflight.py — single-flight leases."""

from __future__ import annotations

import asyncio

import pytest

from tomatoscan.cache.inflight import InflightRegistry


class TestInflightRegistry:
    @pytest.mark.asyncio
    async def test_first_caller_leads(self):
        registry = InflightRegistry()
        lease = registry.acquire("0" * 20)
        assert lease.is_leader
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_follower_receives_leader_report(self, sample_report):
        registry = InflightRegistry()
        leader = registry.acquire("0" * 20)
        follower = registry.acquire("0" * 20)
        assert not follower.is_leader

        waiter = asyncio.ensure_future(follower.wait())
        await asyncio.sleep(0)
        leader.complete(sample_report)
        assert await waiter == sample_report
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_similar_key_joins(self):
        registry = InflightRegistry(similarity_threshold=0.95)
        registry.acquire("0" * 20)
        follower = registry.acquire("0" * 19 + "1")
        assert not follower.is_leader
        assert follower.key == "0" * 20

    @pytest.mark.asyncio
    async def test_dissimilar_key_leads(self):
        registry = InflightRegistry(similarity_threshold=0.95)
        registry.acquire("0" * 15)
        assert registry.acquire("1" * 15).is_leader
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_release_wakes_followers_with_none(self):
        registry = InflightRegistry()
        leader = registry.acquire("0101")
        follower = registry.acquire("0101")
        leader.release()
        assert await follower.wait() is None
        assert registry.acquire("0101").is_leader

    @pytest.mark.asyncio
    async def test_release_after_complete_is_noop(self, sample_report):
        registry = InflightRegistry()
        leader = registry.acquire("0101")
        follower = registry.acquire("0101")
        leader.complete(sample_report)
        leader.release()
        assert await follower.wait() == sample_report

    @pytest.mark.asyncio
    async def test_follower_cannot_finish(self, sample_report):
        registry = InflightRegistry()
        registry.acquire("0101")
        follower = registry.acquire("0101")
        follower.complete(sample_report)
        follower.release()
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_cancelled_follower_leaves_future_intact(self, sample_report):
        registry = InflightRegistry()
        leader = registry.acquire("0101")
        first = registry.acquire("0101")
        second = registry.acquire("0101")

        cancelled = asyncio.ensure_future(first.wait())
        waiting = asyncio.ensure_future(second.wait())
        await asyncio.sleep(0)
        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        leader.complete(sample_report)
        assert await waiting == sample_report
