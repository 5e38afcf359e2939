# tests/unit/tracking/test_unit_metrics.py — v1
"""Tests for tracking/metrics.py — rolling pipeline statistics."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from tomatoscan.tracking.metrics import MetricsCollector
from tomatoscan.tracking.models import AnalysisRecord


def _record(status="success", elapsed=100.0, confidence=0.9, **kwargs) -> AnalysisRecord:
    return AnalysisRecord(
        analysis_id="abc",
        timestamp=datetime.now(timezone.utc),
        status=status,
        elapsed_ms=elapsed,
        confidence=confidence,
        **kwargs,
    )


class TestMetricsCollector:
    def test_empty_snapshot(self):
        stats = MetricsCollector().snapshot()
        assert stats.total_analyses == 0
        assert stats.success_rate == 0.0
        assert stats.avg_total_ms == 0.0

    def test_aggregates(self):
        metrics = MetricsCollector()
        metrics.record_analysis(
            _record(elapsed=100.0, confidence=0.9, stage_timings_ms={"detect": 10.0})
        )
        metrics.record_analysis(
            _record(elapsed=300.0, confidence=0.7, stage_timings_ms={"detect": 30.0},
                    report_source="fallback")
        )
        metrics.record_analysis(
            _record(status="failed", elapsed=50.0, confidence=None,
                    error_kind="no_leaf_detected")
        )
        metrics.record_cache(hit=True)
        metrics.record_cache(hit=False)
        metrics.record_validator_call()

        stats = metrics.snapshot()
        assert stats.total_analyses == 3
        assert stats.successful_analyses == 2
        assert stats.success_rate == pytest.approx(2 / 3)
        assert stats.avg_total_ms == pytest.approx(150.0)
        assert stats.avg_stage_ms == {"detect": pytest.approx(20.0)}
        assert stats.avg_confidence == pytest.approx(0.8)
        assert (stats.min_confidence, stats.max_confidence) == (0.7, 0.9)
        assert (stats.cache_hits, stats.cache_misses) == (1, 1)
        assert stats.validator_calls == 1
        assert stats.fallback_reports == 1
        assert stats.errors_by_kind == {"no_leaf_detected": 1}

    def test_window_is_bounded(self):
        metrics = MetricsCollector(max_samples=3)
        for elapsed in (1000.0, 10.0, 20.0, 30.0):
            metrics.record_analysis(_record(elapsed=elapsed))
        stats = metrics.snapshot()
        assert stats.total_analyses == 4
        assert stats.avg_total_ms == pytest.approx(20.0)

    def test_reset(self):
        metrics = MetricsCollector()
        metrics.record_analysis(_record())
        metrics.reset()
        assert metrics.snapshot().total_analyses == 0

    def test_log_statistics(self, caplog):
        metrics = MetricsCollector()
        metrics.record_analysis(_record())
        with caplog.at_level(logging.INFO, logger="tomatoscan.tracking.metrics"):
            metrics.log_statistics()
        assert "Pipeline stats: 1 runs" in caplog.text
