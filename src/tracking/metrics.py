# src/tracking/metrics.py — v1
"""Explicit metrics collector passed into the pipeline.

Owned by the caller; no module-level state. Timing and confidence samples
are kept in bounded windows of the most recent runs.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque

from tomatoscan.tracking.models import AnalysisRecord, PipelineStats

logger = logging.getLogger(__name__)

MAX_SAMPLES = 100


def _mean(values: deque[float] | list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class MetricsCollector:
    """Thread-safe aggregation of pipeline outcomes."""

    def __init__(self, max_samples: int = MAX_SAMPLES) -> None:
        self._max_samples = max_samples
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._total_ms: deque[float] = deque(maxlen=self._max_samples)
            self._stage_ms: dict[str, deque[float]] = {}
            self._confidences: deque[float] = deque(maxlen=self._max_samples)
            self._successes = 0
            self._failures = 0
            self._cache_hits = 0
            self._cache_misses = 0
            self._validator_calls = 0
            self._fallbacks = 0
            self._errors: Counter[str] = Counter()

    def record_cache(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1

    def record_validator_call(self) -> None:
        with self._lock:
            self._validator_calls += 1

    def record_analysis(self, record: AnalysisRecord) -> None:
        with self._lock:
            self._total_ms.append(record.elapsed_ms)
            for stage, ms in record.stage_timings_ms.items():
                window = self._stage_ms.setdefault(stage, deque(maxlen=self._max_samples))
                window.append(ms)
            if record.confidence is not None:
                self._confidences.append(record.confidence)
            if record.status == "success":
                self._successes += 1
            else:
                self._failures += 1
                self._errors[record.error_kind or "unknown"] += 1
            if record.report_source == "fallback":
                self._fallbacks += 1

    def snapshot(self) -> PipelineStats:
        with self._lock:
            total = self._successes + self._failures
            confidences = list(self._confidences)
            return PipelineStats(
                total_analyses=total,
                successful_analyses=self._successes,
                failed_analyses=self._failures,
                success_rate=self._successes / total if total else 0.0,
                avg_total_ms=_mean(self._total_ms),
                avg_stage_ms={s: _mean(w) for s, w in self._stage_ms.items()},
                avg_confidence=_mean(confidences),
                min_confidence=min(confidences, default=0.0),
                max_confidence=max(confidences, default=0.0),
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                validator_calls=self._validator_calls,
                fallback_reports=self._fallbacks,
                errors_by_kind=dict(self._errors),
            )

    def log_statistics(self) -> None:
        stats = self.snapshot()
        logger.info(
            "Pipeline stats: %d runs, %.0f%% success, avg %.0f ms, cache %d/%d hit",
            stats.total_analyses,
            stats.success_rate * 100,
            stats.avg_total_ms,
            stats.cache_hits,
            stats.cache_hits + stats.cache_misses,
            extra={"data": stats.model_dump()},
        )
