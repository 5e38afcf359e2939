# src/tracking/models.py — v2
"""Tracking domain models: AnalysisRecord, PipelineStats."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class AnalysisRecord(BaseModel):
    """Outcome of one pipeline run, as recorded by the metrics collector."""

    analysis_id: str
    timestamp: datetime
    status: Literal["success", "failed"]
    error_kind: str | None = None
    from_cache: bool = False
    report_source: Literal["validator", "fallback", "uncertain"] | None = None
    confidence: float | None = None
    elapsed_ms: float
    stage_timings_ms: dict[str, float] = {}


class PipelineStats(BaseModel):
    """Snapshot of the rolling performance window."""

    total_analyses: int = 0
    successful_analyses: int = 0
    failed_analyses: int = 0
    success_rate: float = 0.0
    avg_total_ms: float = 0.0
    avg_stage_ms: dict[str, float] = {}
    avg_confidence: float = 0.0
    min_confidence: float = 0.0
    max_confidence: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    validator_calls: int = 0
    fallback_reports: int = 0
    errors_by_kind: dict[str, int] = {}
