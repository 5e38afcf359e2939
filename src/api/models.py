# src/api/models.py — v2
"""API-level models: ConfigOverrides, AnalysisResult."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from tomatoscan.core.errors import (
    AnalysisError,
    ValidatorUnavailable,
    is_recoverable,
    suggestions_for,
    user_message,
)
from tomatoscan.core.models import ClassificationResult, Detection, DiagnosticReport


class ConfigOverrides(BaseModel):
    """Per-call overrides — validated subset of Settings."""

    validator_enabled: bool | None = None
    quality_check_enabled: bool | None = None
    cache_enabled: bool | None = None
    confidence_threshold: float | None = None
    detection_confidence_threshold: float | None = None
    fail_on_low_confidence: bool | None = None


class AnalysisResult(BaseModel):
    """Outcome of one analysis request.

    ``success`` is True whenever a report was produced, including fallback
    reports; ``warning`` then records why the validator was skipped.
    ``from_cache`` is True when the report came from the result cache or
    from a concurrent run for the same image.
    """

    analysis_id: str
    success: bool
    detection: Optional[Detection] = None
    classification: Optional[ClassificationResult] = None
    report: Optional[DiagnosticReport] = None
    error: Optional[AnalysisError] = None
    warning: Optional[ValidatorUnavailable] = None
    elapsed_ms: float = 0.0
    from_cache: bool = False
    stage_timings_ms: dict[str, float] = Field(default_factory=dict)

    @property
    def user_message(self) -> str | None:
        return user_message(self.error) if self.error is not None else None

    @property
    def suggestions(self) -> list[str]:
        return suggestions_for(self.error) if self.error is not None else []

    @property
    def is_recoverable(self) -> bool:
        return self.error is not None and is_recoverable(self.error)
