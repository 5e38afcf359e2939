# src/pipeline/state.py — v2
"""Mutable state of a single analysis run.

Created per call, owned by that call only, and discarded once the
AnalysisResult is built.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tomatoscan.core.errors import AnalysisError, ValidatorUnavailable
from tomatoscan.core.images import ImageSource
from tomatoscan.core.models import ClassificationResult, Crop, Detection, DiagnosticReport
from tomatoscan.pipeline.stages import PipelineStage

if TYPE_CHECKING:
    from PIL import Image

    from tomatoscan.cache.inflight import InflightLease


@dataclass
class AnalysisRun:
    """Everything the stage handlers read and write for one request."""

    source: ImageSource
    offline: bool = False
    analysis_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    stage: PipelineStage = PipelineStage.START

    image: Image.Image | None = None
    detection: Detection | None = None
    crop: Crop | None = None
    classification: ClassificationResult | None = None
    uncertain: bool = False
    fingerprint: str | None = None
    lease: InflightLease | None = None

    report: DiagnosticReport | None = None
    from_cache: bool = False
    error: AnalysisError | None = None
    warning: ValidatorUnavailable | None = None
    stage_timings_ms: dict[str, float] = field(default_factory=dict)

    def add_timing(self, stage: PipelineStage, elapsed_ms: float) -> None:
        self.stage_timings_ms[stage.value] = (
            self.stage_timings_ms.get(stage.value, 0.0) + elapsed_ms
        )
