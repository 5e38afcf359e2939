# src/api/facade.py — v2
"""Public API facade — single entry point for leaf analysis.

Usage:
    from tomatoscan.api.facade import analyze
    result = await analyze("leaf.jpg")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tomatoscan.api.models import AnalysisResult, ConfigOverrides
from tomatoscan.config.settings import ConfigurationError, Settings
from tomatoscan.core.images import ImageSource

if TYPE_CHECKING:
    from tomatoscan.cache.result_cache import ResultCache
    from tomatoscan.inference.base_backend import InferenceBackend
    from tomatoscan.llm.base_client import BaseLLMClient
    from tomatoscan.pipeline.orchestrator import AnalysisPipeline
    from tomatoscan.tracking.metrics import MetricsCollector
    from tomatoscan.validation.base_validator import ReportValidator

logger = logging.getLogger(__name__)


def build_pipeline(
    settings: Settings | None = None,
    backend: InferenceBackend | None = None,
    validator: ReportValidator | None = None,
    llm_client: BaseLLMClient | None = None,
    cache: ResultCache | None = None,
    metrics: MetricsCollector | None = None,
) -> AnalysisPipeline:
    """Wire detector, classifier, validator and cache from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        backend: Tensor runtime. Defaults to ONNX models from settings.
        validator: Report validator. Defaults to the LLM validator.
        llm_client: Client for the default validator (overrides the factory).
        cache: Shared result cache. The pipeline creates and owns one if None.
        metrics: Optional metrics collector owned by the caller.

    Raises:
        ConfigurationError: If no backend is given and no detector model is set.
    """
    from tomatoscan.classification.base_classifier import labels_to_classes
    from tomatoscan.classification.model_classifier import (
        DetectionScoreClassifier,
        ModelDiseaseClassifier,
    )
    from tomatoscan.detection.yolo_detector import YoloLeafDetector
    from tomatoscan.pipeline.orchestrator import AnalysisPipeline
    from tomatoscan.validation.llm_validator import LLMReportValidator

    settings = settings or Settings()

    if backend is None:
        if settings.detector_model_path is None:
            raise ConfigurationError(
                "DETECTOR_MODEL_PATH must be set when no inference backend is given"
            )
        from tomatoscan.inference.onnx_backend import OnnxInferenceBackend
        backend = OnnxInferenceBackend(
            settings.detector_model_path, settings.classifier_model_path
        )

    detector = YoloLeafDetector.from_settings(backend, settings)
    if settings.classifier_model_path is not None or backend.backend_name != "onnx":
        classifier = ModelDiseaseClassifier.from_settings(backend, settings)
    else:
        classifier = DetectionScoreClassifier(labels_to_classes(settings.class_labels_list))

    if validator is None:
        validator = LLMReportValidator.from_settings(settings, client=llm_client)

    logger.debug(
        "Built pipeline: backend=%s classifier=%s validator_available=%s",
        backend.backend_name, type(classifier).__name__, validator.is_available,
    )
    return AnalysisPipeline(
        detector=detector,
        classifier=classifier,
        validator=validator,
        cache=cache,
        settings=settings,
        metrics=metrics,
    )


async def analyze(
    image: ImageSource,
    settings: Settings | None = None,
    overrides: ConfigOverrides | None = None,
    backend: InferenceBackend | None = None,
    validator: ReportValidator | None = None,
    cache: ResultCache | None = None,
    metrics: MetricsCollector | None = None,
) -> AnalysisResult:
    """Analyze one leaf photo end-to-end.

    Builds a short-lived pipeline; long-running callers should keep one
    from ``build_pipeline`` and share it across requests.
    """
    settings = apply_overrides(settings or Settings(), overrides)
    pipeline = build_pipeline(
        settings, backend=backend, validator=validator, cache=cache, metrics=metrics
    )
    async with pipeline:
        return await pipeline.analyze(image)


def apply_overrides(settings: Settings, overrides: ConfigOverrides | None) -> Settings:
    """Apply per-call config overrides if provided."""
    if overrides is None:
        return settings
    values = overrides.model_dump(exclude_none=True)
    if not values:
        return settings
    current = settings.model_dump()
    current.update(values)
    return Settings(**current)
