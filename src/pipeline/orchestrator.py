# src/pipeline/orchestrator.py — v2
"""Pipeline orchestrator — explicit state machine over the analysis stages.

    START → [QUALITY_CHECK] → DETECT → CLASSIFY → CACHE_LOOKUP
          → (hit) DONE
          → (miss) VALIDATE → [FALLBACK] → CACHE_STORE → DONE

Any stage may end the run in FAILED with an AnalysisError. CPU-bound
stages run on a bounded thread pool; the validator call is the only
network suspension point. Concurrent runs for the same or a similar
fingerprint share one validator call through the result cache.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from tomatoscan.api.models import AnalysisResult
from tomatoscan.cache.result_cache import ResultCache
from tomatoscan.classification.base_classifier import DiseaseClassifier
from tomatoscan.config.settings import Settings
from tomatoscan.core.errors import (
    InvalidImage,
    InvalidImageError,
    LowConfidence,
    NoLeafDetected,
    PoorImageQuality,
    Unknown,
    ValidatorUnavailable,
    ValidatorUnavailableError,
    log_error,
)
from tomatoscan.core.images import ImageSource, load_image
from tomatoscan.detection.base_detector import LeafDetector
from tomatoscan.detection.cropper import crop
from tomatoscan.detection.nms import best_detection
from tomatoscan.logging.context import clear_context, set_analysis_context, set_stage_context
from tomatoscan.pipeline.stages import TERMINAL_STAGES, PipelineStage, check_transition
from tomatoscan.pipeline.state import AnalysisRun
from tomatoscan.quality.image_quality import validate_image_quality
from tomatoscan.reports.templates import (
    build_fallback_report,
    build_uncertain_report,
    low_confidence_reason,
)
from tomatoscan.tracking.metrics import MetricsCollector
from tomatoscan.tracking.models import AnalysisRecord
from tomatoscan.validation.base_validator import ReportValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")
StageHandler = Callable[[AnalysisRun], Awaitable[PipelineStage]]


class AnalysisPipeline:
    """Runs detect → classify → cache → validate for one image at a time per call.

    Instances are safe to share between concurrent ``analyze`` calls; the
    result cache is the only state they share.

    Args:
        detector: Leaf detector.
        classifier: Disease classifier.
        validator: External report validator.
        cache: Shared result cache. Created from settings (and owned) if None.
        settings: Thresholds and toggles. Loaded from .env if None.
        metrics: Optional collector owned by the caller.
        executor: Worker pool for CPU stages. Created (and owned) if None.
    """

    def __init__(
        self,
        detector: LeafDetector,
        classifier: DiseaseClassifier,
        validator: ReportValidator,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._detector = detector
        self._classifier = classifier
        self._validator = validator
        self._owns_cache = cache is None
        self._cache = cache or ResultCache.from_settings(self._settings)
        self._metrics = metrics
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._settings.effective_worker_pool_size,
            thread_name_prefix="tomatoscan-worker",
        )
        self._handlers: dict[PipelineStage, StageHandler] = {
            PipelineStage.START: self._start,
            PipelineStage.QUALITY_CHECK: self._quality_check,
            PipelineStage.DETECT: self._detect,
            PipelineStage.CLASSIFY: self._classify,
            PipelineStage.CACHE_LOOKUP: self._cache_lookup,
            PipelineStage.VALIDATE: self._validate,
            PipelineStage.FALLBACK: self._fallback,
            PipelineStage.CACHE_STORE: self._cache_store,
        }

    @property
    def cache(self) -> ResultCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(self, image: ImageSource) -> AnalysisResult:
        """Full pipeline, using the external validator when available."""
        return await self._run(AnalysisRun(source=image))

    async def analyze_fallback(self, image: ImageSource) -> AnalysisResult:
        """Offline pipeline: never calls the validator and never stores.

        Cached reports are still returned when present.
        """
        return await self._run(AnalysisRun(source=image, offline=True))

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        if self._owns_cache:
            self._cache.store_backend.close()

    async def __aenter__(self) -> AnalysisPipeline:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(self, run: AnalysisRun) -> AnalysisResult:
        set_analysis_context(run.analysis_id)
        started = time.perf_counter()
        try:
            while run.stage not in TERMINAL_STAGES:
                stage = run.stage
                set_stage_context(stage.value)
                t0 = time.perf_counter()
                try:
                    next_stage = await self._handlers[stage](run)
                except asyncio.CancelledError:
                    logger.info("Analysis cancelled during %s", stage.value)
                    raise
                except Exception as e:
                    logger.exception("Unexpected failure in stage %s", stage.value)
                    run.error = Unknown(message=str(e) or type(e).__name__)
                    next_stage = PipelineStage.FAILED
                finally:
                    run.add_timing(stage, (time.perf_counter() - t0) * 1000)
                check_transition(stage, next_stage)
                run.stage = next_stage
        finally:
            # Without a stored report, followers of this run must elect a new leader.
            if run.lease is not None:
                run.lease.release()

        elapsed_ms = (time.perf_counter() - started) * 1000
        result = self._build_result(run, elapsed_ms)
        if run.error is not None:
            log_error(run.error, logger, context=f"analysis {run.analysis_id}")
        logger.info(
            "Analysis %s finished: success=%s from_cache=%s in %.0f ms",
            run.analysis_id, result.success, result.from_cache, elapsed_ms,
        )
        self._record(run, result)
        clear_context()
        return result

    async def _cpu(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _build_result(self, run: AnalysisRun, elapsed_ms: float) -> AnalysisResult:
        success = run.stage is PipelineStage.DONE and run.report is not None
        return AnalysisResult(
            analysis_id=run.analysis_id,
            success=success,
            detection=run.detection,
            classification=run.classification,
            report=run.report if success else None,
            error=None if success else run.error,
            warning=run.warning,
            elapsed_ms=elapsed_ms,
            from_cache=run.from_cache,
            stage_timings_ms=dict(run.stage_timings_ms),
        )

    def _record(self, run: AnalysisRun, result: AnalysisResult) -> None:
        if self._metrics is None:
            return
        self._metrics.record_analysis(
            AnalysisRecord(
                analysis_id=run.analysis_id,
                timestamp=datetime.now(timezone.utc),
                status="success" if result.success else "failed",
                error_kind=result.error.kind if result.error else None,
                from_cache=result.from_cache,
                report_source=result.report.source if result.report else None,
                confidence=run.classification.confidence if run.classification else None,
                elapsed_ms=result.elapsed_ms,
                stage_timings_ms=result.stage_timings_ms,
            )
        )

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    async def _start(self, run: AnalysisRun) -> PipelineStage:
        try:
            run.image = await self._cpu(load_image, run.source)
        except InvalidImageError as e:
            logger.warning("Invalid input image: %s", e)
            run.error = InvalidImage()
            return PipelineStage.FAILED
        if self._settings.quality_check_enabled:
            return PipelineStage.QUALITY_CHECK
        return PipelineStage.DETECT

    async def _quality_check(self, run: AnalysisRun) -> PipelineStage:
        report = await self._cpu(
            validate_image_quality, run.image, self._settings.min_quality_score
        )
        if not report.is_valid:
            run.error = PoorImageQuality(issues=tuple(report.issues))
            return PipelineStage.FAILED
        return PipelineStage.DETECT

    async def _detect(self, run: AnalysisRun) -> PipelineStage:
        detections = await self._cpu(self._detector.detect_leaves, run.image)
        detection = best_detection(detections)
        if detection is None:
            run.error = NoLeafDetected()
            return PipelineStage.FAILED
        run.detection = detection
        run.crop = await self._cpu(crop, run.image, detection, self._detector.padding_fraction)
        return PipelineStage.CLASSIFY

    async def _classify(self, run: AnalysisRun) -> PipelineStage:
        result = await self._cpu(self._classifier.classify, run.crop, run.detection)
        run.classification = result
        if not result.meets_threshold(self._settings.confidence_threshold):
            if self._settings.fail_on_low_confidence:
                run.error = LowConfidence(confidence=result.confidence)
                return PipelineStage.FAILED
            logger.info(
                "Classification confidence %.3f below %.2f, marking Uncertain",
                result.confidence, self._settings.confidence_threshold,
            )
            run.uncertain = True
        return PipelineStage.CACHE_LOOKUP

    async def _cache_lookup(self, run: AnalysisRun) -> PipelineStage:
        run.fingerprint = await self._cpu(self._cache.fingerprint_of, run.image)

        while True:
            lease = self._cache.begin(run.fingerprint)
            if not lease.is_leader:
                shared = await lease.wait()
                if shared is None:
                    logger.debug("In-flight leader for %s gave up, retrying", lease.key)
                    continue
                run.report = shared
                run.from_cache = True
                self._record_cache(hit=True)
                return PipelineStage.DONE

            run.lease = lease
            hit = await self._cache.lookup_fingerprint(run.fingerprint)
            self._record_cache(hit=hit.is_hit)
            if hit.matched_entry is not None:
                run.report = hit.matched_entry.report
                run.from_cache = True
                lease.complete(run.report)
                run.lease = None
                return PipelineStage.DONE
            return PipelineStage.VALIDATE

    async def _validate(self, run: AnalysisRun) -> PipelineStage:
        classification = run.classification
        if run.uncertain:
            run.report = build_uncertain_report(
                low_confidence_reason(classification.confidence),
                model_version=self._settings.model_version,
            )
            if run.offline:
                return PipelineStage.DONE
            return PipelineStage.CACHE_STORE

        if run.offline:
            return PipelineStage.FALLBACK
        if not self._validator.is_available:
            run.warning = ValidatorUnavailable(reason="disabled")
            return PipelineStage.FALLBACK

        if self._metrics is not None:
            self._metrics.record_validator_call()
        try:
            run.report = await self._validator.validate(
                run.crop.pixels, classification.disease_class, classification.confidence
            )
        except ValidatorUnavailableError as e:
            run.warning = ValidatorUnavailable(reason=e.reason)
            log_error(run.warning, logger, context=str(e))
            return PipelineStage.FALLBACK
        return PipelineStage.CACHE_STORE

    async def _fallback(self, run: AnalysisRun) -> PipelineStage:
        run.report = build_fallback_report(
            run.classification,
            model_version=self._settings.model_version,
            confidence_threshold=self._settings.confidence_threshold,
        )
        if run.offline:
            return PipelineStage.DONE
        return PipelineStage.CACHE_STORE

    async def _cache_store(self, run: AnalysisRun) -> PipelineStage:
        await self._cache.store_fingerprint(run.fingerprint, run.report)
        if run.lease is not None:
            run.lease.complete(run.report)
            run.lease = None
        return PipelineStage.DONE

    def _record_cache(self, hit: bool) -> None:
        if self._metrics is not None:
            self._metrics.record_cache(hit)
