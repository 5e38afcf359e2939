# src/classification/model_classifier.py — v1
"""Classifiers backed by a numeric model or by the detector's class scores."""

from __future__ import annotations

import logging
from typing import Sequence

from tomatoscan.classification.base_classifier import (
    DEFAULT_CLASS_ORDER,
    DiseaseClassifier,
    labels_to_classes,
    probabilities_to_result,
)
from tomatoscan.config.settings import Settings
from tomatoscan.core.images import TensorLayout, to_input_tensor
from tomatoscan.core.models import ClassificationResult, Crop, Detection, DiseaseClass
from tomatoscan.inference.base_backend import InferenceBackend

logger = logging.getLogger(__name__)


class ModelDiseaseClassifier(DiseaseClassifier):
    """Runs the crop through the backend's classifier model."""

    def __init__(
        self,
        backend: InferenceBackend,
        input_size: int = 512,
        class_order: Sequence[DiseaseClass] = DEFAULT_CLASS_ORDER,
        layout: TensorLayout = "nhwc",
    ) -> None:
        self._backend = backend
        self._input_size = input_size
        self._class_order = tuple(class_order)
        self._layout = layout

    @classmethod
    def from_settings(cls, backend: InferenceBackend, settings: Settings) -> ModelDiseaseClassifier:
        return cls(
            backend,
            input_size=settings.classifier_input_size,
            class_order=labels_to_classes(settings.class_labels_list),
            layout=settings.tensor_layout,
        )

    @property
    def supported_classes(self) -> tuple[DiseaseClass, ...]:
        return self._class_order

    def classify(self, crop: Crop, detection: Detection) -> ClassificationResult:
        tensor = to_input_tensor(crop.pixels, self._input_size, self._layout)
        probabilities = self._backend.run_classifier(tensor)
        result = probabilities_to_result(probabilities, self._class_order)
        logger.debug(
            "Classified crop as %s (%.3f)", result.disease_class.value, result.confidence
        )
        return result


class DetectionScoreClassifier(DiseaseClassifier):
    """Uses the class scores a combined detector already produced.

    For single-model deployments where the detector head is trained on the
    disease classes directly.
    """

    def __init__(self, class_order: Sequence[DiseaseClass] = DEFAULT_CLASS_ORDER) -> None:
        self._class_order = tuple(class_order)

    @property
    def supported_classes(self) -> tuple[DiseaseClass, ...]:
        return self._class_order

    def classify(self, crop: Crop, detection: Detection) -> ClassificationResult:
        if not detection.class_scores:
            return ClassificationResult(disease_class=DiseaseClass.UNCERTAIN, confidence=0.0)
        size = max(detection.class_scores) + 1
        vector = [detection.class_scores.get(i, 0.0) for i in range(size)]
        return probabilities_to_result(vector, self._class_order)
