# src/classification/base_classifier.py — v1
"""Abstract disease classifier and the shared probability → result mapping."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from tomatoscan.core.models import ClassificationResult, Crop, Detection, DiseaseClass

DEFAULT_CLASS_ORDER: tuple[DiseaseClass, ...] = (
    DiseaseClass.BACTERIAL_SPECK,
    DiseaseClass.EARLY_BLIGHT,
    DiseaseClass.LATE_BLIGHT,
    DiseaseClass.LEAF_MOLD,
    DiseaseClass.SEPTORIA_LEAF_SPOT,
    DiseaseClass.HEALTHY,
)


def labels_to_classes(labels: Sequence[str]) -> tuple[DiseaseClass, ...]:
    """Map model output labels (display names) to DiseaseClass, in order."""
    return tuple(DiseaseClass.from_display_name(label) for label in labels)


def probabilities_to_result(
    probabilities: Sequence[float] | np.ndarray,
    class_order: Sequence[DiseaseClass] = DEFAULT_CLASS_ORDER,
) -> ClassificationResult:
    """Arg-max over per-class probabilities.

    Indices beyond ``class_order`` are ignored; the first maximum wins
    ties. An empty vector yields UNCERTAIN with zero confidence.
    """
    probs = np.clip(np.asarray(probabilities, dtype=np.float64).ravel(), 0.0, 1.0)
    usable = probs[: len(class_order)]
    if usable.size == 0:
        return ClassificationResult(disease_class=DiseaseClass.UNCERTAIN, confidence=0.0)

    best = int(np.argmax(usable))
    all_probabilities = {class_order[i]: float(p) for i, p in enumerate(usable)}
    return ClassificationResult(
        disease_class=class_order[best],
        confidence=float(usable[best]),
        all_probabilities=all_probabilities,
    )


class DiseaseClassifier(ABC):
    """Predicts the disease shown in a cropped leaf."""

    @abstractmethod
    def classify(self, crop: Crop, detection: Detection) -> ClassificationResult:
        """Classify ``crop``; ``detection`` is the box it was cut from."""

    @property
    @abstractmethod
    def supported_classes(self) -> tuple[DiseaseClass, ...]:
        """Classes in model output order."""
