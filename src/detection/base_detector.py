# src/detection/base_detector.py — v1
"""Abstract leaf detector interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from PIL import Image

from tomatoscan.core.models import Crop, Detection
from tomatoscan.detection.cropper import crop
from tomatoscan.detection.nms import best_detection


class LeafDetector(ABC):
    """Locates tomato leaves in a full-resolution image.

    Methods are synchronous and CPU-bound; the pipeline runs them on its
    worker pool.
    """

    padding_fraction: float = 0.1

    @abstractmethod
    def detect_leaves(self, image: Image.Image) -> list[Detection]:
        """All post-NMS detections, highest confidence first."""

    @property
    @abstractmethod
    def confidence_threshold(self) -> float:
        """Minimum detection score kept by decoding."""

    def detect_best(self, image: Image.Image) -> Detection | None:
        return best_detection(self.detect_leaves(image))

    def crop_leaf(self, image: Image.Image) -> Crop | None:
        """Padded crop of the best detection, or None when no leaf is found."""
        detection = self.detect_best(image)
        if detection is None:
            return None
        return crop(image, detection, self.padding_fraction)
