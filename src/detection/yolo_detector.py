# src/detection/yolo_detector.py — v1
"""YOLO-style leaf detector running on an InferenceBackend."""

from __future__ import annotations

import logging

from PIL import Image

from tomatoscan.config.settings import Settings
from tomatoscan.core.images import TensorLayout, to_input_tensor
from tomatoscan.core.models import Detection
from tomatoscan.detection.base_detector import LeafDetector
from tomatoscan.detection.decoder import decode
from tomatoscan.detection.nms import non_max_suppress
from tomatoscan.inference.base_backend import InferenceBackend

logger = logging.getLogger(__name__)


class YoloLeafDetector(LeafDetector):
    """Resize → run detector → decode → NMS."""

    def __init__(
        self,
        backend: InferenceBackend,
        input_size: int = 640,
        confidence_threshold: float = 0.6,
        iou_threshold: float = 0.45,
        padding_fraction: float = 0.1,
        layout: TensorLayout = "nhwc",
    ) -> None:
        self._backend = backend
        self._input_size = input_size
        self._confidence_threshold = confidence_threshold
        self._iou_threshold = iou_threshold
        self.padding_fraction = padding_fraction
        self._layout = layout

    @classmethod
    def from_settings(cls, backend: InferenceBackend, settings: Settings) -> YoloLeafDetector:
        return cls(
            backend,
            input_size=settings.yolo_input_size,
            confidence_threshold=settings.detection_confidence_threshold,
            iou_threshold=settings.nms_iou_threshold,
            padding_fraction=settings.crop_padding_fraction,
            layout=settings.tensor_layout,
        )

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    def detect_leaves(self, image: Image.Image) -> list[Detection]:
        tensor = to_input_tensor(image, self._input_size, self._layout)
        raw = self._backend.run_detector(tensor)
        candidates = decode(raw, self._confidence_threshold)
        kept = non_max_suppress(candidates, self._iou_threshold)
        logger.debug("Detection: %d candidates, %d after NMS", len(candidates), len(kept))
        return kept
