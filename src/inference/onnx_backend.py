# src/inference/onnx_backend.py — v1
"""ONNX Runtime backend.

Requires: pip install onnxruntime (the ``onnx`` extra).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from tomatoscan.inference.base_backend import InferenceBackend

logger = logging.getLogger(__name__)


class _OnnxModel:
    """One InferenceSession plus its first input/output names."""

    def __init__(self, ort: Any, model_path: Path, providers: list[str]) -> None:
        if not model_path.exists():
            raise FileNotFoundError(f"ONNX model not found at '{model_path}'")
        self.session = ort.InferenceSession(str(model_path), providers=providers)
        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name

    def run(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self.session.run(
            [self.output_name], {self.input_name: tensor.astype(np.float32)}
        )
        return np.asarray(outputs[0], dtype=np.float32)


class OnnxInferenceBackend(InferenceBackend):
    """Detector and classifier sessions loaded from ``.onnx`` files."""

    def __init__(
        self,
        detector_model_path: str | Path,
        classifier_model_path: str | Path | None = None,
        providers: list[str] | None = None,
    ) -> None:
        try:
            import onnxruntime as ort
        except ImportError as e:
            raise ImportError(
                "onnxruntime package required: pip install tomatoscan[onnx]"
            ) from e

        providers = providers or ["CPUExecutionProvider"]
        self._detector = _OnnxModel(ort, Path(detector_model_path), providers)
        self._classifier = (
            _OnnxModel(ort, Path(classifier_model_path), providers)
            if classifier_model_path is not None
            else None
        )
        logger.info(
            "Loaded ONNX models detector=%s classifier=%s providers=%s",
            detector_model_path, classifier_model_path, providers,
        )

    def run_detector(self, tensor: np.ndarray) -> np.ndarray:
        return self._detector.run(tensor)

    def run_classifier(self, tensor: np.ndarray) -> np.ndarray:
        if self._classifier is None:
            raise RuntimeError("No classifier model loaded; use DetectionScoreClassifier")
        output = self._classifier.run(tensor)
        return output[0] if output.ndim == 2 else output

    @property
    def backend_name(self) -> str:
        return "onnx"
