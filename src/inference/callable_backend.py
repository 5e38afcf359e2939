# src/inference/callable_backend.py — v1
"""Backend wrapping plain Python callables.

Used to embed models from other runtimes and to drive the pipeline with
fixed tensors in tests.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from tomatoscan.inference.base_backend import InferenceBackend

TensorFn = Callable[[np.ndarray], np.ndarray]


class CallableInferenceBackend(InferenceBackend):
    """Delegates each model call to a user-supplied function."""

    def __init__(self, detector_fn: TensorFn, classifier_fn: TensorFn) -> None:
        self._detector_fn = detector_fn
        self._classifier_fn = classifier_fn

    def run_detector(self, tensor: np.ndarray) -> np.ndarray:
        return np.asarray(self._detector_fn(tensor), dtype=np.float32)

    def run_classifier(self, tensor: np.ndarray) -> np.ndarray:
        return np.asarray(self._classifier_fn(tensor), dtype=np.float32)

    @property
    def backend_name(self) -> str:
        return "callable"
