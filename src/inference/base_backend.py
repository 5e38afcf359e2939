# src/inference/base_backend.py — v1
"""Abstract tensor-runtime interface consumed by detectors and classifiers."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class InferenceBackend(ABC):
    """Opaque numeric models behind a fixed-size tensor contract.

    Implementations must be safe to call from worker threads.
    """

    @abstractmethod
    def run_detector(self, tensor: np.ndarray) -> np.ndarray:
        """Run the leaf detector.

        Args:
            tensor: Preprocessed image, batch of one.

        Returns:
            Raw detection tensor shaped ``[1][4 + K][N]``.
        """

    @abstractmethod
    def run_classifier(self, tensor: np.ndarray) -> np.ndarray:
        """Run the disease classifier and return per-class probabilities."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Runtime identifier (onnx, callable)."""
