# tests/unit/inference/test_unit_backends.py — v1
"""Tests for inference backends — callable wrapper and ONNX session handling."""

from __future__ import annotations

import sys
import types
from types import SimpleNamespace

import numpy as np
import pytest

from tomatoscan.inference.callable_backend import CallableInferenceBackend
from tomatoscan.inference.onnx_backend import OnnxInferenceBackend


class TestCallableBackend:
    def test_delegates_and_casts(self):
        backend = CallableInferenceBackend(
            lambda t: t * 2, lambda t: [0.1, 0.9],
        )
        out = backend.run_detector(np.ones((1, 5, 2), dtype=np.float64))
        assert out.dtype == np.float32
        assert np.allclose(out, 2.0)
        assert backend.run_classifier(np.zeros(1)).tolist() == pytest.approx([0.1, 0.9])
        assert backend.backend_name == "callable"


class _FakeSession:
    def __init__(self, path, providers):
        self.path = path
        self.providers = providers

    def get_inputs(self):
        return [SimpleNamespace(name="images")]

    def get_outputs(self):
        return [SimpleNamespace(name="output0")]

    def run(self, names, feeds):
        assert names == ["output0"]
        tensor = feeds["images"]
        if self.path.endswith("classifier.onnx"):
            return [np.array([[0.2, 0.8]], dtype=np.float32)]
        return [np.zeros((1, 10, 3), dtype=np.float32) + tensor.mean()]


@pytest.fixture
def fake_ort(monkeypatch):
    module = types.ModuleType("onnxruntime")
    module.InferenceSession = _FakeSession
    monkeypatch.setitem(sys.modules, "onnxruntime", module)
    return module


class TestOnnxBackend:
    def test_missing_model_file(self, fake_ort, tmp_path):
        with pytest.raises(FileNotFoundError, match="ONNX model not found"):
            OnnxInferenceBackend(tmp_path / "missing.onnx")

    def test_runs_sessions(self, fake_ort, tmp_path):
        detector = tmp_path / "detector.onnx"
        classifier = tmp_path / "classifier.onnx"
        detector.write_bytes(b"onnx")
        classifier.write_bytes(b"onnx")

        backend = OnnxInferenceBackend(detector, classifier)
        assert backend.backend_name == "onnx"
        assert backend.run_detector(np.ones((1, 8, 8, 3))).shape == (1, 10, 3)
        assert backend.run_classifier(np.ones((1, 8, 8, 3))).tolist() == pytest.approx(
            [0.2, 0.8]
        )

    def test_classifier_optional(self, fake_ort, tmp_path):
        detector = tmp_path / "detector.onnx"
        detector.write_bytes(b"onnx")
        backend = OnnxInferenceBackend(detector)
        with pytest.raises(RuntimeError, match="No classifier model"):
            backend.run_classifier(np.ones((1, 8, 8, 3)))

    def test_missing_runtime(self, monkeypatch, tmp_path):
        monkeypatch.setitem(sys.modules, "onnxruntime", None)
        with pytest.raises(ImportError, match="tomatoscan\\[onnx\\]"):
            OnnxInferenceBackend(tmp_path / "detector.onnx")
