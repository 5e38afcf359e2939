# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides synthetic leaf photos, fixed-tensor inference backends, fake LLM
clients and fake report validators. No model files or network access.
"""

from __future__ import annotations

import asyncio
import io
from datetime import datetime, timedelta, timezone
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from tomatoscan.config.settings import Settings
from tomatoscan.core.errors import ValidatorUnavailableError
from tomatoscan.core.models import DiagnosticReport, DiseaseClass
from tomatoscan.inference.callable_backend import CallableInferenceBackend
from tomatoscan.llm.base_client import BaseLLMClient
from tomatoscan.llm.models import GenerationConfig, ImageInput, LLMResponse, Message
from tomatoscan.validation.base_validator import ReportValidator

# Detector output order used by every fixture backend.
NUM_CLASSES = 6
HEALTHY_INDEX = 5

HEALTHY_REPORT_TEXT = (
    "Based on the image analysis, the tomato leaf is identified as **Healthy**. "
    "The leaf shows uniform green coloration with no visible lesions or spots. "
    "High confidence in this diagnosis based on the absence of symptoms. "
    "Continue regular monitoring and apply balanced fertilization."
)


# === FIXTURES: Images ===


def _green_leaf(seed: int, size: int = 400) -> Image.Image:
    rng = np.random.default_rng(seed)
    green = rng.integers(20, 256, (size, size)).astype(np.float64)
    pixels = np.stack([green * 0.4, green, green * 0.4], axis=-1)
    return Image.fromarray(pixels.astype(np.uint8), "RGB")


@pytest.fixture
def make_leaf_image() -> Callable[..., Image.Image]:
    """Factory for green noise photos that pass the quality gate."""
    return _green_leaf


@pytest.fixture
def leaf_image() -> Image.Image:
    return _green_leaf(seed=7)


@pytest.fixture
def leaf_jpeg(leaf_image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    leaf_image.save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


@pytest.fixture
def dark_image() -> Image.Image:
    return Image.new("RGB", (300, 300), (0, 0, 0))


# === FIXTURES: Inference ===


def detector_tensor(
    boxes: list[tuple[float, float, float, float]],
    scores: list[float],
    class_indices: list[int] | None = None,
    num_classes: int = NUM_CLASSES,
) -> np.ndarray:
    """Build a ``[1][4 + K][N]`` detector output, one column per box."""
    class_indices = class_indices or [0] * len(boxes)
    out = np.zeros((1, 4 + num_classes, len(boxes)), dtype=np.float32)
    for col, (box, score, cls) in enumerate(zip(boxes, scores, class_indices)):
        out[0, :4, col] = box
        out[0, 4 + cls, col] = score
    return out


@pytest.fixture
def tensor_factory() -> Callable[..., np.ndarray]:
    return detector_tensor


@pytest.fixture
def make_backend() -> Callable[..., CallableInferenceBackend]:
    """Factory for a backend returning fixed detector and classifier tensors."""

    def _make(
        boxes: list[tuple[float, float, float, float]] | None = None,
        scores: list[float] | None = None,
        probabilities: list[float] | None = None,
    ) -> CallableInferenceBackend:
        det = detector_tensor(
            boxes if boxes is not None else [(0.1, 0.1, 0.5, 0.5), (0.6, 0.6, 0.9, 0.9)],
            scores if scores is not None else [0.8, 0.3],
        )
        probs = np.asarray(
            [probabilities if probabilities is not None else [0.02] * 5 + [0.9]],
            dtype=np.float32,
        )
        return CallableInferenceBackend(lambda _t: det, lambda _t: probs)

    return _make


# === FIXTURES: Settings ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from .env with instant retries."""
    return Settings(
        _env_file=None,
        cache_backend="memory",
        cache_root=tmp_path / "cache",
        google_api_key="",
        validator_backoff_base_s=0.0,
        validator_timeout_s=5.0,
        worker_pool_size=2,
    )


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# === FIXTURES: Reports ===


def make_report(disease: str = "Healthy", source: str = "validator") -> DiagnosticReport:
    return DiagnosticReport(
        disease_name=disease,
        observed_symptoms="Uniform green coloration.",
        confidence_level="High confidence.",
        management_recommendation="Continue regular monitoring.",
        full_report=f"The tomato leaf is identified as **{disease}**.",
        source=source,  # type: ignore[arg-type]
    )


@pytest.fixture
def sample_report() -> DiagnosticReport:
    return make_report()


@pytest.fixture
def report_factory() -> Callable[..., DiagnosticReport]:
    return make_report


# === FIXTURES: LLM ===


class FakeLLMClient(BaseLLMClient):
    """Returns queued outcomes in order; exceptions in the queue are raised."""

    def __init__(self, outcomes: list[str | BaseException] | None = None) -> None:
        self.outcomes = list(outcomes or [HEALTHY_REPORT_TEXT])
        self.calls: list[dict] = []

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        generation_config: GenerationConfig | None = None,
    ) -> LLMResponse:
        self.calls.append(
            {
                "messages": messages,
                "images": images,
                "system": system,
                "generation_config": generation_config,
            }
        )
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return LLMResponse(
            content=outcome, model="fake-vision", provider="fake", latency_ms=5
        )

    @property
    def provider_name(self) -> str:
        return "fake"


@pytest.fixture
def fake_llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def llm_client_factory() -> type[FakeLLMClient]:
    return FakeLLMClient


# === FIXTURES: Validators ===


class FakeValidator(ReportValidator):
    """Counts calls and returns a fixed report for the requested label.

    With ``gate`` set, each call waits for the event before answering.
    ``error`` is raised instead of answering when given.
    """

    def __init__(
        self,
        gate: asyncio.Event | None = None,
        error: ValidatorUnavailableError | None = None,
        available: bool = True,
    ) -> None:
        self.calls = 0
        self.gate = gate
        self.error = error
        self._available = available

    @property
    def is_available(self) -> bool:
        return self._available

    async def validate(
        self,
        image: Image.Image,
        label: DiseaseClass,
        confidence: float,
        generation_config: GenerationConfig | None = None,
    ) -> DiagnosticReport:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return make_report(label.display_name)


@pytest.fixture
def validator_factory() -> type[FakeValidator]:
    return FakeValidator
