# src/core/models.py — v2
"""Shared domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from PIL import Image


# === DISEASE TAXONOMY ===


class DiseaseClass(str, Enum):
    """Every label a diagnosis can carry; the value is the display name."""

    EARLY_BLIGHT = "Early Blight"
    LATE_BLIGHT = "Late Blight"
    LEAF_MOLD = "Leaf Mold"
    SEPTORIA_LEAF_SPOT = "Septoria Leaf Spot"
    BACTERIAL_SPECK = "Bacterial Speck"
    HEALTHY = "Healthy"
    UNCERTAIN = "Uncertain"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, display_name: str) -> DiseaseClass:
        """Case-insensitive lookup by display name, UNCERTAIN when unknown."""
        wanted = display_name.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return cls.UNCERTAIN

    @classmethod
    def from_string(cls, name: str) -> DiseaseClass:
        """Lookup by enum member name (``early_blight``), UNCERTAIN when unknown."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.UNCERTAIN


# === GEOMETRY ===


class NormalizedRect(BaseModel):
    """Axis-aligned box in normalized [0, 1] image coordinates."""

    model_config = ConfigDict(frozen=True)

    left: float = Field(ge=0.0, le=1.0)
    top: float = Field(ge=0.0, le=1.0)
    right: float = Field(ge=0.0, le=1.0)
    bottom: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self) -> NormalizedRect:
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(
                f"degenerate rect: left={self.left} right={self.right} "
                f"top={self.top} bottom={self.bottom}"
            )
        return self

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class PixelRect:
    """Pixel-space rectangle; ``right`` and ``bottom`` are exclusive bounds."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_box(self) -> tuple[int, int, int, int]:
        """Return the (left, top, right, bottom) tuple Pillow's crop() expects."""
        return (self.left, self.top, self.right, self.bottom)


# === DETECTION / CLASSIFICATION ===


class Detection(BaseModel):
    """One detector proposal that survived confidence filtering."""

    model_config = ConfigDict(frozen=True)

    box: NormalizedRect
    confidence: float = Field(ge=0.0, le=1.0)
    class_index: int = 0
    class_scores: dict[int, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _confidence_is_best_score(self) -> Detection:
        if self.class_scores:
            best = max(self.class_scores.values())
            if abs(best - self.confidence) > 1e-6:
                raise ValueError(
                    f"confidence {self.confidence} is not the max class score {best}"
                )
        return self


@dataclass(frozen=True)
class Crop:
    """Padded leaf region cut from the original, full-resolution image.

    ``fallback`` records which recovery path produced the pixels when the
    padded rectangle was degenerate: ``"unpadded"`` or ``"full_image"``.
    """

    source_rect: PixelRect
    padded_rect: PixelRect
    pixels: Image.Image
    fallback: Literal["unpadded", "full_image"] | None = None


class ClassificationResult(BaseModel):
    """Preliminary disease prediction for a cropped leaf."""

    model_config = ConfigDict(frozen=True)

    disease_class: DiseaseClass
    confidence: float = Field(ge=0.0, le=1.0)
    all_probabilities: dict[DiseaseClass, float] = Field(default_factory=dict)

    def meets_threshold(self, threshold: float) -> bool:
        return self.confidence >= threshold


# === REPORT ===


class DiagnosticReport(BaseModel):
    """Formal diagnostic report. Immutable once constructed.

    ``source`` tells consumers whether the text was confirmed by the
    external validator, synthesized from the local classification
    (``fallback``) or is the fixed Uncertain template.
    """

    model_config = ConfigDict(frozen=True)

    disease_name: str
    observed_symptoms: str
    confidence_level: str
    management_recommendation: str
    full_report: str
    is_uncertain: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model_version: str = "1.0.0"
    source: Literal["validator", "fallback", "uncertain"] = "validator"

    @property
    def is_preliminary(self) -> bool:
        """True when the report was not confirmed by the external validator."""
        return self.source != "validator"
