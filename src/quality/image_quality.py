# src/quality/image_quality.py — v1
"""Heuristic image-quality gate run before detection.

Starts from a score of 100 and deducts a fixed penalty per failed check.
An image passes when the final score is at least ``min_score``; individual
issues are reported but do not fail the image on their own.
"""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MIN_RESOLUTION = 200
MIN_BRIGHTNESS = 30
MAX_BRIGHTNESS = 225
MIN_CONTRAST = 20.0
MIN_SHARPNESS = 0.15
MIN_COLOR_VARIANCE = 5.0
MIN_GREEN_DOMINANCE = 0.15

_SAMPLE = 100
_COLOR_SAMPLE = 50


class ImageQualityReport(BaseModel):
    """Outcome of the quality gate."""

    is_valid: bool
    score: float = Field(ge=0.0, le=100.0)
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


def _sample(image: Image.Image, size: int) -> np.ndarray:
    resized = image.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
    return np.asarray(resized, dtype=np.int32)


def _gray(pixels: np.ndarray) -> np.ndarray:
    """Integer mean of the three channels, per pixel."""
    return pixels.sum(axis=2) // 3


def average_brightness(image: Image.Image) -> float:
    return float(_gray(_sample(image, _SAMPLE)).mean())


def contrast(image: Image.Image) -> float:
    """Standard deviation of per-pixel brightness."""
    brightness = _sample(image, _SAMPLE).sum(axis=2) / 3.0
    return float(brightness.std())


def sharpness(image: Image.Image) -> float:
    """Mean absolute right/bottom gradient on the interior, normalized to [0, 1]."""
    gray = _gray(_sample(image, _SAMPLE))
    inner = gray[1:-1, 1:-1]
    right = gray[1:-1, 2:]
    below = gray[2:, 1:-1]
    edges = np.abs(inner - right) + np.abs(inner - below)
    n = _SAMPLE - 2
    return float(edges.sum()) / (n * n * 255 * 2)


def color_variance(image: Image.Image) -> float:
    """Mean of the per-channel variances on a coarse sample."""
    pixels = _sample(image, _COLOR_SAMPLE).reshape(-1, 3).astype(np.float64)
    return float(pixels.var(axis=0).mean())


def green_dominance(image: Image.Image) -> float:
    """Fraction of well-exposed pixels whose green channel dominates."""
    pixels = _sample(image, _SAMPLE)
    r, g, b = pixels[..., 0], pixels[..., 1], pixels[..., 2]
    brightness = _gray(pixels)
    mask = (g > r) & (g > b) & (brightness >= MIN_BRIGHTNESS) & (brightness <= MAX_BRIGHTNESS)
    return float(mask.mean())


def validate_image_quality(image: Image.Image, min_score: float = 50.0) -> ImageQualityReport:
    """Score ``image`` and collect issues with matching retake suggestions."""
    issues: list[str] = []
    suggestions: list[str] = []
    score = 100.0

    width, height = image.size
    if width < MIN_RESOLUTION or height < MIN_RESOLUTION:
        issues.append(f"Image resolution too low ({width}x{height})")
        suggestions.append("Use a higher resolution camera or move closer to the leaf")
        score -= 30

    brightness = average_brightness(image)
    if brightness < MIN_BRIGHTNESS:
        issues.append(f"Image too dark (brightness: {int(brightness)})")
        suggestions.append("Increase lighting or use flash")
        score -= 25
    elif brightness > MAX_BRIGHTNESS:
        issues.append(f"Image too bright (brightness: {int(brightness)})")
        suggestions.append("Reduce lighting or avoid direct sunlight")
        score -= 25

    if contrast(image) < MIN_CONTRAST:
        issues.append("Low contrast detected")
        suggestions.append("Ensure good lighting conditions and clear background")
        score -= 20

    if sharpness(image) < MIN_SHARPNESS:
        issues.append("Image appears blurry")
        suggestions.append("Hold camera steady and ensure proper focus")
        score -= 15

    if color_variance(image) < MIN_COLOR_VARIANCE:
        issues.append("Limited color information")
        suggestions.append("Ensure proper white balance and natural lighting")
        score -= 10

    if green_dominance(image) < MIN_GREEN_DOMINANCE:
        issues.append("Image does not appear to contain a plant leaf")
        suggestions.append("Please capture an image of a tomato leaf")
        score -= 40

    report = ImageQualityReport(
        is_valid=score >= min_score,
        score=max(0.0, score),
        issues=issues,
        suggestions=suggestions,
    )
    logger.debug("Image quality score=%.0f issues=%s", report.score, issues)
    return report
