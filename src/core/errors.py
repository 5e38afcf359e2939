# src/core/errors.py — v1
"""Analysis error taxonomy and the single error-handling surface.

Every failure the pipeline reports is one of six frozen variants. User
messages, severity, suggestions and recoverability are all derived from
the variant here so no caller has to re-implement the mapping.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict


# === EXCEPTIONS RAISED INSIDE STAGES ===


class InvalidImageError(Exception):
    """Raised when input bytes cannot be decoded into a usable image."""


class ValidatorUnavailableError(Exception):
    """Raised by report validators when no validated report can be produced.

    Attributes:
        reason: Short machine-readable cause (timeout, auth, quota, network,
            disabled, parse, unknown).
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason)


# === ERROR VARIANTS ===


class _AnalysisErrorBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class NoLeafDetected(_AnalysisErrorBase):
    kind: Literal["no_leaf_detected"] = "no_leaf_detected"


class PoorImageQuality(_AnalysisErrorBase):
    kind: Literal["poor_image_quality"] = "poor_image_quality"
    issues: tuple[str, ...] = ()


class LowConfidence(_AnalysisErrorBase):
    kind: Literal["low_confidence"] = "low_confidence"
    confidence: float


class ValidatorUnavailable(_AnalysisErrorBase):
    kind: Literal["validator_unavailable"] = "validator_unavailable"
    reason: str


class InvalidImage(_AnalysisErrorBase):
    kind: Literal["invalid_image"] = "invalid_image"


class Unknown(_AnalysisErrorBase):
    kind: Literal["unknown"] = "unknown"
    message: str


AnalysisError = Union[
    NoLeafDetected,
    PoorImageQuality,
    LowConfidence,
    ValidatorUnavailable,
    InvalidImage,
    Unknown,
]


class ErrorSeverity(str, Enum):
    RECOVERABLE = "recoverable"
    WARNING = "warning"
    CRITICAL = "critical"


# === HANDLER ===


def user_message(error: AnalysisError) -> str:
    """Human-readable message shown to the end user."""
    if isinstance(error, NoLeafDetected):
        return (
            "No tomato leaf detected in the image. Please ensure the leaf is "
            "clearly visible and try again."
        )
    if isinstance(error, PoorImageQuality):
        issues = ", ".join(error.issues) if error.issues else "unspecified"
        return (
            f"Image quality is insufficient for analysis. Issues detected: "
            f"{issues}. Please capture a clearer photo with better lighting "
            f"and focus."
        )
    if isinstance(error, LowConfidence):
        return (
            f"Analysis confidence is too low ({error.confidence:.1%}). The image "
            f"may not contain a clear disease pattern. Please try with a "
            f"different angle or lighting."
        )
    if isinstance(error, ValidatorUnavailable):
        return (
            f"AI validation service is currently unavailable ({error.reason}). "
            f"Analysis will proceed with basic classification only."
        )
    if isinstance(error, InvalidImage):
        return (
            "The provided image is invalid or corrupted. Please select a valid "
            "image file."
        )
    if isinstance(error, Unknown):
        return (
            f"An unexpected error occurred during analysis: {error.message}. "
            f"Please try again."
        )
    raise TypeError(f"Not an AnalysisError variant: {type(error).__name__}")


def severity_of(error: AnalysisError) -> ErrorSeverity:
    if isinstance(error, (NoLeafDetected, PoorImageQuality, LowConfidence)):
        return ErrorSeverity.RECOVERABLE
    if isinstance(error, ValidatorUnavailable):
        return ErrorSeverity.WARNING
    if isinstance(error, (InvalidImage, Unknown)):
        return ErrorSeverity.CRITICAL
    raise TypeError(f"Not an AnalysisError variant: {type(error).__name__}")


def suggestions_for(error: AnalysisError) -> list[str]:
    """Actionable retake hints, empty when the user cannot fix the cause."""
    if isinstance(error, NoLeafDetected):
        return [
            "Center a single tomato leaf in the frame",
            "Move closer so the leaf fills most of the image",
            "Use a plain, contrasting background",
        ]
    if isinstance(error, PoorImageQuality):
        return [
            "Use natural daylight or bright, even lighting",
            "Hold the camera steady and tap to focus",
            "Avoid strong shadows and reflections",
        ]
    if isinstance(error, LowConfidence):
        return [
            "Photograph the most affected part of the leaf",
            "Try a different angle or lighting",
        ]
    if isinstance(error, InvalidImage):
        return ["Select a JPEG or PNG image file"]
    return []


def is_recoverable(error: AnalysisError) -> bool:
    """True when retrying with a better image can succeed."""
    return severity_of(error) is ErrorSeverity.RECOVERABLE


def log_error(
    error: AnalysisError,
    logger: logging.Logger | None = None,
    context: str | None = None,
) -> None:
    """Log an analysis error at the level matching its severity."""
    log = logger or logging.getLogger(__name__)
    severity = severity_of(error)
    level = {
        ErrorSeverity.RECOVERABLE: logging.INFO,
        ErrorSeverity.WARNING: logging.WARNING,
        ErrorSeverity.CRITICAL: logging.ERROR,
    }[severity]
    prefix = f"{context}: " if context else ""
    log.log(
        level,
        "%sanalysis error %s",
        prefix,
        error.kind,
        extra={"data": error.model_dump()},
    )
