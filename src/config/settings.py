# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for every tunable of the diagnosis pipeline:
detector thresholds, hash and cache policy, validator generation
parameters and logging.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === DETECTION ===
    detector_model_path: Path | None = None
    yolo_input_size: int = 640
    detection_confidence_threshold: float = 0.6
    nms_iou_threshold: float = 0.45
    crop_padding_fraction: float = 0.1

    # === CLASSIFICATION ===
    classifier_model_path: Path | None = None
    classifier_input_size: int = 512
    tensor_layout: Literal["nhwc", "nchw"] = "nhwc"
    confidence_threshold: float = 0.5
    # Detector/classifier output index order.
    class_labels: str = (
        "Bacterial Speck,Early Blight,Late Blight,Leaf Mold,Septoria Leaf Spot,Healthy"
    )

    # === PERCEPTUAL HASH ===
    phash_size: int = 8
    hash_similarity_threshold: float = 0.95

    # === CACHE ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "sqlite", "json"] = "memory"
    cache_root: Path = Path("~/.tomatoscan/cache")
    cache_ttl_days: float = 7.0
    max_cache_size: int = 100
    cache_cleanup_interval_hours: float = 24.0

    # === EXTERNAL VALIDATOR ===
    validator_enabled: bool = True
    validator_provider: str = "google"
    validator_model: str = "gemini-1.5-flash"
    google_api_key: str = ""
    validator_temperature: float = 0.0
    validator_top_p: float = 0.1
    validator_top_k: int = 1
    validator_max_output_tokens: int = 1024
    validator_timeout_s: float = 30.0
    validator_max_retries: int = 3
    validator_backoff_base_s: float = 1.0
    validator_backoff_factor: float = 2.0

    # === PIPELINE ===
    quality_check_enabled: bool = True
    min_quality_score: float = 50.0
    fail_on_low_confidence: bool = False
    worker_pool_size: int = 0
    model_version: str = "1.0.0"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "detection_confidence_threshold",
        "nms_iou_threshold",
        "confidence_threshold",
        "hash_similarity_threshold",
        "validator_top_p",
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        """Probabilities and ratios must lie in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("value must be within [0, 1]")
        return v

    @field_validator("crop_padding_fraction")
    @classmethod
    def validate_padding(cls, v: float) -> float:
        if v < 0.0:
            raise ValueError("crop_padding_fraction must be >= 0")
        return v

    @field_validator("phash_size")
    @classmethod
    def validate_phash_size(cls, v: int) -> int:
        """Hash grid must be even so the low-frequency block is S/2 x S/2."""
        if v < 4 or v % 2:
            raise ValueError("phash_size must be an even integer >= 4")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.max_cache_size < 1:
            errors.append("MAX_CACHE_SIZE must be >= 1")

        if self.cache_ttl_days <= 0:
            errors.append("CACHE_TTL_DAYS must be > 0")

        if self.validator_max_retries < 1:
            errors.append("VALIDATOR_MAX_RETRIES must be >= 1")

        if self.validator_timeout_s <= 0:
            errors.append("VALIDATOR_TIMEOUT_S must be > 0")

        if self.yolo_input_size < 32 or self.classifier_input_size < 32:
            errors.append("model input sizes must be >= 32")

        if not self.class_labels_list:
            errors.append("CLASS_LABELS must list at least one label")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def class_labels_list(self) -> list[str]:
        """Parse comma-separated class labels in model output order."""
        return [c.strip() for c in self.class_labels.split(",") if c.strip()]

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_days * 86400.0

    @property
    def effective_worker_pool_size(self) -> int:
        """Worker pool size, defaulting to the number of available cores."""
        if self.worker_pool_size > 0:
            return self.worker_pool_size
        return os.cpu_count() or 1

    @property
    def validator_configured(self) -> bool:
        """True when the validator is enabled and has credentials."""
        key = self.google_api_key.strip()
        return (
            self.validator_enabled
            and bool(key)
            and key not in {"YOUR_API_KEY_HERE", "PLACEHOLDER"}
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
