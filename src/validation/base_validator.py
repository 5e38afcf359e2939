# src/validation/base_validator.py — v1
"""Abstract external report validator."""

from __future__ import annotations

from abc import ABC, abstractmethod

from PIL import Image

from tomatoscan.core.models import DiagnosticReport, DiseaseClass
from tomatoscan.llm.models import GenerationConfig


class ReportValidator(ABC):
    """Confirms a preliminary classification and writes the formal report.

    ``validate`` is the pipeline's only network-bound suspension point.
    """

    @abstractmethod
    async def validate(
        self,
        image: Image.Image,
        label: DiseaseClass,
        confidence: float,
        generation_config: GenerationConfig | None = None,
    ) -> DiagnosticReport:
        """Return a validated report.

        Raises:
            ValidatorUnavailableError: When no validated report can be produced.
        """

    @property
    def is_available(self) -> bool:
        """False when the validator is known to be disabled."""
        return True
