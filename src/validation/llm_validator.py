# src/validation/llm_validator.py — v1
"""Report validator backed by a vision LLM."""

from __future__ import annotations

import io
import logging

from PIL import Image

from tomatoscan.config.settings import Settings
from tomatoscan.core.errors import ValidatorUnavailableError
from tomatoscan.core.models import DiagnosticReport, DiseaseClass
from tomatoscan.llm.base_client import BaseLLMClient
from tomatoscan.llm.models import GenerationConfig, ImageInput, Message
from tomatoscan.llm.retry import LLMRetryExhausted, RetryConfig, with_retry
from tomatoscan.validation.base_validator import ReportValidator
from tomatoscan.validation.prompts import SYSTEM_PROMPT, build_report_prompt
from tomatoscan.validation.report_parser import ReportParseError, parse_report

logger = logging.getLogger(__name__)


def encode_jpeg(image: Image.Image, quality: int = 90) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class LLMReportValidator(ReportValidator):
    """Sends the crop and preliminary label to an LLM and parses its report.

    Args:
        client: LLM client; None disables the validator.
        generation_config: Default sampling parameters.
        retry_config: Attempts, per-attempt timeout and backoff.
        model_version: Stamped on produced reports.
    """

    def __init__(
        self,
        client: BaseLLMClient | None,
        generation_config: GenerationConfig | None = None,
        retry_config: RetryConfig | None = None,
        model_version: str = "1.0.0",
    ) -> None:
        self._client = client
        self._generation_config = generation_config or GenerationConfig()
        self._retry_config = retry_config or RetryConfig()
        self._model_version = model_version

    @classmethod
    def from_settings(
        cls, settings: Settings, client: BaseLLMClient | None = None
    ) -> LLMReportValidator:
        if client is None and settings.validator_configured:
            from tomatoscan.llm.client_factory import create_llm_client
            client = create_llm_client(
                settings.validator_provider, settings.validator_model, settings
            )
        elif not settings.validator_enabled:
            client = None
        return cls(
            client,
            generation_config=GenerationConfig(
                temperature=settings.validator_temperature,
                top_p=settings.validator_top_p,
                top_k=settings.validator_top_k,
                max_output_tokens=settings.validator_max_output_tokens,
            ),
            retry_config=RetryConfig(
                max_attempts=settings.validator_max_retries,
                timeout_s=settings.validator_timeout_s,
                base_delay_s=settings.validator_backoff_base_s,
                backoff_factor=settings.validator_backoff_factor,
            ),
            model_version=settings.model_version,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def validate(
        self,
        image: Image.Image,
        label: DiseaseClass,
        confidence: float,
        generation_config: GenerationConfig | None = None,
    ) -> DiagnosticReport:
        if self._client is None:
            raise ValidatorUnavailableError("disabled", "validator is not configured")

        messages = [Message(role="user", content=build_report_prompt(label, confidence))]
        images = [ImageInput(data=encode_jpeg(image), media_type="image/jpeg")]

        try:
            response = await with_retry(
                self._client.complete_with_vision,
                messages,
                images,
                system=SYSTEM_PROMPT,
                generation_config=generation_config or self._generation_config,
                operation="report_validator",
                config=self._retry_config,
            )
        except LLMRetryExhausted as e:
            raise ValidatorUnavailableError(e.error_type, str(e)) from e

        try:
            report = parse_report(response.content, label, self._model_version)
        except ReportParseError as e:
            raise ValidatorUnavailableError("parse", str(e)) from e

        logger.info(
            "Validator confirmed report: %s (%d ms)",
            report.disease_name, response.latency_ms,
        )
        return report
