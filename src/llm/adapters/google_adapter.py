# src/llm/adapters/google_adapter.py — v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses google-generativeai SDK. Supports vision via Gemini Vision.
"""

from __future__ import annotations

import time
from typing import Any

from tomatoscan.llm.base_client import BaseLLMClient
from tomatoscan.llm.models import GenerationConfig, ImageInput, LLMResponse, Message


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(self, model: str = "gemini-1.5-flash", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        generation_config: GenerationConfig | None = None,
    ) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model, system_instruction=system)

        parts: list[dict[str, Any]] = []
        for m in messages:
            parts.append({"text": m.content})
        for img in images:
            parts.append({"inline_data": {"mime_type": img.media_type, "data": img.data}})

        config = generation_config or GenerationConfig()
        t0 = time.monotonic()
        resp = await model.generate_content_async(
            parts, generation_config=config.as_provider_dict(),
        )
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=resp.text or "",
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"
