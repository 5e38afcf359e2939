# src/llm/models.py — v2
"""LLM-specific types: Message, ImageInput, GenerationConfig, LLMResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class ImageInput(BaseModel):
    """Image payload for vision-enabled completions."""

    data: bytes
    media_type: str = "image/jpeg"
    source_id: str | None = None


class GenerationConfig(BaseModel):
    """Sampling parameters. Defaults are fully deterministic decoding."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.0, ge=0.0)
    top_p: float = Field(default=0.1, ge=0.0, le=1.0)
    top_k: int = Field(default=1, ge=1)
    max_output_tokens: int = Field(default=1024, ge=1)

    def as_provider_dict(self) -> dict[str, Any]:
        return self.model_dump()


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None
