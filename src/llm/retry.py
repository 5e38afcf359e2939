# src/llm/retry.py — v2
"""Bounded retry with per-attempt timeout and exponential backoff.

Only the external validator call is retried; every local stage is
deterministic and runs once.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# Error types worth another attempt. Auth and parse failures repeat identically.
RETRYABLE_ERRORS = frozenset({"timeout", "network", "quota", "server_error", "unknown"})


class LLMRetryExhausted(Exception):
    """All attempts failed or a non-retryable error occurred."""

    def __init__(self, operation: str, error_type: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{operation}' failed after {attempts} attempt(s) ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for one operation."""

    max_attempts: int = 3
    timeout_s: float = 30.0
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = False


def classify_error(error: BaseException) -> str:
    """Classify an exception into a coarse error type."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"

    msg = str(error).lower()
    name = type(error).__name__.lower()

    if "timeout" in name or "timed out" in msg or "deadline" in msg:
        return "timeout"
    if any(k in msg for k in ("401", "403", "api key", "api_key", "permission", "unauthenticated")):
        return "auth"
    if "permissiondenied" in name or "unauthenticated" in name:
        return "auth"
    if "429" in msg or "quota" in msg or "rate" in msg or "resourceexhausted" in name:
        return "quota"
    if isinstance(error, (ConnectionError, OSError)) or "connection" in msg or "network" in msg:
        return "network"
    if any(c in msg for c in ("500", "502", "503", "504", "unavailable", "server")):
        return "server_error"
    if "json" in msg or "parse" in msg or "decode" in msg:
        return "parse"
    return "unknown"


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay after a failed attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> Any:
    """Await ``fn`` with a timeout per attempt, retrying transient failures.

    Cancellation is never retried and propagates immediately.

    Raises:
        LLMRetryExhausted: If all attempts fail or the error is not retryable.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        attempts += 1
        try:
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=config.timeout_s)
        except Exception as e:
            error_type = classify_error(e)
            if error_type not in RETRYABLE_ERRORS or attempts >= config.max_attempts:
                raise LLMRetryExhausted(operation, error_type, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "'%s' — %s (attempt %d/%d), retrying in %.1fs",
                operation, error_type, attempts, config.max_attempts, delay,
            )
            await asyncio.sleep(delay)
