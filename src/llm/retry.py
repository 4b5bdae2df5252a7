# src/llm/retry.py — v2
"""Backend-level retry with exponential backoff.

Only transient failures (rate limiting, timeouts, 5xx) are retried; every
other error propagates on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMRetryExhausted(Exception):
    """All retries exhausted for a backend call."""

    def __init__(self, provider: str, error_type: str, attempts: int, last_error: Exception):
        self.provider = provider
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{provider} failed after {attempts} attempts ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for one class of transient error."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=3, base_delay_s=2.0),
    "timeout": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "server_error": RetryConfig(max_retries=3, base_delay_s=5.0),
}


def classify_error(error: Exception) -> str:
    """Classify an adapter exception.

    SDK errors expose ``status_code``; anything else is classified from the
    exception name and message.
    """
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        if status == 429:
            return "rate_limit"
        if status == 408:
            return "timeout"
        if status >= 500:
            return "server_error"
        return "client_error"

    msg = str(error).lower()
    name = type(error).__name__.lower()
    if "ratelimit" in name or "429" in msg or "rate limit" in msg:
        return "rate_limit"
    if "timeout" in name or "timed out" in msg or "timeout" in msg:
        return "timeout"
    if any(code in msg for code in ("500", "502", "503", "504")):
        return "server_error"
    return "unknown"


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before retry ``attempt`` (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    provider: str = "unknown",
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Raises:
        LLMRetryExhausted: The error is not retryable or retries ran out.
    """
    configs = retry_configs if retry_configs is not None else DEFAULT_RETRY_CONFIGS
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)

            if config is None or attempts > config.max_retries:
                raise LLMRetryExhausted(provider, error_type, attempts, e) from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                provider, error_type, attempts, config.max_retries, delay,
            )
            await asyncio.sleep(delay)
