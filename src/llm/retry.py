# src/llm/retry.py — v1
"""Transport retry policy with exponential backoff.

Off by default (``transport_max_retries=0``): the coordinator never retries,
so any retrying happens here, below the generation call.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from tabautocomplete.llm.base_client import TransportError
from tabautocomplete.pipeline.cancellation import OperationCancelled

logger = logging.getLogger(__name__)


class TransportRetryExhausted(TransportError):
    """All retries exhausted for a transport call."""

    def __init__(self, operation: str, error_type: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{operation}' failed after {attempts} attempts ({error_type}): {last_error}",
            status_code=getattr(last_error, "status_code", None),
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific error type."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=3, base_delay_s=1.0),
    "timeout": RetryConfig(max_retries=2, base_delay_s=0.5, backoff_factor=1.0),
    "server_error": RetryConfig(max_retries=2, base_delay_s=1.0),
    "connection": RetryConfig(max_retries=2, base_delay_s=0.5),
}


def classify_error(error: Exception) -> str:
    """Classify a transport exception into a retry error type."""
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    status = getattr(error, "status_code", None)
    if status == 429:
        return "rate_limit"
    if isinstance(status, int) and 500 <= status < 600:
        return "server_error"
    if isinstance(error, httpx.TransportError):
        return "connection"
    name = type(error).__name__.lower()
    if "timeout" in name:
        return "timeout"
    if "connection" in name:
        return "connection"
    return "unknown"


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "generate",
    max_retries: int = 0,
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async transport call with retry logic.

    The per-type budget is capped by ``max_retries``. Cancellation is never
    retried.

    Raises:
        TransportRetryExhausted: If all retries are exhausted.
    """
    configs = retry_configs or DEFAULT_RETRY_CONFIGS
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except OperationCancelled:
            raise
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)
            budget = 0 if config is None else min(config.max_retries, max_retries)

            if attempts > budget:
                raise TransportRetryExhausted(operation, error_type, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs",
                operation, error_type, attempts, budget, delay,
            )
            await asyncio.sleep(delay)
