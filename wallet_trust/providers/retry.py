"""Retry policy for provider requests.

Exponential backoff with jitter, applied only to transient faults
(timeouts, connection errors, HTTP 429 and retryable 5xx responses).
Validation faults are never retried.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from ..core.exceptions import ProviderError, RateLimitError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Bounded exponential backoff settings."""

    max_attempts: int = 3
    initial_delay: float = 1.0   # seconds, delay before the second attempt
    backoff_factor: float = 2.0
    min_delay: float = 0.5       # floor
    max_delay: float = 10.0      # ceiling
    jitter: float = 0.1          # +/- fraction of the base delay

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.min_delay > self.max_delay:
            raise ValueError("min_delay must not exceed max_delay")


DEFAULT_RETRY_CONFIG = RetryConfig()


def is_retryable_error(error: BaseException) -> bool:
    """Whether an error is a transient fault worth retrying."""
    if isinstance(error, ValidationError):
        return False
    if isinstance(error, ProviderError):
        return error.retryable
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return True
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return False


def calculate_backoff_delay(
    attempt: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay before retrying after the given (1-based) failed attempt.

    Formula: initial_delay * backoff_factor ** (attempt - 1), with jitter,
    clamped to [min_delay, max_delay].
    """
    base = config.initial_delay * (config.backoff_factor ** (attempt - 1))
    jitter = base * config.jitter * (rng() * 2 - 1)
    return max(config.min_delay, min(base + jitter, config.max_delay))


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    should_retry: Callable[[BaseException], bool] | None = None,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
    label: str = "request",
) -> T:
    """
    Execute an async callable, retrying transient failures.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt
        config: Retry configuration
        should_retry: Predicate overriding is_retryable_error
        on_retry: Callback invoked with (attempt, error, delay) before sleeping
        label: Name used in log messages

    Returns:
        The first successful result

    Raises:
        The last error once attempts are exhausted or the error is not retryable
    """
    predicate = should_retry or is_retryable_error

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if attempt >= config.max_attempts or not predicate(e):
                raise

            delay = calculate_backoff_delay(attempt, config)
            if isinstance(e, RateLimitError) and e.retry_after_seconds:
                delay = max(delay, min(float(e.retry_after_seconds), config.max_delay))

            logger.warning(
                f"{label} attempt {attempt}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s"
            )
            if on_retry:
                on_retry(attempt, e, delay)
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{label}: retry loop exited without a result")
