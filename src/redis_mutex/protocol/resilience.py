"""Retry helpers for establishing the coordinator connection.

Only the initial connect is ever retried. Once a session exists, failures
are fatal (see ``redis_mutex.protocol.session``).
"""

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

from redis_mutex.core.constants import CONNECT_RETRY_DELAY_SECONDS

T = TypeVar("T")

# Exceptions that should trigger a retry (transient network errors)
RETRYABLE_EXCEPTIONS: tuple[type, ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
)


def retry_with_backoff(
    max_attempts: int,
    base_delay: float = CONNECT_RETRY_DELAY_SECONDS,
    max_delay: float = 30.0,
    exponential_base: float = 2,
    jitter: bool = False,
    retryable_exceptions: tuple[type, ...] = RETRYABLE_EXCEPTIONS,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries a callable on transient errors.

    Args:
        max_attempts: Total attempts including the first one
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        exponential_base: Delay multiplier per attempt; 1 gives a fixed pause
        jitter: Add randomization to delays (default: False)
        retryable_exceptions: Exception types to retry (default: network errors)
        logger: Logger instance for retry messages
        sleep: Sleep function, injectable for tests (default: time.sleep)

    Returns:
        Decorated function with retry capability. The last exception is
        re-raised once attempts are exhausted.

    Backoff Formula:
        delay = min(base_delay * (exponential_base ** attempt), max_delay)
        if jitter: delay = delay * random.uniform(0.5, 1.5)
    """
    attempts = max(1, max_attempts)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            _logger = logger or logging.getLogger(__name__)
            _sleep = sleep or time.sleep

            for attempt in range(attempts):
                try:
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        _logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}/{attempts}")
                    return result
                except retryable_exceptions as e:
                    if attempt == attempts - 1:
                        _logger.error(f"All {attempts} attempts failed for {func.__name__}: {e!s}")
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay = delay * random.uniform(0.5, 1.5)

                    _logger.warning(
                        f"{func.__name__} attempt {attempt + 1}/{attempts} failed: {e!s}. Retrying in {delay:.1f}s..."
                    )
                    _sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
