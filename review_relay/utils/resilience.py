"""
Resilience utilities for outbound calls.

This module provides:
- retry_with_backoff decorator for transient errors
- backoff_delay helper shared by the decorator and its callers
"""

import asyncio
import inspect
import logging
import time
from functools import wraps
from typing import Callable, Optional, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

# Type variables for generic decorator
P = ParamSpec("P")
T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
) -> float:
    """Delay before retry number ``attempt`` (zero based)."""
    return min(base_delay * (exponential_base ** attempt), max_delay)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    The wrapped call is attempted once and then retried up to ``max_retries``
    more times. Only exceptions that are instances of ``exceptions`` and, when
    given, satisfy ``retry_if`` are retried; anything else propagates at once.

    Args:
        max_retries: Maximum number of additional attempts (default: 3)
        base_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 30.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
        exceptions: Tuple of exception types eligible for retry
        retry_if: Optional predicate narrowing which exceptions are retried

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(max_retries=3, base_delay=0.5)
        async def fetch_data():
            return await api_client.get_data()
    """
    def should_retry(error: BaseException, attempt: int) -> bool:
        if attempt >= max_retries:
            return False
        return retry_if is None or retry_if(error)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")
                    return result

                except exceptions as e:
                    if not should_retry(e, attempt):
                        if attempt > 0:
                            logger.error(f"{func.__name__} failed after {attempt + 1} attempts: {e}")
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, exponential_base)
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}/{max_retries + 1}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")
                    return result

                except exceptions as e:
                    if not should_retry(e, attempt):
                        if attempt > 0:
                            logger.error(f"{func.__name__} failed after {attempt + 1} attempts: {e}")
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, exponential_base)
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}/{max_retries + 1}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)
                    attempt += 1

        # Return appropriate wrapper based on whether function is async
        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
