"""
Retry logic with exponential backoff for handling transient storage failures.

A settlement or deposit that loses a lock race or hits a busy database is
retried from scratch, preconditions included. A half-applied transfer is
never resumed: each attempt runs in its own unit of work.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, attempts: int, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=3, base_delay=0.05, exceptions=(TransientError,))
        def settle():
            return engine.pay_job(1, 1)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    # Don't sleep after the last attempt
                    if attempt < max_retries:
                        current_delay = min(delay, max_delay)

                        if on_retry:
                            on_retry(attempt + 1, e, current_delay)

                        time.sleep(current_delay)
                        delay *= exponential_base
                    else:
                        # All retries exhausted
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}",
                            attempts=max_retries + 1,
                            last_exception=e,
                        ) from e

        return wrapper
    return decorator


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if a storage exception is likely transient and worth retrying.

    Args:
        exception: Exception to check

    Returns:
        True if error looks like lock contention, a busy database or a timeout
    """
    error_str = str(exception).lower()

    transient_keywords = [
        'database is locked',
        'database table is locked',
        'database is busy',
        'timeout',
        'timed out',
        'deadlock',
        'could not serialize',
        'serialization failure',
        'lock wait',
        'connection reset',
    ]

    return any(keyword in error_str for keyword in transient_keywords)
