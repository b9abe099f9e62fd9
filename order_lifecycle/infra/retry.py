"""
Retry with exponential backoff and jitter.
"""
import logging
import random
import time
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, initial_delay: float, max_delay: float,
                  exponential_base: float = 2.0, jitter: bool = True) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``max_delay``."""
    delay = initial_delay * (exponential_base ** attempt)
    if jitter:
        # up to 25% on top
        delay += delay * 0.25 * random.random()
    return min(delay, max_delay)


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry the decorated call on ``exceptions``; the last failure propagates.

    Args:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Growth factor between retries
        jitter: Add random jitter to each delay
        exceptions: Exception types that trigger a retry
        sleep: Sleep function, replaceable in tests
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        raise
                    delay = backoff_delay(attempt, initial_delay, max_delay, exponential_base, jitter)
                    logger.warning(
                        "retrying_call",
                        extra={
                            "operation": func.__name__,
                            "attempt": attempt + 1,
                            "delay": round(delay, 3),
                            "error": str(e),
                        },
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper
    return decorator
