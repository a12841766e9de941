"""Retry utilities for flaky browser automation calls."""

import random
import time
from functools import wraps
from typing import Any, Callable, Optional, Type

from .interfaces import AutomationError
from .logging_config import get_logger


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        backoff_factor: float = 2.0,
        jitter: bool = True
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            base_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            backoff_factor: Multiplier for exponential backoff
            jitter: Whether to add random jitter to delays
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry following the given zero-based attempt."""
        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter:
            delay *= (0.5 + random.random())
        return delay


def retry_on_automation_error(
    config: Optional[RetryConfig] = None,
    exceptions: tuple[Type[Exception], ...] = (AutomationError,),
    sleep: Callable[[float], None] = time.sleep
) -> Callable:
    """
    Decorator for retrying operations that may fail transiently.

    Args:
        config: Retry configuration (uses default if None)
        exceptions: Tuple of exception types to retry on
        sleep: Function used to wait between attempts

    Returns:
        Decorated function with retry behavior
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_logger(f"{func.__module__}.{func.__name__}")

            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == config.max_attempts - 1:
                        logger.error(f"All {config.max_attempts} attempts failed for {func.__name__}: {e}")
                        raise

                    delay = config.delay_for(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{config.max_attempts} failed for {func.__name__}: {e}. "
                        f"Retrying in {delay:.2f}s"
                    )
                    sleep(delay)

        return wrapper
    return decorator
