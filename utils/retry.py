"""Retry decorator for transient Google API errors."""

import time
import random
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from .logger import get_logger
import config

logger = get_logger()

F = TypeVar('F', bound=Callable[..., Any])

def retry_on_exception(
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable[[F], F]:
    """Decorator to retry a function call upon specific exceptions with exponential backoff.

    Args:
        exceptions: Exception types to catch and retry on.
        max_attempts: Maximum number of attempts (including the initial one).
        initial_delay: Delay before the first retry in seconds.
        backoff_factor: Multiplier for the delay in subsequent retries.
        jitter: Random jitter factor (delay * jitter * uniform(-1, 1)).
        should_retry: Optional predicate; a caught exception for which it
            returns False is re-raised immediately.
        sleep: Function used to wait between attempts. Defaults to time.sleep.

    Returns:
        A decorator function.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts = 0
            delay = initial_delay
            while True:
                attempts += 1
                try:
                    if config.DEBUG and attempts > 1:
                        logger.debug(f"Retrying {func.__name__} (Attempt {attempts}/{max_attempts})...")
                    return func(*args, **kwargs)
                except exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if attempts >= max_attempts:
                        logger.error(
                            f"Function {func.__name__} failed after {max_attempts} attempts due to {type(e).__name__}.",
                            exc_info=config.DEBUG
                        )
                        raise

                    wait_time = max(0, delay + delay * jitter * random.uniform(-1, 1))
                    logger.warning(
                        f"Function {func.__name__} failed with {type(e).__name__} (Attempt {attempts}/{max_attempts}). "
                        f"Retrying in {wait_time:.2f} seconds...",
                        exc_info=config.DEBUG
                    )
                    (sleep or time.sleep)(wait_time)
                    delay *= backoff_factor

        return wrapper # type: ignore
    return decorator
