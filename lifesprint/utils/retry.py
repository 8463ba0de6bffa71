"""
Retry logic with exponential backoff.

Used by the persistence layer to re-run find-or-create operations that lost
a uniqueness race against a concurrent writer.
"""

import asyncio
import inspect
import logging
import random
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


async def retry_with_backoff(
    func: Callable,
    *args,
    max_retries: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    skip_on: Tuple[Type[Exception], ...] = (),
    **kwargs
) -> Any:
    """
    Execute a function with exponential backoff retry logic.

    Args:
        func: Async (or plain) callable to execute
        *args: Positional arguments for func
        max_retries: Maximum number of retry attempts after the first call
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Randomize delays so competing writers do not retry in lockstep
        retry_on: Exception types that trigger a retry
        skip_on: Exception types that are re-raised immediately
        **kwargs: Keyword arguments for func

    Returns:
        Result of func execution

    Raises:
        RetryExhausted: If all retries are exhausted
        Exception: If the exception is in skip_on or not in retry_on
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            if inspect.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)

            if attempt > 0:
                logger.info(
                    f"Retry successful on attempt {attempt + 1}/{max_retries + 1} "
                    f"for {func.__name__}"
                )

            return result

        except skip_on:
            raise

        except retry_on as e:
            last_exception = e

            if attempt == max_retries:
                logger.error(
                    f"All {max_retries + 1} retry attempts exhausted for {func.__name__}"
                )
                raise RetryExhausted(
                    f"Failed after {max_retries + 1} attempts: {type(e).__name__}: {e}"
                ) from e

            delay = min(base_delay * (exponential_base ** attempt), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                f"Retry attempt {attempt + 1}/{max_retries + 1} for {func.__name__} "
                f"after {type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise RetryExhausted(f"Failed after {max_retries + 1} attempts") from last_exception

