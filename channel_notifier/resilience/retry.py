"""Retry-with-backoff decorator for async transport calls.

This is the only place retries happen. Business logic calls a decorated
transport method once and treats any exception that escapes as
"no data this cycle".

Usage:
    @retry_async(max_attempts=3, base_delay=1.0, retry_on=(httpx.ConnectError,))
    async def fetch(url: str) -> httpx.Response:
        ...
"""

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    multiplier: float = 2.0,
    jitter: float = 0.1,
) -> float:
    """Delay before retry number ``attempt`` (0-based).

    min(base * multiplier^attempt, max_delay), spread by +/- ``jitter``
    as a fraction of the delay.
    """
    delay = min(base_delay * (multiplier ** attempt), max_delay)
    if jitter:
        delay += delay * random.uniform(-jitter, jitter)
    return max(0.0, delay)


def retry_async(
    max_attempts: int | Callable[[Any], int] = 3,
    base_delay: float | Callable[[Any], float] = 1.0,
    max_delay: float | Callable[[Any], float] = 8.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async callable with exponential backoff.

    Numeric parameters may also be callables taking the bound ``self`` of a
    decorated method, so instances can supply their own configuration.

    Args:
        max_attempts: Total attempts including the first call.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Ceiling for any single delay.
        retry_on: Exception types that trigger a retry. Anything else
            propagates immediately.

    Returns:
        Decorator. The last exception is re-raised once attempts run out.
    """

    def _resolve(value: Any, args: tuple) -> Any:
        if callable(value):
            return value(args[0])
        return value

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = getattr(fn, "__qualname__", repr(fn))

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempts = max(1, int(_resolve(max_attempts, args)))
            base = float(_resolve(base_delay, args))
            ceiling = float(_resolve(max_delay, args))

            attempt = 1
            while True:
                try:
                    return await fn(*args, **kwargs)
                except retry_on as e:
                    if attempt >= attempts:
                        logger.warning(
                            "%s failed after %d attempts: %s",
                            name, attempt, e,
                        )
                        raise
                    delay = backoff_delay(attempt - 1, base, ceiling)
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.2fs",
                        name, attempt, attempts, type(e).__name__, delay,
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
