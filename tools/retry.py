"""
Retry decorator for coroutines — exponential backoff with jitter.
Used around remote calls that may fail on a flaky connection.
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable

from tools.log import get_logger

log = get_logger(__name__)


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: tuple[type[BaseException], ...] = (Exception,),
) -> Callable:
    """
    Decorator: retry the wrapped coroutine function with exponential backoff.

    Args:
        max_attempts: Total attempts, including the first one. If the instance the
            method is bound to has a ``max_retries`` attribute, that wins.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for a single delay.
        backoff_factor: Multiplier applied per attempt.
        jitter: Scale each delay by a random factor in [0.5, 1.5).
        retryable: Exception types worth retrying; anything else propagates at once.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts = max_attempts
            if args and isinstance(getattr(args[0], "max_retries", None), int):
                attempts = max(1, args[0].max_retries)

            for attempt in range(1, attempts + 1):
                try:
                    return await fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == attempts:
                        log.error("%s failed after %d attempts: %s", fn.__qualname__, attempts, exc)
                        raise
                    delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, attempts, exc, delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
