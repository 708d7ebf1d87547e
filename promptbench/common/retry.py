"""Exponential-backoff retries for flaky calls such as chat completions.

``retry`` wraps plain and ``async def`` functions alike. Delays double on
each attempt starting from ``base_delay_seconds``, so the defaults wait
1s, 2s and 4s before giving up and re-raising the last error.
"""

import asyncio
import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from promptbench.common.logging import get_logger

logger = get_logger(__name__)

# Sync callers pass a plain function; async callers may pass a coroutine function
SleepFunc = Callable[[float], None | Awaitable[None]]


def _check_config(
    max_retries: Any, base_delay_seconds: Any, retryable_exceptions: Any
) -> None:
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
        raise ValueError(f"max_retries must be a non-negative int, got {max_retries!r}")
    if (
        isinstance(base_delay_seconds, bool)
        or not isinstance(base_delay_seconds, (int, float))
        or base_delay_seconds < 0
    ):
        raise ValueError(
            f"base_delay_seconds must be a non-negative number, got {base_delay_seconds!r}"
        )
    if not isinstance(retryable_exceptions, tuple) or not retryable_exceptions:
        raise TypeError("retryable_exceptions must be a non-empty tuple of exception types")
    bad = [
        t for t in retryable_exceptions if not (isinstance(t, type) and issubclass(t, Exception))
    ]
    if bad:
        raise TypeError(f"retryable_exceptions contains non-exception entries: {bad!r}")


@dataclass(frozen=True)
class _Backoff:
    name: str
    max_retries: int
    base_delay_seconds: float

    def next_delay(self, attempt: int, error: Exception) -> float | None:
        """Delay before retrying after ``attempt`` failed, or None when exhausted."""
        if attempt >= self.max_retries:
            logger.error(
                f"{self.name} failed after {self.max_retries} retries",
                metadata={"function": self.name, "max_retries": self.max_retries},
            )
            return None
        delay = self.base_delay_seconds * 2**attempt
        logger.warning(
            f"Retrying {self.name} (attempt {attempt + 1}/{self.max_retries}) in {delay}s",
            metadata={"attempt": attempt + 1, "delay": delay, "error": str(error)},
        )
        return delay


def retry(
    max_retries: int = 3,
    base_delay_seconds: float = 1,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep_func: SleepFunc | None = None,
):
    """Retry the decorated function on ``retryable_exceptions``.

    Other exceptions propagate at once. ``sleep_func`` replaces
    ``time.sleep`` (sync) or ``asyncio.sleep`` (async) and may itself be a
    plain or coroutine function.

    Example:
        @retry(max_retries=3, retryable_exceptions=(RateLimitError,))
        async def complete():
            ...
    """
    _check_config(max_retries, base_delay_seconds, retryable_exceptions)

    def decorator(func):
        backoff = _Backoff(func.__name__, max_retries, base_delay_seconds)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                attempt = 0
                while True:
                    try:
                        return await func(*args, **kwargs)
                    except retryable_exceptions as e:
                        delay = backoff.next_delay(attempt, e)
                        if delay is None:
                            raise
                    pause = sleep_func(delay) if sleep_func else asyncio.sleep(delay)
                    if inspect.isawaitable(pause):
                        await pause
                    attempt += 1

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    delay = backoff.next_delay(attempt, e)
                    if delay is None:
                        raise
                (sleep_func or time.sleep)(delay)
                attempt += 1

        return wrapper

    return decorator
