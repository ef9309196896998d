from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Coroutine, Optional, ParamSpec, TypeVar, cast

from tenacity import (
    AsyncRetrying,
    after_log,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from .exceptions import TransientError

P = ParamSpec("P")
T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff shape.

    The wait before attempt ``n + 1`` is ``base_delay * multiplier ** (n - 1)``
    seconds, capped at ``max_delay``.
    """

    max_attempts: int = 5
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            return 0.0
        return float(min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay))


def build_retrying(
    policy: RetryPolicy,
    *,
    logger: Optional[logging.Logger] = None,
    sleep: SleepFn = asyncio.sleep,
) -> AsyncRetrying:
    log = logger or logging.getLogger(__name__)
    return AsyncRetrying(
        stop=stop_after_attempt(max(policy.max_attempts, 1)),
        wait=lambda retry_state: policy.delay_for(retry_state.attempt_number),
        retry=retry_if_exception_type(TransientError),
        before_sleep=before_sleep_log(log, logging.WARNING),
        after=after_log(log, logging.DEBUG),
        sleep=sleep,
        reraise=True,
    )


def retry_transient(
    policy: RetryPolicy = RetryPolicy(),
    *,
    logger: Optional[logging.Logger] = None,
    sleep: SleepFn = asyncio.sleep,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """
    Decorator for retrying transient errors with exponential backoff.

    Args:
        policy: Attempt budget and backoff shape (default: 5 attempts,
            0.5s initial delay doubling each time).
        logger: Logger used for the before-sleep warnings.
        sleep: Awaitable sleep function; tests pass a recorder.

    Returns:
        A decorator that wraps async functions with retry logic.

    Raises:
        The last exception once attempts are exhausted, or any
        non-transient exception immediately.
    """

    def decorator(
        func: Callable[P, Coroutine[Any, Any, T]],
    ) -> Callable[P, Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            retrying = build_retrying(policy, logger=logger, sleep=sleep)
            return cast(T, await retrying(func, *args, **kwargs))

        return wrapper

    return decorator


__all__ = ["RetryPolicy", "build_retrying", "retry_transient"]
