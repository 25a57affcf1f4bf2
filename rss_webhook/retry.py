"""
Generic async retry helper.

A RetryPolicy describes how many attempts to make, which errors and
results deserve another attempt, and how long to wait in between.
The wait goes through an injectable sleep function so callers (and
tests) control how time passes.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]
DelayFunc = Callable[[int, BaseException | None], float]


def _never(_: Any) -> bool:
    return False


def exponential_backoff(
    base: float = 0.5,
    factor: float = 2.0,
    max_delay: float = 4.0,
) -> DelayFunc:
    """
    Build a delay function growing geometrically with the attempt number.

    Parameters
    ----------
    base : float
        Delay in seconds after the first failed attempt.
    factor : float
        Multiplier applied for each further attempt.
    max_delay : float
        Upper bound for a single delay in seconds.

    Returns
    -------
    DelayFunc
        Function mapping ``(attempt, error)`` to a delay in seconds.
    """

    def delay(attempt: int, error: BaseException | None) -> float:
        return min(base * factor ** (attempt - 1), max_delay)

    return delay


@dataclass(frozen=True)
class RetryPolicy:
    """
    How an operation is retried.

    Attributes
    ----------
    max_attempts : int
        Total number of attempts, including the first one.
    retry_on : Callable[[BaseException], bool]
        Whether a raised error is worth another attempt.
    retry_on_result : Callable[[Any], bool]
        Whether a returned result is worth another attempt. When the
        budget runs out the last such result is returned, not raised.
    delay : DelayFunc
        Seconds to wait after a given failed attempt.
    """

    max_attempts: int = 3
    retry_on: Callable[[BaseException], bool] = _never
    retry_on_result: Callable[[Any], bool] = _never
    delay: DelayFunc = exponential_backoff()

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: SleepFunc = asyncio.sleep,
    description: str = "operation",
) -> T:
    """
    Run an async operation under a retry policy.

    Parameters
    ----------
    operation : Callable[[], Awaitable[T]]
        Zero-argument coroutine function performing one attempt.
    policy : RetryPolicy
        Retry policy to apply.
    sleep : SleepFunc
        Coroutine function used to wait between attempts.
    description : str
        Label used in log messages.

    Returns
    -------
    T
        Result of the last attempt.

    Raises
    ------
    Exception
        The first non-retryable error, or the last retryable one once
        the attempt budget is spent.
    """
    attempt = 1
    while True:
        try:
            result = await operation()
        except Exception as e:
            if attempt >= policy.max_attempts or not policy.retry_on(e):
                raise
            wait = max(policy.delay(attempt, e), 0.0)
            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying in %.2fs",
                description,
                attempt,
                policy.max_attempts,
                e,
                wait,
            )
        else:
            if attempt >= policy.max_attempts or not policy.retry_on_result(result):
                return result
            wait = max(policy.delay(attempt, None), 0.0)
            logger.warning(
                "%s returned a retryable result (attempt %d/%d), retrying in %.2fs",
                description,
                attempt,
                policy.max_attempts,
                wait,
            )

        await sleep(wait)
        attempt += 1
