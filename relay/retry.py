"""
Bounded retry with exponential backoff and jitter.

The combinator knows nothing about HTTP. It runs a zero-argument coroutine
factory until one call succeeds or the attempt budget is spent, sleeping
between attempts:

    delay after failed attempt i = 2**i * base_ms + uniform(0, jitter_ms)

States:
    Attempting(n) -> Succeeded          first call that returns
    Attempting(n) -> Attempting(n + 1)  retryable failure, budget left
    Attempting(n) -> ExhaustedFailed    retryable failure on the last attempt

Attempts are strictly sequential. Exceptions outside retry_on are not
classified as attempt failures and propagate from the attempt that raised
them without any further attempts.

Both the sleep and the random source are injectable so the loop can be
tested without waiting and without randomness.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from relay.constants import BACKOFF_BASE_MS, BACKOFF_JITTER_MS, MAX_ATTEMPTS

_log = logging.getLogger(__name__)

T = TypeVar("T")


class AttemptFailed(Exception):
    """A single attempt failed in a way that is worth retrying."""


class RetriesExhausted(Exception):
    """
    Every attempt failed.

    Attributes:
        last_error: The exception raised by the final attempt.
        attempts:   Number of attempts made.
    """

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = MAX_ATTEMPTS
    base_delay_ms: int = BACKOFF_BASE_MS
    jitter_ms: int = BACKOFF_JITTER_MS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


@dataclass
class RetryOutcome(Generic[T]):
    """Result of the first successful attempt and how many it took."""

    value: T
    attempts: int


def backoff_delay_ms(
    attempt: int,
    rand: Callable[[], float] = random.random,
    base_ms: int = BACKOFF_BASE_MS,
    jitter_ms: int = BACKOFF_JITTER_MS,
) -> float:
    """
    Delay before retrying after the given 0-based attempt failed.

    rand must return a float in [0, 1), as random.random does, which keeps
    the result in [2**attempt * base_ms, 2**attempt * base_ms + jitter_ms).
    """
    return (2 ** attempt) * base_ms + rand() * jitter_ms


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
    *,
    retry_on: tuple[type[BaseException], ...] = (AttemptFailed,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
    label: str = "request",
) -> RetryOutcome[T]:
    """
    Run operation until it succeeds or policy.max_attempts is reached.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per call.
        policy:    Attempt budget and backoff shape.
        retry_on:  Exception types that count as a retryable attempt failure.
        sleep:     Awaitable sleep taking seconds.
        rand:      Source of jitter in [0, 1).
        label:     Name used in log lines.

    Returns:
        RetryOutcome with the first successful value and the attempt count.

    Raises:
        RetriesExhausted: The final attempt failed; wraps its exception.
    """
    for attempt in range(policy.max_attempts):
        try:
            value = await operation()
        except retry_on as exc:
            if attempt == policy.max_attempts - 1:
                _log.error(
                    "%s failed on final attempt %d/%d: %s",
                    label,
                    attempt + 1,
                    policy.max_attempts,
                    exc,
                )
                raise RetriesExhausted(exc, attempt + 1) from exc

            delay_ms = backoff_delay_ms(attempt, rand, policy.base_delay_ms, policy.jitter_ms)
            _log.warning(
                "%s attempt %d failed. Retrying in %dms. Error: %s",
                label,
                attempt + 1,
                round(delay_ms),
                exc,
            )
            await sleep(delay_ms / 1000)
        else:
            return RetryOutcome(value=value, attempts=attempt + 1)

    # Unreachable: the loop either returns or raises on its last iteration.
    raise AssertionError("retry loop exited without a result")
