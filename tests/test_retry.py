import random

import pytest

from relay.retry import (
    AttemptFailed,
    RetriesExhausted,
    RetryPolicy,
    backoff_delay_ms,
    retry_with_backoff,
)


class Script:
    """Operation that fails a fixed number of times, then returns "done"."""

    def __init__(self, failures, exc_type=AttemptFailed):
        self.failures = failures
        self.exc_type = exc_type
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc_type(f"failure {self.calls}")
        return "done"


@pytest.fixture
def recorded_sleep():
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.mark.parametrize("attempt", range(5))
def test_backoff_delay_bounds(attempt):
    floor = 2 ** attempt * 1000
    assert backoff_delay_ms(attempt, rand=lambda: 0.0) == floor
    assert backoff_delay_ms(attempt, rand=lambda: 0.999999) < floor + 1000

    rng = random.Random(attempt)
    for _ in range(200):
        delay = backoff_delay_ms(attempt, rand=rng.random)
        assert floor <= delay < floor + 1000


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_first_attempt_success_does_not_sleep(recorded_sleep):
    op = Script(failures=0)

    outcome = await retry_with_backoff(op, RetryPolicy(), sleep=recorded_sleep)

    assert outcome.value == "done"
    assert outcome.attempts == 1
    assert op.calls == 1
    assert recorded_sleep.delays == []


@pytest.mark.asyncio
async def test_retries_are_transparent_until_success(recorded_sleep):
    op = Script(failures=3)

    outcome = await retry_with_backoff(
        op, RetryPolicy(), sleep=recorded_sleep, rand=lambda: 0.0
    )

    assert outcome.value == "done"
    assert outcome.attempts == 4
    assert recorded_sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_exhaustion_surfaces_last_error(recorded_sleep):
    op = Script(failures=99)

    with pytest.raises(RetriesExhausted) as info:
        await retry_with_backoff(op, RetryPolicy(max_attempts=5), sleep=recorded_sleep, rand=lambda: 0.5)

    assert op.calls == 5
    assert info.value.attempts == 5
    assert str(info.value.last_error) == "failure 5"
    assert str(info.value) == "failure 5"
    # No sleep after the final attempt.
    assert recorded_sleep.delays == [1.5, 2.5, 4.5, 8.5]


@pytest.mark.asyncio
async def test_unlisted_exception_propagates_immediately(recorded_sleep):
    op = Script(failures=1, exc_type=KeyError)

    with pytest.raises(KeyError):
        await retry_with_backoff(op, RetryPolicy(), sleep=recorded_sleep)

    assert op.calls == 1
    assert recorded_sleep.delays == []


@pytest.mark.asyncio
async def test_custom_retry_on(recorded_sleep):
    op = Script(failures=2, exc_type=ConnectionError)

    outcome = await retry_with_backoff(
        op, RetryPolicy(), retry_on=(ConnectionError,), sleep=recorded_sleep
    )

    assert outcome.attempts == 3
    assert len(recorded_sleep.delays) == 2


@pytest.mark.asyncio
async def test_single_attempt_policy_never_sleeps(recorded_sleep):
    op = Script(failures=1)

    with pytest.raises(RetriesExhausted) as info:
        await retry_with_backoff(op, RetryPolicy(max_attempts=1), sleep=recorded_sleep)

    assert info.value.attempts == 1
    assert recorded_sleep.delays == []
