"""
Retry policy for page fetches.

The policy knows nothing about HTTP: it drives any awaitable operation,
classifying failures by exception type, waiting `attempt * backoff_unit`
between attempts and aborting at once when cancellation fires. The wait is
injectable so tests can run on a fake clock.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from core.cancellation import CancellationToken
from core.exceptions import CancellationError, ExhaustedRetriesError, RetryableError

T = TypeVar("T")

Wait = Callable[[float], Awaitable[bool]]
RetryHook = Callable[["RetryState", float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded linear backoff.

    Attributes:
        max_attempts: Total attempts per operation (default: 5)
        backoff_unit: Seconds per backoff step; attempt n waits n units
        retry_on: Exception types that count as a retryable failure
    """
    max_attempts: int = 5
    backoff_unit: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (RetryableError,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_unit < 0:
            raise ValueError("backoff_unit must not be negative")

    def delay_for(self, attempt: int) -> float:
        return attempt * self.backoff_unit

    def total_backoff(self) -> float:
        """Sum of every wait when all attempts fail"""
        return sum(self.delay_for(n) for n in range(1, self.max_attempts + 1))


@dataclass
class RetryState:
    """Attempt counter and last failure for one operation"""
    attempt: int = 0
    last_error: Optional[BaseException] = None

    def exhausted(self, policy: RetryPolicy) -> bool:
        return self.attempt >= policy.max_attempts


async def retry_call(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    cancel_token: CancellationToken,
    *,
    cursor: str = "",
    wait: Optional[Wait] = None,
    on_retry: Optional[RetryHook] = None
) -> T:
    """
    Run `operation(attempt)` until it succeeds or the policy is exhausted.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number
        policy: Attempt bound and backoff
        cancel_token: Checked before every attempt and raced against every wait
        cursor: Page cursor, reported in errors
        wait: Interruptible sleep returning True if cancelled (defaults to
            cancel_token.wait)
        on_retry: Called with the state and the upcoming delay after each failure

    Returns:
        The first successful result

    Raises:
        CancellationError: Cancellation observed; never retried
        ExhaustedRetriesError: Every attempt failed with a retryable error
    """
    state = RetryState()
    wait = wait or cancel_token.wait

    while not state.exhausted(policy):
        cancel_token.raise_if_cancelled(cursor=cursor, attempt=state.attempt)
        state.attempt += 1

        try:
            return await operation(state.attempt)
        except policy.retry_on as e:
            state.last_error = e

        delay = policy.delay_for(state.attempt)
        if on_retry is not None:
            on_retry(state, delay)

        if await wait(delay) or cancel_token.cancelled:
            raise CancellationError(
                "Cancelled during backoff",
                context={"cursor": cursor, "attempt": state.attempt},
                original_exception=state.last_error
            )

    raise ExhaustedRetriesError(cursor, state.last_error, state.attempt)
