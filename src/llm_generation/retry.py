"""
Retry primitives (exponential backoff).

The decision of whether and how long to wait is a pure function of the
attempt count and the policy, so it can be tested without running an
operation. ``execute_with_retry`` drives that decision around an awaitable
factory.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from .errors import is_retryable

if TYPE_CHECKING:
    from .logging import GenerationLogger

T = TypeVar("T")


def default_retry_predicate(error: BaseException) -> bool:
    """Retry unless the failure is a type/syntax error or flagged non-retryable."""
    return is_retryable(error)


@dataclass(frozen=True)
class RetryPolicy:
    """
    How a failed operation is retried.

    Attributes:
        max_attempts: Upper bound on invocations of the operation.
        initial_delay: Wait in seconds after the first failure.
        max_delay: Cap in seconds for the doubled delay.
        retry_predicate: Decides whether a failure may be retried.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 8.0
    retry_predicate: Callable[[BaseException], bool] = default_retry_predicate

    def __post_init__(self):
        """Validate policy after initialization."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay cannot be negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay after failed attempt ``attempt`` (1-based): doubled each time, capped."""
    if attempt < 1:
        raise ValueError("attempt must be at least 1")
    return min(policy.initial_delay * (2 ** (attempt - 1)), policy.max_delay)


def next_retry(attempt: int, error: BaseException, policy: RetryPolicy) -> RetryDecision:
    """Decide what follows failed attempt ``attempt``."""
    if not policy.retry_predicate(error) or attempt >= policy.max_attempts:
        return RetryDecision(retry=False)
    return RetryDecision(retry=True, delay=backoff_delay(attempt, policy))


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    logger: GenerationLogger | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """
    Await ``operation()`` until it succeeds or the policy gives up.

    The last failure is re-raised unchanged.

    Args:
        operation: Zero-argument factory returning a fresh awaitable per attempt.
        policy: Retry policy (defaults to ``RetryPolicy()``).
        logger: Receives retry-attempt, backoff and terminal-failure events.
        sleep: Awaitable wait, ``asyncio.sleep`` unless replaced in tests.

    Returns:
        The first successful result.
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as exc:
            attempt += 1
            if logger is not None:
                logger.log_retry_attempt(attempt, policy.max_attempts, exc)

            decision = next_retry(attempt, exc, policy)
            if not decision.retry:
                if logger is not None:
                    logger.log_terminal_failure(exc, attempt=attempt)
                raise

            if logger is not None:
                logger.log_backoff(decision.delay)
            await sleep(decision.delay)


__all__ = [
    "RetryPolicy",
    "RetryDecision",
    "default_retry_predicate",
    "backoff_delay",
    "next_retry",
    "execute_with_retry",
]
