"""
Retry-with-backoff wrapper for provider calls.

Every outbound call to the identity provider, payment providers and lookup
services goes through with_retries(), so the policy lives in one place.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to try an operation, and how long to wait in between.

    Attributes:
        attempts: Total number of tries, including the first
        base_delay: Seconds to wait before the first retry
        max_delay: Upper bound on any single wait
        should_abort: Returns True for errors that retrying cannot fix (e.g. 401)
    """

    attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 10.0
    should_abort: Optional[Callable[[Exception], bool]] = None

    def delay_for(self, retry_number: int) -> float:
        """Delay before the given retry (0-indexed), doubling each time up to max_delay."""
        return min(self.base_delay * (2 ** retry_number), self.max_delay)


DEFAULT_POLICY = RetryPolicy()


async def with_retries(
    name: str,
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
) -> T:
    """
    Run an async operation, retrying failures with capped exponential backoff.

    Args:
        name: Operation name used in log messages
        operation: Zero-argument coroutine function to call
        policy: Retry policy

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or immediately when
        policy.should_abort says the error is unrecoverable.
    """
    retry_number = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if policy.should_abort is not None and policy.should_abort(e):
                raise

            if retry_number + 1 >= policy.attempts:
                logger.warning(f"Out of retries for {name} - failing")
                raise

            delay = policy.delay_for(retry_number)
            logger.info(f"{name} failed with {e}, retrying in {delay}s")
            await asyncio.sleep(delay)
            retry_number += 1


def is_client_error(error: Exception) -> bool:
    """
    Abort predicate for provider calls.

    An error carrying an HTTP status below 500 (other than 429) means the
    request itself was rejected, so trying it again is pointless.
    """
    status = getattr(error, "status", None)
    return status is not None and status < 500 and status != 429
