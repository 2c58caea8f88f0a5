"""
Async retry with exponential backoff for remote store requests.

Transient failures (5xx responses, timeouts, connection errors) are
retried with exponential backoff and jitter. Client errors (4xx) fail
immediately: a missing file or a bad token will not fix itself.

Example:
    >>> policy = RetryPolicy(max_retries=3, base_delay=1.0)
    >>> response = await retry_async(lambda: client.get(url), policy, context="Fetch data")
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from trackersync.core.config.models import GitHubSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


class RetryPolicy(BaseModel):
    """
    Backoff schedule for remote store requests.

    The n-th retry waits ``base_delay * multiplier ** n`` seconds, spread
    by up to ``jitter_ratio`` in either direction when jitter is on.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after the first attempt (0 disables retrying)"
    )
    base_delay: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to wait before the first retry"
    )
    multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Growth factor applied per retry"
    )
    jitter: bool = Field(
        default=True,
        description="Randomize delays so concurrent clients do not retry in lockstep"
    )
    jitter_ratio: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Maximum relative spread added by jitter"
    )

    @classmethod
    def from_settings(cls, settings: GitHubSettings) -> RetryPolicy:
        """Build the policy configured under the ``github`` config section."""
        return cls(max_retries=settings.max_retries, base_delay=settings.retry_base_delay)

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep before retry number ``attempt`` (0-indexed)."""
        delay = self.base_delay * self.multiplier**attempt
        if self.jitter:
            spread = delay * self.jitter_ratio
            delay += random.uniform(-spread, spread)
        return max(0.0, delay)


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception represents a transient, retryable error.

    Retryable: 5xx responses, timeouts, connection and other request
    errors. Not retryable: 4xx responses and non-HTTP exceptions.
    """
    # HTTPStatusError is checked first; only server errors are transient
    if isinstance(exception, httpx.HTTPStatusError):
        return 500 <= exception.response.status_code < 600

    if isinstance(exception, (httpx.TimeoutException, httpx.RequestError)):
        return True

    return isinstance(exception, httpx.HTTPError)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    context: str = "request",
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """
    Await ``operation`` with retries on transient HTTP errors.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        policy: Backoff schedule (defaults to RetryPolicy())
        context: Label for log messages
        sleep: Awaitable sleep used between attempts

    Returns:
        The operation's result

    Raises:
        Exception: The last error once retries are exhausted, or the first
            non-retryable error
    """
    policy = policy or RetryPolicy()

    for attempt in range(policy.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable_error(e):
                logger.debug("%s: non-retryable error on attempt %d: %s", context, attempt + 1, e)
                raise

            if attempt >= policy.max_retries:
                logger.warning("%s: max retries (%d) exceeded: %s", context, policy.max_retries, e)
                raise

            delay = policy.delay_for(attempt)
            logger.info(
                "%s: retry attempt %d/%d after %.2fs due to: %s",
                context,
                attempt + 1,
                policy.max_retries,
                delay,
                e,
            )
            await sleep(delay)

    raise RuntimeError("Retry loop completed without success or exception")


__all__ = ["RetryPolicy", "is_retryable_error", "retry_async"]
