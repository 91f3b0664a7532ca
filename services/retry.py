"""Bounded retry for reads that may lag behind a just-completed write."""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from core.config import RetryConfig

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Fixed number of attempts with a fixed pause between them."""
    attempts: int = 2
    delay_seconds: float = 0.8

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            attempts=config.job_lookup_attempts,
            delay_seconds=config.job_lookup_delay_seconds,
        )


async def retry_until_found(
    fetch: Callable[[], Awaitable[Optional[T]]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[T]:
    """Call ``fetch`` until it returns something other than None.

    Returns None once ``policy.attempts`` calls have all come back empty.
    Exceptions raised by ``fetch`` are not retried.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_fixed(policy.delay_seconds),
        retry=retry_if_result(lambda result: result is None),
        retry_error_callback=lambda retry_state: None,
        sleep=sleep,
    )
    return await retrying(fetch)
