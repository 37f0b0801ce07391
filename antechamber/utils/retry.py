from __future__ import annotations

import asyncio

from ..workflow.policy import RetryPolicy


def compute_backoff(attempt: int, policy: RetryPolicy) -> float:
    """Compute the exponential backoff in seconds after a failed ``attempt``."""
    return policy.backoff_ms(attempt) / 1000


async def schedule_retry(attempt: int, policy: RetryPolicy) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, policy)
    await asyncio.sleep(delay)
