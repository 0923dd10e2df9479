from __future__ import annotations

import asyncio


def compute_backoff(attempt: int, base_delay_ms: float) -> float:
    """Compute exponential backoff in milliseconds."""
    return base_delay_ms * (2 ** attempt)


async def schedule_retry(attempt: int, base_delay_ms: float) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, base_delay_ms)
    if delay > 0:
        await asyncio.sleep(delay / 1000)
