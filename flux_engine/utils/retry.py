from __future__ import annotations

import asyncio
import random
from typing import Optional


def compute_backoff(attempt: int, base: float = 1.5, jitter: float = 0.5) -> float:
    """Compute exponential backoff with jitter for the given 1-based attempt."""
    delay = base ** (attempt - 1)
    return delay + random.uniform(0, jitter)


async def schedule_retry(attempt: int, base: Optional[float] = None) -> None:
    """Sleep before the next attempt; ``base=None`` retries immediately."""
    if base is None:
        return
    await asyncio.sleep(compute_backoff(attempt, base=base))
