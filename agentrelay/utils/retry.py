from __future__ import annotations

import asyncio
from typing import Optional

from ..config import PollingConfig
from ..exceptions import TaskCancelledError


def poll_delay(attempt: int, policy: PollingConfig) -> float:
    """Exponential delay before poll number ``attempt`` (1-based), capped at ``max_interval``."""
    delay = policy.interval * policy.backoff ** max(attempt - 1, 0)
    return min(delay, policy.max_interval)


async def sleep_or_cancel(delay: float, cancel_event: Optional[asyncio.Event] = None) -> None:
    """Sleep for ``delay`` seconds, waking early if ``cancel_event`` is set.

    Raises:
        TaskCancelledError: If the event is set before or during the sleep.
    """
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    if cancel_event.is_set():
        raise TaskCancelledError("Cancelled while waiting on a remote task")
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise TaskCancelledError("Cancelled while waiting on a remote task")
