import asyncio

import pytest

from agentrelay.config import PollingConfig
from agentrelay.exceptions import TaskCancelledError
from agentrelay.utils.retry import poll_delay, sleep_or_cancel


def test_poll_delay_backs_off_to_cap():
    policy = PollingConfig(interval=1.0, backoff=2.0, max_interval=5.0)
    assert [poll_delay(n, policy) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_poll_delay_zero_interval():
    policy = PollingConfig(interval=0, max_interval=0)
    assert poll_delay(10, policy) == 0


@pytest.mark.asyncio
async def test_sleep_or_cancel_without_event():
    await sleep_or_cancel(0)


@pytest.mark.asyncio
async def test_sleep_or_cancel_times_out_quietly():
    await sleep_or_cancel(0.01, asyncio.Event())


@pytest.mark.asyncio
async def test_sleep_or_cancel_raises_when_already_set():
    event = asyncio.Event()
    event.set()
    with pytest.raises(TaskCancelledError):
        await sleep_or_cancel(10, event)


@pytest.mark.asyncio
async def test_sleep_or_cancel_wakes_early():
    event = asyncio.Event()
    asyncio.get_running_loop().call_later(0.01, event.set)
    with pytest.raises(TaskCancelledError):
        await asyncio.wait_for(sleep_or_cancel(10, event), timeout=1)
