import asyncio
import pytest
from unittest.mock import patch

from voice_agent.config.environment import ConfigManager
from voice_agent.core.reconnection import ReconnectionPolicy, RetryTimer


def test_backoff_delays():
    policy = ReconnectionPolicy()
    assert [policy.delay_ms(n) for n in (1, 2, 3, 4, 5)] == [1000, 2000, 4000, 5000, 5000]


def test_retry_limit():
    policy = ReconnectionPolicy()
    assert policy.should_retry(3) is True
    assert policy.should_retry(4) is False


def test_delay_rejects_attempt_zero():
    with pytest.raises(ValueError):
        ReconnectionPolicy().delay_ms(0)


def test_policy_from_config():
    policy = ReconnectionPolicy.from_config()
    assert policy == ReconnectionPolicy(1000, 5000, 3, True)

    overrides = {"reconnection": {"base_delay_ms": 250, "max_delay_ms": 800, "retry_limit": 5}}
    with patch.object(ConfigManager, "_config", overrides):
        policy = ReconnectionPolicy.from_config()
    assert policy.retry_limit == 5
    assert policy.delay_ms(4) == 800


@pytest.mark.asyncio
async def test_retry_timer_fires():
    fired = asyncio.Event()

    async def callback():
        fired.set()

    timer = RetryTimer()
    timer.schedule(1, callback)
    assert timer.pending is True
    await asyncio.wait_for(fired.wait(), timeout=1.0)
    assert timer.pending is False


@pytest.mark.asyncio
async def test_retry_timer_keeps_only_latest():
    calls = []

    async def first():
        calls.append("first")

    async def second():
        calls.append("second")

    timer = RetryTimer()
    timer.schedule(5, first)
    timer.schedule(5, second)
    await asyncio.sleep(0.05)
    assert calls == ["second"]


@pytest.mark.asyncio
async def test_retry_timer_cancel():
    calls = []

    async def callback():
        calls.append(1)

    timer = RetryTimer()
    timer.schedule(5, callback)
    assert timer.cancel() is True
    assert timer.cancel() is False
    await asyncio.sleep(0.03)
    assert calls == []


@pytest.mark.asyncio
async def test_retry_timer_cancels_running_callback():
    entered = asyncio.Event()
    finished = []

    async def callback():
        entered.set()
        await asyncio.sleep(1)
        finished.append(1)

    timer = RetryTimer()
    timer.schedule(1, callback)
    await asyncio.wait_for(entered.wait(), timeout=1.0)
    assert timer.pending is True

    assert timer.cancel() is True
    await asyncio.sleep(0.01)
    assert timer.pending is False
    assert finished == []


@pytest.mark.asyncio
async def test_retry_timer_reschedules_from_callback():
    calls = []
    done = asyncio.Event()

    async def callback():
        calls.append(len(calls) + 1)
        if len(calls) < 3:
            timer.schedule(1, callback)
        else:
            done.set()

    timer = RetryTimer()
    timer.schedule(1, callback)
    await asyncio.wait_for(done.wait(), timeout=1.0)
    assert calls == [1, 2, 3]
