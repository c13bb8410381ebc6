from __future__ import annotations

import asyncio

import pytest

from workflow_orchestrator.services.scheduler import AsyncioScheduler


@pytest.mark.asyncio
async def test_task_runs_repeatedly_until_shutdown() -> None:
    scheduler = AsyncioScheduler()
    runs = []
    done = asyncio.Event()

    async def tick() -> None:
        runs.append(1)
        if len(runs) == 3:
            done.set()

    task = scheduler.schedule("tick", frequency_seconds=0.01, timeout_seconds=1, fn=tick)
    await asyncio.wait_for(done.wait(), timeout=2)
    await scheduler.shutdown()

    assert len(runs) >= 3
    assert task.running is False
    assert scheduler.get("tick") is None


@pytest.mark.asyncio
async def test_failures_do_not_stop_the_loop() -> None:
    scheduler = AsyncioScheduler()
    done = asyncio.Event()
    attempts = []

    async def flaky() -> None:
        attempts.append(1)
        if len(attempts) >= 2:
            done.set()
        raise RuntimeError("tick failed")

    scheduler.schedule("flaky", frequency_seconds=0.01, timeout_seconds=1, fn=flaky)
    await asyncio.wait_for(done.wait(), timeout=2)
    await scheduler.shutdown()

    assert len(attempts) >= 2


@pytest.mark.asyncio
async def test_slow_runs_are_bounded_by_timeout() -> None:
    scheduler = AsyncioScheduler()

    async def slow() -> None:
        await asyncio.sleep(10)

    task = scheduler.schedule("slow", frequency_seconds=60, timeout_seconds=0.01, fn=slow)
    task.cancel()

    await asyncio.wait_for(task.run_once(), timeout=1)
    await scheduler.shutdown()

    assert task.runs >= 1


@pytest.mark.asyncio
async def test_rescheduling_replaces_previous_task() -> None:
    scheduler = AsyncioScheduler()

    async def noop() -> None:
        return None

    first = scheduler.schedule("same", frequency_seconds=60, timeout_seconds=1, fn=noop)
    second = scheduler.schedule("same", frequency_seconds=60, timeout_seconds=1, fn=noop)
    await asyncio.gather(first.handle, return_exceptions=True)

    assert scheduler.get("same") is second
    assert first.handle.done()
    assert not first.running
    assert second.running
    await scheduler.shutdown()


def test_invalid_intervals_are_rejected() -> None:
    scheduler = AsyncioScheduler()

    async def noop() -> None:
        return None

    with pytest.raises(ValueError):
        scheduler.schedule("bad", frequency_seconds=0, timeout_seconds=1, fn=noop)


@pytest.mark.asyncio
async def test_shutdown_right_after_schedule_completes() -> None:
    scheduler = AsyncioScheduler()

    async def noop() -> None:
        return None

    task = scheduler.schedule("refresh", frequency_seconds=0.01, timeout_seconds=1, fn=noop)
    await asyncio.wait_for(scheduler.shutdown(), timeout=1)

    assert not task.running
    assert scheduler.get("refresh") is None


@pytest.mark.asyncio
async def test_shutdown_stops_a_task_that_absorbs_cancellation() -> None:
    scheduler = AsyncioScheduler()
    started = asyncio.Event()

    async def stubborn() -> None:
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            return None

    task = scheduler.schedule("stubborn", frequency_seconds=0.01, timeout_seconds=5, fn=stubborn)
    await asyncio.wait_for(started.wait(), timeout=1)
    await asyncio.wait_for(scheduler.shutdown(), timeout=1)

    assert not task.running
    assert task.runs == 1
