"""Tests for periodic background tasks."""

import asyncio

from services.scheduler import PeriodicTask, TaskScheduler


class Counter:
    def __init__(self, fail_first: int = 0):
        self.calls = 0
        self.fail_first = fail_first

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.fail_first:
            raise RuntimeError("flaky")


def test_immediate_task_runs_before_first_interval():
    counter = Counter()

    async def run():
        task = PeriodicTask("refresh", counter, interval=60, immediate=True)
        task.start()
        await asyncio.sleep(0.01)
        await task.stop()
        return task

    task = asyncio.run(run())
    assert counter.calls == 1
    assert task.run_count == 1
    assert task.last_run is not None
    assert not task.running


def test_failures_are_counted_and_the_schedule_continues():
    counter = Counter(fail_first=2)

    async def run():
        task = PeriodicTask("watcher", counter, interval=0.01, immediate=True)
        task.start()
        await asyncio.sleep(0.08)
        await task.stop()
        return task

    task = asyncio.run(run())
    assert task.failures == 2
    assert counter.calls > 2


def test_scheduler_runs_tasks_independently():
    fast, slow = Counter(), Counter()

    async def run():
        scheduler = TaskScheduler()
        scheduler.register("fast", fast, 0.01)
        scheduler.register("slow", slow, 60, immediate=True)
        scheduler.start()
        await asyncio.sleep(0.06)
        tasks = scheduler.get_tasks()
        await scheduler.stop()
        return scheduler, tasks

    scheduler, tasks = asyncio.run(run())
    assert not scheduler.running
    assert slow.calls == 1
    assert fast.calls >= 2
    assert {t["id"] for t in tasks} == {"fast", "slow"}
    assert all(t["running"] for t in tasks)


def test_register_replaces_task_with_same_id():
    old, new = Counter(), Counter()

    async def run():
        scheduler = TaskScheduler()
        scheduler.register("refresh", old, 0.01)
        scheduler.start()
        await asyncio.sleep(0.03)
        calls_before = old.calls
        scheduler.register("refresh", new, 0.01, immediate=True)
        await asyncio.sleep(0.03)
        await scheduler.stop()
        return calls_before

    calls_before = asyncio.run(run())
    assert old.calls == calls_before
    assert new.calls >= 1


def test_unregister_and_clear():
    async def run():
        scheduler = TaskScheduler()
        scheduler.register("a", Counter(), 60)
        scheduler.register("b", Counter(), 60)
        scheduler.start()
        removed = await scheduler.unregister("a")
        missing = await scheduler.unregister("nope")
        remaining = [t["id"] for t in scheduler.get_tasks()]
        await scheduler.clear()
        return removed, missing, remaining, scheduler.get_tasks()

    removed, missing, remaining, after = asyncio.run(run())
    assert removed is True
    assert missing is False
    assert remaining == ["b"]
    assert after == []
