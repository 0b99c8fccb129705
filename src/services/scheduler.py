"""
Periodic background tasks on the asyncio loop.

Each registered task gets its own asyncio task, so a slow calendar refresh
never delays the rollover watcher and vice versa. A run that raises is logged
and the task keeps its schedule.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TaskFn = Callable[[], Awaitable[object]]


class PeriodicTask:
    """Runs ``fn`` every ``interval`` seconds until stopped."""

    def __init__(self, task_id: str, fn: TaskFn, interval: float, immediate: bool = False):
        self.task_id = task_id
        self.fn = fn
        self.interval = interval
        self.immediate = immediate
        self.last_run: float | None = None
        self.run_count = 0
        self.failures = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.task_id}")

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run_once(self) -> None:
        try:
            await self.fn()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failures += 1
            logger.exception("Task '%s' failed", self.task_id)
        finally:
            self.run_count += 1
            self.last_run = time.monotonic()

    async def _loop(self) -> None:
        if self.immediate:
            await self.run_once()
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()


class TaskScheduler:
    """Registry of named periodic tasks."""

    def __init__(self):
        self._tasks: dict[str, PeriodicTask] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def register(self, task_id: str, fn: TaskFn, interval: float, immediate: bool = False) -> PeriodicTask:
        """
        Add a task, replacing any existing one with the same id.

        A replaced task that was running is cancelled. If the scheduler is
        already running the new task starts right away.
        """
        previous = self._tasks.pop(task_id, None)
        if previous is not None:
            previous.cancel()

        task = PeriodicTask(task_id, fn, interval, immediate=immediate)
        self._tasks[task_id] = task
        if self._running:
            task.start()
        return task

    async def unregister(self, task_id: str) -> bool:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        await task.stop()
        return True

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        for task in self._tasks.values():
            task.start()
        logger.debug("Scheduler started with %d tasks", len(self._tasks))

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await asyncio.gather(*(task.stop() for task in self._tasks.values()))
        logger.debug("Scheduler stopped")

    def get_tasks(self) -> list[dict]:
        return [
            {
                "id": task.task_id,
                "interval": task.interval,
                "last_run": task.last_run,
                "run_count": task.run_count,
                "failures": task.failures,
                "running": task.running,
            }
            for task in self._tasks.values()
        ]

    async def clear(self) -> None:
        await self.stop()
        self._tasks.clear()
