"""
Concurrent executor for staggered and fully parallel missions.
Task i starts after i * stagger_interval seconds; an optional semaphore caps in-flight tasks.
"""

import asyncio
import logging
from typing import Optional

from .execution import IsCancelled, RunTask
from .state import Task

logger = logging.getLogger(__name__)


class ParallelExecutor:
    def __init__(self, stagger_interval: float = 0.0, max_concurrency: Optional[int] = None):
        self.stagger_interval = stagger_interval
        self.max_concurrency = max_concurrency

    async def run(self, tasks: list[Task], run_task: RunTask, is_cancelled: IsCancelled) -> int:
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        started = 0

        async def launch(index: int, task: Task):
            nonlocal started
            if self.stagger_interval > 0 and index > 0:
                await asyncio.sleep(index * self.stagger_interval)

            if semaphore is None:
                if is_cancelled():
                    return
                started += 1
                await run_task(task)
                return

            async with semaphore:
                if is_cancelled():
                    return
                started += 1
                await run_task(task)

        coroutines = [launch(i, task) for i, task in enumerate(tasks)]
        results = await asyncio.gather(*coroutines, return_exceptions=True)

        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                logger.error("Task %s raised outside the coordinator: %r", task.id, result)

        return started
