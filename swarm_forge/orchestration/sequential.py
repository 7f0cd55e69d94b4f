"""
Sequential executor: one task at a time with a short settling delay between tasks.
Abort points are deterministic: the cancel flag is read right before each task starts.
"""

import asyncio
import logging

from .execution import IsCancelled, RunTask
from .state import Task

logger = logging.getLogger(__name__)


class SequentialExecutor:
    def __init__(self, settle_delay: float = 0.5):
        self.settle_delay = settle_delay

    async def run(self, tasks: list[Task], run_task: RunTask, is_cancelled: IsCancelled) -> int:
        """Run tasks in plan order. Returns how many were started."""
        started = 0
        for index, task in enumerate(tasks):
            if index > 0 and self.settle_delay > 0:
                await asyncio.sleep(self.settle_delay)

            if is_cancelled():
                logger.info("Cancelled before %s; %d task(s) left pending", task.id, len(tasks) - index)
                break

            started += 1
            await run_task(task)

        return started
