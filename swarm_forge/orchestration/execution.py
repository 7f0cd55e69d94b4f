"""
Execution modes and the factory that picks an executor for a mission.
"""

from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from ..config import ExecutionConfig
from .state import Task

RunTask = Callable[[Task], Awaitable[None]]
IsCancelled = Callable[[], bool]


class ExecutionMode(Enum):
    SEQUENTIAL = "sequential"
    STAGGERED = "staggered"
    PARALLEL = "parallel"


def create_executor(
    mode: Union[ExecutionMode, str],
    execution: Optional[ExecutionConfig] = None,
):
    from .parallel import ParallelExecutor
    from .sequential import SequentialExecutor

    execution = execution or ExecutionConfig()
    mode = ExecutionMode(mode) if isinstance(mode, str) else mode

    if mode == ExecutionMode.SEQUENTIAL:
        return SequentialExecutor(settle_delay=execution.settle_delay)
    if mode == ExecutionMode.STAGGERED:
        return ParallelExecutor(
            stagger_interval=execution.stagger_interval,
            max_concurrency=execution.max_concurrency,
        )
    return ParallelExecutor(stagger_interval=0.0, max_concurrency=execution.max_concurrency)
