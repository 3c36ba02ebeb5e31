"""
Executors that run every task in the current process.
"""

import asyncio
import logging
import time

from ..infra.package_json_updater import PackageJsonUpdater
from .api import AnalyzeEntryPointsFn, CreateCompileFn, Executor
from .completion import on_task_completed

logger = logging.getLogger(__name__)


class SingleProcessExecutor(Executor):
    """
    Processes all tasks one after the other and returns when done.

    The first exception raised while compiling aborts the run; tasks that
    already completed keep their output and markers.

    Example:
        executor = SingleProcessExecutor(DirectPackageJsonUpdater(fs))
        executor.execute(analyze_entry_points, create_compile_fn)
    """

    def __init__(self, pkg_json_updater: PackageJsonUpdater):
        self.pkg_json_updater = pkg_json_updater

    def execute(self, analyze_entry_points: AnalyzeEntryPointsFn, create_compile_fn: CreateCompileFn) -> None:
        logger.debug(f"Running pkgrecompile on {self.__class__.__name__}.")

        task_queue = analyze_entry_points()
        compile_fn = create_compile_fn(
            lambda task, outcome: on_task_completed(self.pkg_json_updater, task, outcome),
            self.pkg_json_updater,
        )

        logger.debug('Processing tasks...')
        start_time = time.time()

        while not task_queue.all_tasks_completed:
            task = task_queue.get_next_task()
            if task is None:
                raise RuntimeError(f"Task queue stalled with tasks remaining:\n{task_queue}")
            compile_fn(task)
            task_queue.mark_task_completed(task)

        duration = round(time.time() - start_time)
        logger.debug(f"Processed tasks in {duration}s.")


class AsyncSingleProcessExecutor(SingleProcessExecutor):
    """
    Same as SingleProcessExecutor, but completes as a coroutine and yields
    to the event loop between tasks.
    """

    async def execute(self, analyze_entry_points: AnalyzeEntryPointsFn, create_compile_fn: CreateCompileFn) -> None:
        logger.debug(f"Running pkgrecompile on {self.__class__.__name__}.")

        task_queue = analyze_entry_points()
        compile_fn = create_compile_fn(
            lambda task, outcome: on_task_completed(self.pkg_json_updater, task, outcome),
            self.pkg_json_updater,
        )

        logger.debug('Processing tasks...')
        start_time = time.time()

        while not task_queue.all_tasks_completed:
            task = task_queue.get_next_task()
            if task is None:
                raise RuntimeError(f"Task queue stalled with tasks remaining:\n{task_queue}")
            compile_fn(task)
            task_queue.mark_task_completed(task)
            await asyncio.sleep(0)

        duration = round(time.time() - start_time)
        logger.debug(f"Processed tasks in {duration}s.")
