"""
Execution interfaces shared by every executor.

An executor receives two callables:

- analyze_entry_points() discovers entry points, plans tasks and returns
  the TaskQueue to drain;
- create_compile_fn(on_task_completed, pkg_json_updater) builds the
  function that compiles one task and reports its outcome.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..domain.task import Task, TaskProcessingOutcome
from ..infra.package_json_updater import PackageJsonUpdater

TaskCompletedCallback = Callable[[Task, TaskProcessingOutcome], None]
CompileFn = Callable[[Task], None]
CreateCompileFn = Callable[[TaskCompletedCallback, PackageJsonUpdater], CompileFn]


class TaskQueue(ABC):
    """Hands out tasks in an order that respects entry-point dependencies."""

    @property
    @abstractmethod
    def all_tasks_completed(self) -> bool:
        """True once every task has been handed out and marked completed."""

    @abstractmethod
    def get_next_task(self) -> Optional[Task]:
        """
        The next task to process, or None if none is available right now.

        None does not mean the queue is exhausted: in a parallel queue the
        remaining tasks may be waiting on tasks still in progress.
        """

    @abstractmethod
    def mark_task_completed(self, task: Task) -> None:
        """Record that `task`, previously handed out, has finished."""


AnalyzeEntryPointsFn = Callable[[], TaskQueue]


class Executor(ABC):
    """Drains a TaskQueue using some execution strategy."""

    @abstractmethod
    def execute(self, analyze_entry_points: AnalyzeEntryPointsFn, create_compile_fn: CreateCompileFn) -> Any:
        """Run every task; raise on the first fatal failure."""
