"""
Task queue implementations.

- SerialTaskQueue: plain FIFO over an already dependency-sorted task list;
  one task at a time.
- ParallelTaskQueue: hands out any task whose dependency entry points have
  all finished, so several workers can make progress at once.
"""

import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from ..domain.dependency_graph import DependencyGraph
from ..domain.task import Task
from .api import TaskQueue

logger = logging.getLogger(__name__)


class BaseTaskQueue(TaskQueue):
    """Bookkeeping common to both queues: pending and in-progress tasks."""

    def __init__(self, tasks: Sequence[Task]):
        self.tasks: List[Task] = list(tasks)
        self.in_progress_tasks: Set[Task] = set()

    @property
    def all_tasks_completed(self) -> bool:
        return not self.tasks and not self.in_progress_tasks

    def mark_task_completed(self, task: Task) -> None:
        if task not in self.in_progress_tasks:
            raise RuntimeError(f"Trying to mark task that was not in progress as completed: {task}")
        self.in_progress_tasks.remove(task)

    def _start_task(self, task: Task) -> None:
        if task in self.in_progress_tasks:
            raise RuntimeError(f"Trying to start task '{task}' that is already in progress.")
        self.tasks.remove(task)
        self.in_progress_tasks.add(task)

    def __str__(self) -> str:
        in_progress = ''.join(f"\n    - {task}" for task in self.in_progress_tasks)
        pending = ''.join(f"\n    - {task}" for task in self.tasks)
        return (
            f"{self.__class__.__name__}\n"
            f"  All tasks completed: {self.all_tasks_completed}\n"
            f"  Unprocessed tasks ({len(self.tasks)}):{pending}\n"
            f"  In-progress tasks ({len(self.in_progress_tasks)}):{in_progress}"
        )


class SerialTaskQueue(BaseTaskQueue):
    """
    Example:
        queue = SerialTaskQueue(tasks)
        while not queue.all_tasks_completed:
            task = queue.get_next_task()
            compile(task)
            queue.mark_task_completed(task)
    """

    def get_next_task(self) -> Optional[Task]:
        if not self.tasks:
            return None
        if self.in_progress_tasks:
            in_progress = next(iter(self.in_progress_tasks))
            raise RuntimeError(
                f"Trying to get next task, while there is already a task in progress: {in_progress}"
            )
        next_task = self.tasks[0]
        self._start_task(next_task)
        return next_task


class ParallelTaskQueue(BaseTaskQueue):
    """
    A task is blocked while any entry point it transitively depends on still
    has unfinished tasks. Among the unblocked tasks the earliest one (in
    planned order) is handed out first.

    Safe to share between threads.
    """

    def __init__(self, tasks: Sequence[Task], graph: DependencyGraph):
        super().__init__(tasks)
        self._lock = threading.Lock()
        self._remaining_per_entry_point: Counter = Counter(task.entry_point.path for task in self.tasks)
        self._blockers: Dict[Task, Set[Path]] = {}

        for task in self.tasks:
            path = task.entry_point.path
            dependencies = graph.dependencies_of(path) if graph.has_node(path) else []
            blocking = {dep for dep in dependencies if self._remaining_per_entry_point[dep] > 0}
            if blocking:
                self._blockers[task] = blocking

    def get_next_task(self) -> Optional[Task]:
        with self._lock:
            for task in self.tasks:
                if task not in self._blockers:
                    self._start_task(task)
                    return task
            return None

    def mark_task_completed(self, task: Task) -> None:
        with self._lock:
            super().mark_task_completed(task)

            path = task.entry_point.path
            self._remaining_per_entry_point[path] -= 1
            if self._remaining_per_entry_point[path] > 0:
                return

            unblocked = []
            for other_task, blocking in self._blockers.items():
                blocking.discard(path)
                if not blocking:
                    unblocked.append(other_task)
            for other_task in unblocked:
                del self._blockers[other_task]
            if unblocked:
                logger.debug(f"Completing {task.entry_point.name} unblocked {len(unblocked)} task(s)")
