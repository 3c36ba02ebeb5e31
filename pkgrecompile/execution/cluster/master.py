"""
Cluster master: hands tasks to worker processes and keeps the books.

The master owns the task queue and the only package.json updater that
writes to disk. Workers are spawned lazily, one at a time, whenever there is
an available task and every existing worker is busy.
"""

import asyncio
import logging
import multiprocessing
import time
from dataclasses import dataclass
from multiprocessing.connection import wait
from typing import Any, Dict, Optional

from ...domain.task import Task
from ...exit_codes import CompilationError
from ...infra.package_json_updater import PackageJsonUpdater
from ..api import AnalyzeEntryPointsFn, CreateCompileFn
from ..completion import on_task_completed
from .messages import Ack, ProcessTask, TaskCompleted, UpdatePackageJson, WorkerError
from .worker import run_worker

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.01


@dataclass
class _Worker:
    worker_id: int
    process: Any
    conn: Any


class ClusterMaster:
    """
    Example:
        master = ClusterMaster(3, updater, analyze_entry_points, create_compile_fn)
        await master.run()
    """

    def __init__(
        self,
        max_worker_count: int,
        pkg_json_updater: PackageJsonUpdater,
        analyze_entry_points: AnalyzeEntryPointsFn,
        create_compile_fn: CreateCompileFn,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.max_worker_count = max_worker_count
        self.pkg_json_updater = pkg_json_updater
        self.create_compile_fn = create_compile_fn
        self.poll_interval = poll_interval
        self.task_queue = analyze_entry_points()
        self.workers: Dict[int, _Worker] = {}
        self.task_assignments: Dict[int, Optional[Task]] = {}
        self._next_worker_id = 1
        self._context = multiprocessing.get_context()

    async def run(self) -> None:
        """Process every task; raise on the first worker error or crash."""
        if self.task_queue.all_tasks_completed:
            return

        logger.debug('Processing tasks...')
        start_time = time.time()
        try:
            self._maybe_distribute_work()
            while not self.task_queue.all_tasks_completed:
                ready = wait([worker.conn for worker in self.workers.values()], timeout=0)
                if not ready:
                    await asyncio.sleep(self.poll_interval)
                    continue
                for conn in ready:
                    worker = self._worker_for(conn)
                    if worker is not None:
                        self._receive(worker)
        finally:
            self._stop_workers()

        duration = round(time.time() - start_time)
        logger.debug(f"Processed tasks in {duration}s.")

    def _maybe_distribute_work(self) -> None:
        while not self.task_queue.all_tasks_completed:
            is_worker_available = False

            for worker_id, assigned_task in list(self.task_assignments.items()):
                if assigned_task is not None:
                    continue
                is_worker_available = True
                task = self.task_queue.get_next_task()
                if task is None:
                    break
                self._assign(worker_id, task)
                is_worker_available = False

            if is_worker_available:
                busy_workers = [wid for wid, task in self.task_assignments.items() if task is not None]
                idle_count = len(self.task_assignments) - len(busy_workers)
                logger.debug(
                    f"No assignments for {idle_count} idle (out of {len(self.task_assignments)} total) "
                    f"workers. Busy workers: {', '.join(str(wid) for wid in busy_workers)}"
                )
                if not busy_workers:
                    self._raise_stalled_queue()
                return

            if len(self.workers) >= self.max_worker_count:
                logger.debug(f"All {len(self.workers)} workers are currently busy and cannot take on more work.")
                return

            task = self.task_queue.get_next_task()
            if task is None:
                if not any(assigned is not None for assigned in self.task_assignments.values()):
                    self._raise_stalled_queue()
                return

            logger.debug('Spawning another worker process as there is more work to be done.')
            worker_id = self._spawn_worker()
            self._assign(worker_id, task)

    def _raise_stalled_queue(self) -> None:
        raise RuntimeError(
            'There are still unprocessed tasks in the queue and no tasks are currently in progress, '
            f"yet the queue did not return any available tasks: {self.task_queue}"
        )

    def _spawn_worker(self) -> int:
        worker_id = self._next_worker_id
        self._next_worker_id += 1

        parent_conn, child_conn = self._context.Pipe(duplex=True)
        process = self._context.Process(
            target=run_worker,
            args=(child_conn, worker_id, self.create_compile_fn, logging.getLogger().getEffectiveLevel()),
            name=f"pkgrecompile-worker-{worker_id}",
            daemon=True,
        )
        process.start()
        # Only the worker holds the child end now, so its exit shows up as EOF.
        child_conn.close()

        self.workers[worker_id] = _Worker(worker_id=worker_id, process=process, conn=parent_conn)
        self.task_assignments[worker_id] = None
        logger.debug(f"Worker #{worker_id} is online.")
        return worker_id

    def _assign(self, worker_id: int, task: Task) -> None:
        self.task_assignments[worker_id] = task
        self.workers[worker_id].conn.send(ProcessTask(task=task))

    def _worker_for(self, conn) -> Optional[_Worker]:
        for worker in self.workers.values():
            if worker.conn is conn:
                return worker
        return None

    def _receive(self, worker: _Worker) -> None:
        try:
            message = worker.conn.recv()
        except (EOFError, OSError):
            self._on_worker_exit(worker)
            return
        self._on_worker_message(worker.worker_id, message)

    def _on_worker_exit(self, worker: _Worker) -> None:
        worker.process.join(timeout=1)
        current_task = self.task_assignments.get(worker.worker_id)
        logger.warning(
            f"Worker #{worker.worker_id} exited unexpectedly (code: {worker.process.exitcode}).\n"
            f"  Current assignment: {current_task if current_task is not None else '-'}"
        )

        if current_task is not None:
            raise CompilationError(
                'Process unexpectedly crashed, while processing format property '
                f"{current_task.format_property} for entry-point '{current_task.entry_point.path}'."
            )

        # An idle worker died: forget it, a replacement is spawned when needed.
        worker.conn.close()
        del self.workers[worker.worker_id]
        del self.task_assignments[worker.worker_id]
        self._maybe_distribute_work()

    def _on_worker_message(self, worker_id: int, message) -> None:
        if isinstance(message, WorkerError):
            if message.traceback:
                logger.debug(f"Traceback from worker #{worker_id}:\n{message.traceback}")
            raise CompilationError(f"Error on worker #{worker_id}: {message.message}")

        if isinstance(message, TaskCompleted):
            self._on_worker_task_completed(worker_id, message)
        elif isinstance(message, UpdatePackageJson):
            self._on_worker_update_package_json(worker_id, message)
        else:
            raise RuntimeError(f"Invalid message received from worker #{worker_id}: {message}")

    def _on_worker_task_completed(self, worker_id: int, message: TaskCompleted) -> None:
        task = self.task_assignments.get(worker_id)
        if task is None:
            raise RuntimeError(
                f"Received 'TaskCompleted' message from worker #{worker_id} while no task was assigned."
            )

        on_task_completed(self.pkg_json_updater, task, message.outcome)
        self.task_queue.mark_task_completed(task)
        self.task_assignments[worker_id] = None
        self._maybe_distribute_work()

    def _on_worker_update_package_json(self, worker_id: int, message: UpdatePackageJson) -> None:
        task = self.task_assignments.get(worker_id)
        if task is None:
            raise RuntimeError(
                f"Received 'UpdatePackageJson' message from worker #{worker_id} while no task was assigned."
            )

        expected_path = task.entry_point.package_json_path
        if message.package_json_path != expected_path:
            raise RuntimeError(
                f"Received 'UpdatePackageJson' message from worker #{worker_id} for "
                f"'{message.package_json_path}', but was expecting '{expected_path}' (based on task assignment)."
            )

        self.pkg_json_updater.write_changes(message.changes, message.package_json_path, task.entry_point.package_json)
        self.workers[worker_id].conn.send(Ack())

    def _stop_workers(self) -> None:
        for worker in self.workers.values():
            if worker.process.is_alive():
                worker.process.terminate()
            worker.process.join(timeout=5)
            worker.conn.close()
        if self.workers:
            logger.debug(f"Stopped {len(self.workers)} worker(s).")
        self.workers.clear()
        self.task_assignments.clear()
