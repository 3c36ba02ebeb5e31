"""
Cluster worker process.

A worker builds its compile function once, then processes one task at a
time as the master sends them, until the master terminates it.
"""

import logging
import traceback

from ...config import configure_logging
from .messages import ProcessTask, TaskCompleted, WorkerError
from .package_json_updater import ClusterWorkerPackageJsonUpdater

logger = logging.getLogger(__name__)


def run_worker(conn, worker_id, create_compile_fn, log_level):
    """
    Entry point of a worker process.

    Args:
        conn: This worker's end of the duplex pipe to the master
        worker_id: Number used in log and error messages
        create_compile_fn: Picklable compile-function factory
        log_level: Numeric logging level of the master
    """
    configure_logging(log_level)
    logger.debug(f"Worker #{worker_id} started.")

    try:
        pkg_json_updater = ClusterWorkerPackageJsonUpdater(conn)
        compile_fn = create_compile_fn(
            lambda task, outcome: conn.send(TaskCompleted(outcome=outcome)),
            pkg_json_updater,
        )
    except Exception as e:
        conn.send(WorkerError(message=str(e), traceback=traceback.format_exc()))
        return

    while True:
        try:
            message = conn.recv()
        except (EOFError, KeyboardInterrupt):
            break

        if not isinstance(message, ProcessTask):
            conn.send(WorkerError(message=f"Invalid message received on worker #{worker_id}: {message}"))
            continue

        try:
            compile_fn(message.task)
        except Exception as e:
            conn.send(WorkerError(message=str(e), traceback=traceback.format_exc()))
