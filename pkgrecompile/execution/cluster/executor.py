"""
Multi-process executor.
"""

import logging

from ...infra.package_json_updater import PackageJsonUpdater
from ..api import AnalyzeEntryPointsFn, CreateCompileFn, Executor
from .master import ClusterMaster

logger = logging.getLogger(__name__)


class ClusterExecutor(Executor):
    """
    Runs tasks on up to `worker_count` worker processes.

    Entry-point analysis happens in the calling (master) process; workers
    only compile. `create_compile_fn` is sent to every worker, so it must be
    picklable.
    """

    def __init__(self, worker_count: int, pkg_json_updater: PackageJsonUpdater):
        if worker_count < 1:
            raise ValueError(f"ClusterExecutor needs at least one worker, got {worker_count}")
        self.worker_count = worker_count
        self.pkg_json_updater = pkg_json_updater

    async def execute(self, analyze_entry_points: AnalyzeEntryPointsFn, create_compile_fn: CreateCompileFn) -> None:
        logger.debug(f"Running pkgrecompile on {self.__class__.__name__} (using {self.worker_count} worker processes).")
        master = ClusterMaster(self.worker_count, self.pkg_json_updater, analyze_entry_points, create_compile_fn)
        await master.run()
