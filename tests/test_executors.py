"""Tests for the single-process and cluster executors."""

import asyncio

import pytest

from pkgrecompile import __version__
from pkgrecompile.domain import TaskProcessingOutcome
from pkgrecompile.exit_codes import CompilationError
from pkgrecompile.execution.api import TaskQueue
from pkgrecompile.execution.cluster.executor import ClusterExecutor
from pkgrecompile.execution.single_process import AsyncSingleProcessExecutor, SingleProcessExecutor
from pkgrecompile.execution.task_queues import ParallelTaskQueue, SerialTaskQueue
from pkgrecompile.infra.file_writer import BACKUP_SUFFIX
from pkgrecompile.infra.package_json_updater import DirectPackageJsonUpdater
from pkgrecompile.main import CompileFnFactory, RecompileOptions, analyze
from pkgrecompile.services.build_marker import PROCESSED_MARKER_KEY
from pkgrecompile.services.task_planner import plan_tasks

from conftest import load_package_json


@pytest.fixture
def three_tasks(make_package, load_entry_point):
    entry_points = [load_entry_point(make_package(name, properties=["esm5"])) for name in ("a", "b", "c")]
    tasks, _ = plan_tasks(entry_points, ["esm5"], True)
    return tasks


def recording_compile_fn(compiled, fail_on=None, outcome=TaskProcessingOutcome.PROCESSED):
    def create_compile_fn(on_task_completed, pkg_json_updater):
        def compile_fn(task):
            if task.entry_point.name == fail_on:
                raise CompilationError(f"boom in {fail_on}")
            compiled.append(task.entry_point.name)
            on_task_completed(task, outcome)
        return compile_fn
    return create_compile_fn


def markers(path):
    return load_package_json(path).get(PROCESSED_MARKER_KEY, {})


class StalledQueue(TaskQueue):
    all_tasks_completed = False

    def get_next_task(self):
        return None

    def mark_task_completed(self, task):
        pass


class TestSingleProcessExecutor:

    def test_processes_and_marks_every_task(self, fs, node_modules, three_tasks):
        compiled = []

        SingleProcessExecutor(DirectPackageJsonUpdater(fs)).execute(
            lambda: SerialTaskQueue(three_tasks), recording_compile_fn(compiled))

        assert compiled == ["a", "b", "c"]
        for name in compiled:
            assert markers(node_modules / name) == {"esm5": __version__, "typings": __version__}

    def test_first_error_aborts_the_run(self, fs, node_modules, three_tasks):
        compiled = []

        with pytest.raises(CompilationError, match="boom in b"):
            SingleProcessExecutor(DirectPackageJsonUpdater(fs)).execute(
                lambda: SerialTaskQueue(three_tasks), recording_compile_fn(compiled, fail_on="b"))

        assert compiled == ["a"]
        assert markers(node_modules / "a") == {"esm5": __version__, "typings": __version__}
        assert markers(node_modules / "b") == {}
        assert markers(node_modules / "c") == {}

    def test_already_processed_tasks_are_not_marked(self, fs, node_modules, three_tasks):
        compiled = []

        SingleProcessExecutor(DirectPackageJsonUpdater(fs)).execute(
            lambda: SerialTaskQueue(three_tasks),
            recording_compile_fn(compiled, outcome=TaskProcessingOutcome.ALREADY_PROCESSED),
        )

        assert compiled == ["a", "b", "c"]
        assert markers(node_modules / "a") == {}

    def test_stalled_queue(self, fs):
        with pytest.raises(RuntimeError, match="stalled"):
            SingleProcessExecutor(DirectPackageJsonUpdater(fs)).execute(StalledQueue, recording_compile_fn([]))


class TestAsyncSingleProcessExecutor:

    def test_processes_every_task(self, fs, node_modules, three_tasks):
        compiled = []
        executor = AsyncSingleProcessExecutor(DirectPackageJsonUpdater(fs))

        asyncio.run(executor.execute(lambda: SerialTaskQueue(three_tasks), recording_compile_fn(compiled)))

        assert compiled == ["a", "b", "c"]
        assert markers(node_modules / "c")["esm5"] == __version__

    def test_error_propagates(self, fs, three_tasks):
        executor = AsyncSingleProcessExecutor(DirectPackageJsonUpdater(fs))

        with pytest.raises(CompilationError):
            asyncio.run(executor.execute(
                lambda: SerialTaskQueue(three_tasks), recording_compile_fn([], fail_on="a")))


class TestClusterExecutor:

    def run_cluster(self, fs, node_modules, worker_count=2):
        updater = DirectPackageJsonUpdater(fs)
        options = RecompileOptions(base_path=node_modules, async_mode=True, parallelism=worker_count + 1)

        def analyze_entry_points():
            analysis = analyze(fs, updater, options)
            return ParallelTaskQueue(analysis.tasks, analysis.graph)

        executor = ClusterExecutor(worker_count, updater)
        asyncio.run(executor.execute(analyze_entry_points, CompileFnFactory.from_options(options)))

    def test_compiles_everything_on_workers(self, fs, simple_tree, node_modules):
        self.run_cluster(fs, node_modules)

        for name in ("@lib/core", "@lib/common", "@lib/common/http"):
            assert markers(node_modules / name) == {
                "fesm2015": __version__,
                "es2015": __version__,
                "esm5": __version__,
                "module": __version__,
                "typings": __version__,
            }
        assert markers(node_modules / "tslib") == {}
        assert (node_modules / "@lib" / "core" / "esm5" / f"lib-core.js{BACKUP_SUFFIX}").exists()

    def test_worker_error_aborts(self, fs, simple_tree, node_modules):
        core = node_modules / "@lib" / "core"
        (core / "esm2015" / f"lib-core.js{BACKUP_SUFFIX}").write_text("stale backup")

        with pytest.raises(CompilationError, match="Error on worker #") as exc_info:
            self.run_cluster(fs, node_modules)

        assert "Tried to overwrite" in str(exc_info.value)
        assert "fesm2015" not in markers(core)
        # Dependants of core never started.
        assert markers(node_modules / "@lib" / "common") == {}

    def test_needs_a_worker(self, fs):
        with pytest.raises(ValueError):
            ClusterExecutor(0, DirectPackageJsonUpdater(fs))
