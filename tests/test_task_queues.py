"""Tests for the serial and parallel task queues."""

from pathlib import Path

import pytest

from pkgrecompile.domain import DependencyGraph, EntryPoint, Task
from pkgrecompile.execution.task_queues import ParallelTaskQueue, SerialTaskQueue


def make_entry_point(name):
    path = Path("/node_modules") / name
    return EntryPoint(name, path, path, path / "index.d.ts", True, {"name": name})


def make_tasks(entry_point, *properties):
    return [Task(entry_point, prop, (prop,), i == 0) for i, prop in enumerate(properties)]


class TestSerialTaskQueue:

    def test_hands_out_tasks_in_order(self):
        tasks = make_tasks(make_entry_point("lib"), "fesm2015", "esm5")
        queue = SerialTaskQueue(tasks)

        seen = []
        while not queue.all_tasks_completed:
            task = queue.get_next_task()
            seen.append(task)
            queue.mark_task_completed(task)

        assert seen == tasks
        assert queue.get_next_task() is None

    def test_one_task_at_a_time(self):
        queue = SerialTaskQueue(make_tasks(make_entry_point("lib"), "fesm2015", "esm5"))
        queue.get_next_task()

        with pytest.raises(RuntimeError, match="while there is already a task in progress"):
            queue.get_next_task()

    def test_completing_unknown_task(self):
        tasks = make_tasks(make_entry_point("lib"), "esm5")
        queue = SerialTaskQueue(tasks)

        with pytest.raises(RuntimeError, match="not in progress"):
            queue.mark_task_completed(tasks[0])

    def test_not_completed_while_in_progress(self):
        queue = SerialTaskQueue(make_tasks(make_entry_point("lib"), "esm5"))
        queue.get_next_task()

        assert not queue.all_tasks_completed
        assert "In-progress tasks (1)" in str(queue)

    def test_empty_queue(self):
        assert SerialTaskQueue([]).all_tasks_completed


class TestParallelTaskQueue:

    @pytest.fixture
    def setup(self):
        core, common, http, other = (make_entry_point(n) for n in ("core", "common", "http", "other"))
        graph = DependencyGraph()
        for ep in (core, common, http, other):
            graph.add_node(ep.path, ep)
        graph.add_dependency(common.path, core.path)
        graph.add_dependency(http.path, common.path)

        tasks = {
            "core": make_tasks(core, "fesm2015", "esm5"),
            "common": make_tasks(common, "fesm2015", "esm5"),
            "http": make_tasks(http, "esm5"),
            "other": make_tasks(other, "esm5"),
        }
        ordered = tasks["core"] + tasks["common"] + tasks["http"] + tasks["other"]
        return ParallelTaskQueue(ordered, graph), tasks

    def test_independent_tasks_are_available_at_once(self, setup):
        queue, tasks = setup

        handed_out = [queue.get_next_task() for _ in range(4)]

        assert handed_out == tasks["core"] + tasks["other"] + [None]

    def test_dependants_wait_for_every_task_of_a_dependency(self, setup):
        queue, tasks = setup
        core1, core2 = queue.get_next_task(), queue.get_next_task()

        assert queue.get_next_task() is tasks["other"][0]

        queue.mark_task_completed(core1)
        assert queue.get_next_task() is None

        queue.mark_task_completed(core2)
        assert queue.get_next_task() is tasks["common"][0]
        assert queue.get_next_task() is tasks["common"][1]
        assert queue.get_next_task() is None

    def test_transitive_dependencies_block(self, setup):
        queue, tasks = setup

        while True:
            task = queue.get_next_task()
            if task is None:
                break
            if task.entry_point.name != "common":
                queue.mark_task_completed(task)

        # core and other are done, common is in progress: http is still blocked.
        assert queue.get_next_task() is None
        for task in tasks["common"]:
            queue.mark_task_completed(task)
        assert queue.get_next_task() is tasks["http"][0]

    def test_drains_completely(self, setup):
        queue, _ = setup
        completed = []
        while not queue.all_tasks_completed:
            task = queue.get_next_task()
            assert task is not None
            completed.append(task.entry_point.name)
            queue.mark_task_completed(task)

        assert completed.index("core") < completed.index("common") < completed.index("http")
