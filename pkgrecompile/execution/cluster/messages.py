"""
Messages exchanged between the cluster master and its workers.

Everything sent over a worker pipe is pickled, so messages are plain frozen
dataclasses holding picklable values.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List

from ...domain.task import Task, TaskProcessingOutcome
from ...infra.package_json_updater import PackageJsonChange


# Master -> worker

@dataclass(frozen=True)
class ProcessTask:
    task: Task


@dataclass(frozen=True)
class Ack:
    """Reply to UpdatePackageJson once the changes are on disk."""


# Worker -> master

@dataclass(frozen=True)
class TaskCompleted:
    outcome: TaskProcessingOutcome


@dataclass(frozen=True)
class UpdatePackageJson:
    package_json_path: Path
    changes: List[PackageJsonChange]


@dataclass(frozen=True)
class WorkerError:
    message: str
    traceback: str = ''
