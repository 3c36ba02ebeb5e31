"""
What happens when a task finishes.
"""

import logging

from ..domain.entry_point import TYPINGS_PROPERTY
from ..domain.task import Task, TaskProcessingOutcome
from ..infra.package_json_updater import PackageJsonUpdater
from ..services.build_marker import mark_as_processed

logger = logging.getLogger(__name__)


def on_task_completed(pkg_json_updater: PackageJsonUpdater, task: Task, outcome: TaskProcessingOutcome) -> None:
    """
    Mark a freshly processed task's formats (and typings, if it processed
    them) in the entry point's package.json.

    Already-processed tasks need no markers.
    """
    if outcome is not TaskProcessingOutcome.PROCESSED:
        return

    entry_point = task.entry_point
    properties = list(task.format_properties_to_mark_as_processed)
    if task.process_dts:
        properties.append(TYPINGS_PROPERTY)

    mark_as_processed(pkg_json_updater, entry_point.package_json, entry_point.package_json_path, properties)
    logger.debug(f"Marked {', '.join(properties)} of {entry_point.name} as processed")
