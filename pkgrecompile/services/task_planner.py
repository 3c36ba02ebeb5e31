"""
Task planning: turn sorted entry points into an ordered list of tasks.

Several format properties often point at the same bundle file (`module` and
`fesm5`, say). Only the first of them gets a task; the others are recorded
as its equivalent properties and are marked processed together with it.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from ..domain.entry_point import SUPPORTED_FORMAT_PROPERTIES, TYPINGS_PROPERTY, EntryPoint
from ..domain.task import Task
from .build_marker import has_been_processed

logger = logging.getLogger(__name__)


def get_properties_to_process(
    package_json: Dict[str, Any],
    properties_to_consider: Sequence[str],
    compile_all_formats: bool,
) -> Tuple[List[str], Dict[str, Tuple[str, ...]]]:
    """
    Choose which format properties of an entry point to compile.

    Args:
        package_json: The entry point's (config-merged) metadata
        properties_to_consider: Candidate properties, in priority order
        compile_all_formats: If False, stop after the first usable property

    Returns:
        Tuple of (properties to process, map from each considered property
        to every supported property sharing its bundle path)
    """
    format_paths_to_consider: List[str] = []
    properties_to_process: List[str] = []

    for prop in properties_to_consider:
        format_path = package_json.get(prop)
        if not isinstance(format_path, str):
            continue
        if format_path in format_paths_to_consider:
            continue
        format_paths_to_consider.append(format_path)
        properties_to_process.append(prop)
        if not compile_all_formats:
            break

    format_path_to_properties: Dict[str, List[str]] = {}
    for prop in SUPPORTED_FORMAT_PROPERTIES:
        format_path = package_json.get(prop)
        if not isinstance(format_path, str) or format_path not in format_paths_to_consider:
            continue
        format_path_to_properties.setdefault(format_path, []).append(prop)

    equivalent_properties_map: Dict[str, Tuple[str, ...]] = {}
    for prop in properties_to_consider:
        format_path = package_json.get(prop)
        if isinstance(format_path, str) and format_path in format_path_to_properties:
            equivalent_properties_map[prop] = tuple(format_path_to_properties[format_path])

    return properties_to_process, equivalent_properties_map


def plan_tasks(
    entry_points: Sequence[EntryPoint],
    properties_to_consider: Sequence[str],
    compile_all_formats: bool,
) -> Tuple[List[Task], List[Path]]:
    """
    One task per format property that still needs compiling, in entry-point
    order.

    Properties already marked processed are skipped. Typings are processed
    by the first task of an entry point only, and only if they are not
    marked processed yet.

    Returns:
        Tuple of (tasks, paths of the entry points that have none of the
        considered properties). Unprocessable entry points are collected
        rather than raised so the others can still be compiled.
    """
    tasks: List[Task] = []
    unprocessable_paths: List[Path] = []

    for entry_point in entry_points:
        package_json = entry_point.package_json
        process_dts = not has_been_processed(package_json, TYPINGS_PROPERTY, entry_point.path)
        properties_to_process, equivalent_properties_map = get_properties_to_process(
            package_json, properties_to_consider, compile_all_formats
        )

        if not properties_to_process:
            unprocessable_paths.append(entry_point.path)
            continue

        for format_property in properties_to_process:
            if has_been_processed(package_json, format_property, entry_point.path):
                logger.debug(f"Skipping {entry_point.name} : {format_property} (already compiled).")
                continue

            tasks.append(Task(
                entry_point=entry_point,
                format_property=format_property,
                format_properties_to_mark_as_processed=equivalent_properties_map.get(format_property, (format_property,)),
                process_dts=process_dts,
            ))
            process_dts = False

    logger.debug(f"Planned {len(tasks)} task(s) for {len(entry_points)} entry-point(s)")
    return tasks, unprocessable_paths
