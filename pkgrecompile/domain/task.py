"""
Task domain objects for pkgrecompile.

A Task is one unit of scheduled work: compile one format property of one
entry point, optionally processing its typings as well.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

from .entry_point import EntryPoint


class TaskProcessingOutcome(Enum):
    """How a task finished."""
    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True, eq=False)
class Task:
    """
    Compile `format_property` of `entry_point`.

    `format_properties_to_mark_as_processed` is the equivalence class of
    properties sharing the same bundle path; all of them are marked once the
    task completes. Tasks compare by identity.
    """
    entry_point: EntryPoint
    format_property: str
    format_properties_to_mark_as_processed: Tuple[str, ...]
    process_dts: bool

    def __str__(self) -> str:
        return (
            f"{{EntryPoint: {self.entry_point.name}, "
            f"FormatProperty: {self.format_property}, "
            f"processDts: {self.process_dts}}}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry_point': self.entry_point.name,
            'path': str(self.entry_point.path),
            'format_property': self.format_property,
            'mark_as_processed': list(self.format_properties_to_mark_as_processed),
            'process_dts': self.process_dts,
        }
