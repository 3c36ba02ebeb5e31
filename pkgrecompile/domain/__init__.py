"""
Domain layer for pkgrecompile.

Contains pure domain objects with no I/O or side effects:
- EntryPoint: A compilable package or sub-path of one
- Task: One format property of one entry point to compile
- DependencyGraph: Entry points and what they depend on
- PathMappings: tsconfig-style baseUrl/paths configuration

These objects are immutable where possible and provide
serialization methods for JSONL output.
"""

from .entry_point import (
    SUPPORTED_FORMAT_PROPERTIES,
    EntryPoint,
    InvalidEntryPoint,
    IgnoredDependency,
    SortedEntryPointsInfo,
)
from .task import Task, TaskProcessingOutcome
from .dependency_graph import DependencyGraph
from .path_mappings import PathMappings

__all__ = [
    'SUPPORTED_FORMAT_PROPERTIES',
    'EntryPoint',
    'InvalidEntryPoint',
    'IgnoredDependency',
    'SortedEntryPointsInfo',
    'Task',
    'TaskProcessingOutcome',
    'DependencyGraph',
    'PathMappings',
]
