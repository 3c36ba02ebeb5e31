"""
Entry-point dependency resolution.

Builds the dependency graph of the entry points this tool compiles and sorts
them so every entry point comes after the entry points it depends on.
Entry points with unresolvable imports, and everything that depends on them,
are split off as invalid.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..domain.dependency_graph import DependencyGraph
from ..domain.entry_point import (
    SUPPORTED_FORMAT_PROPERTIES, EntryPoint, IgnoredDependency,
    InvalidEntryPoint, SortedEntryPointsInfo,
)
from ..exit_codes import CommandError
from ..infra.file_system import FileSystem
from ..services.entry_point_loader import get_entry_point_format
from .dependency_host import DependencyHost, DependencyInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryPointFormatInfo:
    """The bundle used to analyse an entry point's imports."""
    format: str
    format_property: str
    path: Path


class DependencyResolver:
    """
    Sorts entry points by their dependencies.

    Example:
        resolver = DependencyResolver(fs, create_dependency_hosts(fs, module_resolver))
        info = resolver.sort_entry_points_by_dependency(entry_points)
        for entry_point in info.entry_points:
            ...
    """

    def __init__(self, fs: FileSystem, hosts: Dict[str, DependencyHost]):
        self.fs = fs
        self.hosts = hosts

    def sort_entry_points_by_dependency(
        self,
        entry_points: Sequence[EntryPoint],
        target: Optional[EntryPoint] = None,
    ) -> SortedEntryPointsInfo:
        """
        Sort `entry_points` so that dependencies come first.

        With a `target`, only the target and its transitive dependencies are
        returned, dependencies first. An uncompilable target yields nothing.

        Raises:
            DependencyCycleError: if the entry points depend on each other in a cycle
        """
        graph: DependencyGraph[EntryPoint] = DependencyGraph()
        for entry_point in entry_points:
            if entry_point.compiled_by_target:
                graph.add_node(entry_point.path, entry_point)

        invalid_entry_points: List[InvalidEntryPoint] = []
        ignored_dependencies: List[IgnoredDependency] = []

        for entry_point in entry_points:
            if not graph.has_node(entry_point.path):
                continue
            self._add_dependencies(graph, entry_point, invalid_entry_points, ignored_dependencies)

        if target is not None:
            if target.compiled_by_target and graph.has_node(target.path):
                sorted_paths = graph.dependencies_of(target.path) + [target.path]
            else:
                sorted_paths = []
        else:
            sorted_paths = graph.overall_order()

        return SortedEntryPointsInfo(
            entry_points=[graph.get_node_data(path) for path in sorted_paths],
            invalid_entry_points=invalid_entry_points,
            ignored_dependencies=ignored_dependencies,
            graph=graph,
        )

    def get_entry_point_dependencies(self, entry_point: EntryPoint) -> DependencyInfo:
        """Imports of the entry point's first analysable bundle."""
        format_info = self.get_entry_point_format_info(entry_point)
        host = self.hosts[format_info.format]
        return host.find_dependencies(format_info.path)

    def get_entry_point_format_info(self, entry_point: EntryPoint) -> EntryPointFormatInfo:
        """
        Pick the bundle to analyse: the first supported property, in the fixed
        preference order, whose format can be determined.
        """
        for property_name in SUPPORTED_FORMAT_PROPERTIES:
            format_path = entry_point.format_path(property_name)
            if format_path is None:
                continue
            fmt = get_entry_point_format(self.fs, entry_point, property_name)
            if fmt is None or fmt not in self.hosts:
                continue
            return EntryPointFormatInfo(
                format=fmt,
                format_property=property_name,
                path=self.fs.resolve(entry_point.path, format_path),
            )
        raise CommandError(
            f"There is no appropriate source code format in '{entry_point.path}' entry-point."
        )

    def _add_dependencies(
        self,
        graph: DependencyGraph,
        entry_point: EntryPoint,
        invalid_entry_points: List[InvalidEntryPoint],
        ignored_dependencies: List[IgnoredDependency],
    ) -> None:
        info = self.get_entry_point_dependencies(entry_point)

        if info.missing:
            self._remove_invalid(graph, entry_point, sorted(info.missing), invalid_entry_points)
            return

        invalid_paths = {invalid.entry_point.path for invalid in invalid_entry_points}
        for dependency in sorted(info.dependencies):
            if dependency == entry_point.path:
                continue
            if graph.has_node(dependency):
                graph.add_dependency(entry_point.path, dependency)
            elif dependency in invalid_paths:
                self._remove_invalid(graph, entry_point, [str(dependency)], invalid_entry_points)
                return
            else:
                ignored_dependencies.append(IgnoredDependency(entry_point, dependency))

        if info.deep_imports:
            imports = "', '".join(str(p) for p in sorted(info.deep_imports))
            logger.warning(
                f"Entry point '{entry_point.name}' contains deep imports into '{imports}'. "
                'This is probably not a problem, but may cause the compilation of entry points to be out of order.'
            )

    def _remove_invalid(
        self,
        graph: DependencyGraph,
        entry_point: EntryPoint,
        missing: List[str],
        invalid_entry_points: List[InvalidEntryPoint],
    ) -> None:
        # Dependants that were already linked become invalid too.
        for dependant_path in graph.dependants_of(entry_point.path):
            dependant = graph.get_node_data(dependant_path)
            invalid_entry_points.append(InvalidEntryPoint(dependant, (str(entry_point.path),)))
            graph.remove_node(dependant_path)
        invalid_entry_points.append(InvalidEntryPoint(entry_point, tuple(missing)))
        graph.remove_node(entry_point.path)
