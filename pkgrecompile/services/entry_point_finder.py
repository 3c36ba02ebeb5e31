"""
Entry-point discovery.

Two strategies, both returning a SortedEntryPointsInfo:

- DirectoryWalkerEntryPointFinder walks every base path and collects all
  entry points it finds, then sorts the lot.
- TargetedEntryPointFinder starts from one entry point and only visits what
  it (transitively) depends on; unrelated packages are never read.
"""

import logging
import os
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional

from ..dependencies.dependency_resolver import DependencyResolver
from ..domain.entry_point import EntryPoint, SortedEntryPointsInfo
from ..domain.path_mappings import PathMappings
from ..exit_codes import MissingDependenciesError
from ..infra.file_system import FileSystem
from .entry_point_loader import get_entry_point_info
from .package_config import PackageConfiguration

logger = logging.getLogger(__name__)


def get_base_paths(fs: FileSystem, source_directory: Path, path_mappings: Optional[PathMappings]) -> List[Path]:
    """
    Directories that may contain packages.

    The source directory plus the fixed prefix of every path-mapping
    template. The result is sorted and no entry lies inside another one.
    """
    base_paths = [fs.resolve(source_directory)]
    if path_mappings is not None:
        base_url = fs.resolve(path_mappings.base_url)
        for templates in path_mappings.paths.values():
            for template in templates:
                base_paths.append(fs.resolve(base_url, template.split('*', 1)[0]))

    base_paths = sorted(set(base_paths))
    result: List[Path] = []
    for path in base_paths:
        if not any(_is_same_or_below(path, kept) for kept in result):
            result.append(path)
    return result


def _is_same_or_below(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


class DirectoryWalkerEntryPointFinder:
    """
    Example:
        finder = DirectoryWalkerEntryPointFinder(fs, config, resolver, base_path, path_mappings)
        info = finder.find_entry_points()
    """

    def __init__(
        self,
        fs: FileSystem,
        config: PackageConfiguration,
        resolver: DependencyResolver,
        source_directory: Path,
        path_mappings: Optional[PathMappings] = None,
    ):
        self.fs = fs
        self.config = config
        self.resolver = resolver
        self.base_paths = get_base_paths(fs, source_directory, path_mappings)

    def find_entry_points(self) -> SortedEntryPointsInfo:
        unsorted: List[EntryPoint] = []
        for base_path in self.base_paths:
            found = self.walk_directory_for_entry_points(base_path)
            logger.debug(f"Found {len(found)} entry-point(s) under {base_path}")
            unsorted.extend(found)
        return self.resolver.sort_entry_points_by_dependency(unsorted)

    def walk_directory_for_entry_points(self, source_directory: Path) -> List[EntryPoint]:
        """
        Collect entry points under `source_directory`.

        A directory that is a package contributes its own entry points and
        is not descended into further; any other directory is searched
        recursively, together with nested node_modules folders.
        """
        entry_points = self._get_entry_points_for_package(source_directory)
        if entry_points:
            return entry_points
        if not self.fs.is_dir(source_directory):
            return []

        for name in self.fs.list_dir(source_directory):
            if name.startswith('.'):
                continue
            package_path = source_directory / name
            if self.fs.is_symlink(package_path) or not self.fs.is_dir(package_path):
                continue

            entry_points.extend(self.walk_directory_for_entry_points(package_path))

            nested_node_modules = package_path / 'node_modules'
            if self.fs.is_dir(nested_node_modules):
                entry_points.extend(self.walk_directory_for_entry_points(nested_node_modules))

        return entry_points

    def _get_entry_points_for_package(self, package_path: Path) -> List[EntryPoint]:
        top_level = get_entry_point_info(self.fs, self.config, package_path, package_path)
        if top_level is None:
            return []

        entry_points = [top_level]
        self._walk_package(package_path, package_path, entry_points)
        return entry_points

    def _walk_package(self, package_path: Path, directory: Path, entry_points: List[EntryPoint]) -> None:
        for name in self.fs.list_dir(directory):
            if name.startswith('.') or name == 'node_modules':
                continue
            path = directory / name
            if self.fs.is_symlink(path):
                continue
            is_directory = self.fs.is_dir(path)
            if not is_directory and not name.endswith('.js'):
                continue

            # `foo.js` may stand for a configured entry point at `foo`.
            candidate = path if is_directory else path.with_name(name[:-len('.js')])
            sub_entry_point = get_entry_point_info(self.fs, self.config, package_path, candidate)
            if sub_entry_point is not None:
                entry_points.append(sub_entry_point)

            if is_directory:
                self._walk_package(package_path, path, entry_points)


class TargetedEntryPointFinder:
    """
    Finds the target entry point and everything it depends on.

    Raises MissingDependenciesError when the target itself cannot be
    compiled because of missing dependencies.
    """

    def __init__(
        self,
        fs: FileSystem,
        config: PackageConfiguration,
        resolver: DependencyResolver,
        base_path: Path,
        target_path: Path,
        path_mappings: Optional[PathMappings] = None,
    ):
        self.fs = fs
        self.config = config
        self.resolver = resolver
        self.base_path = fs.resolve(base_path)
        self.target_path = fs.resolve(target_path)
        self.path_mappings = path_mappings
        self._base_paths: Optional[List[Path]] = None
        self._unprocessed_paths: Deque[Path] = deque()
        self._unsorted_entry_points: Dict[Path, EntryPoint] = {}

    def find_entry_points(self) -> SortedEntryPointsInfo:
        self._unprocessed_paths = deque([self.target_path])
        self._unsorted_entry_points = {}
        while self._unprocessed_paths:
            self._process_next_path()

        target = self._unsorted_entry_points.get(self.target_path)
        info = self.resolver.sort_entry_points_by_dependency(
            list(self._unsorted_entry_points.values()), target
        )

        for invalid in info.invalid_entry_points:
            if invalid.entry_point.path == self.target_path:
                raise MissingDependenciesError(invalid.entry_point.name, invalid.missing_dependencies)
        return info

    def _process_next_path(self) -> None:
        path = self._unprocessed_paths.popleft()
        entry_point = self._get_entry_point(path)
        if entry_point is None or not entry_point.compiled_by_target:
            return
        self._unsorted_entry_points[entry_point.path] = entry_point

        deps = self.resolver.get_entry_point_dependencies(entry_point)
        for dep in sorted(deps.dependencies):
            if dep not in self._unsorted_entry_points and dep not in self._unprocessed_paths:
                self._unprocessed_paths.append(dep)

    def _get_entry_point(self, entry_point_path: Path) -> Optional[EntryPoint]:
        package_path = self.compute_package_path(entry_point_path)
        return get_entry_point_info(self.fs, self.config, package_path, entry_point_path)

    def compute_package_path(self, entry_point_path: Path) -> Path:
        """
        The package containing `entry_point_path`.

        The base path is tried first, then the path-mapped base paths, and
        finally the nearest enclosing node_modules folder.
        """
        if _is_same_or_below(entry_point_path, self.base_path):
            package_path = self._package_path_from_containing_path(entry_point_path, self.base_path)
            if package_path is not None:
                return package_path

        for base_path in self._get_base_paths():
            if _is_same_or_below(entry_point_path, base_path):
                package_path = self._package_path_from_containing_path(entry_point_path, base_path)
                if package_path is not None:
                    return package_path
                # Base paths never nest, so no other one can match.
                break

        return self._package_path_from_nearest_node_modules(entry_point_path)

    def _get_base_paths(self) -> List[Path]:
        if self._base_paths is None:
            self._base_paths = get_base_paths(self.fs, self.base_path, self.path_mappings)
        return self._base_paths

    def _package_path_from_containing_path(self, entry_point_path: Path, containing_path: Path) -> Optional[Path]:
        package_path = containing_path
        segments = list(Path(os.path.relpath(entry_point_path, containing_path)).parts)
        if segments == ['.']:
            segments = []

        node_modules_index = _last_index(segments, 'node_modules')
        if node_modules_index == -1 and self.fs.exists(package_path / 'package.json'):
            return package_path

        # Start below the deepest node_modules folder on the way to the entry point.
        while node_modules_index >= 0:
            package_path = package_path / segments.pop(0)
            node_modules_index -= 1

        for segment in segments:
            package_path = package_path / segment
            if self.fs.exists(package_path / 'package.json'):
                return package_path
        return None

    def _package_path_from_nearest_node_modules(self, entry_point_path: Path) -> Path:
        package_path = entry_point_path
        scoped_package_path = package_path
        container_path = package_path.parent
        while container_path.parent != container_path and container_path.name != 'node_modules':
            scoped_package_path = package_path
            package_path = container_path
            container_path = container_path.parent

        if self.fs.exists(package_path / 'package.json'):
            return package_path
        if package_path.name.startswith('@') and self.fs.exists(scoped_package_path / 'package.json'):
            return scoped_package_path
        return entry_point_path


def _last_index(items: List[str], value: str) -> int:
    for index in range(len(items) - 1, -1, -1):
        if items[index] == value:
            return index
    return -1
