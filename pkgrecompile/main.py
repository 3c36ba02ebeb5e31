"""
Orchestration: one recompilation run from options to finished tasks.

- recompile(options): synchronous, single process
- recompile_async(options): coroutine; uses worker processes when the
  machine allows it, otherwise the async single-process executor
- run(options): picks one of the two based on `options.async_mode`
"""

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .dependencies.dependency_host import create_dependency_hosts
from .dependencies.dependency_resolver import DependencyResolver
from .dependencies.module_resolver import ModuleResolver
from .domain.dependency_graph import DependencyGraph
from .domain.entry_point import SUPPORTED_FORMAT_PROPERTIES, SortedEntryPointsInfo
from .domain.path_mappings import PathMappings
from .domain.task import Task, TaskProcessingOutcome
from .exit_codes import CompilationError, ConfigError, UnprocessableEntryPointsError
from .execution.api import Executor, TaskCompletedCallback, TaskQueue
from .execution.cluster.executor import ClusterExecutor
from .execution.single_process import AsyncSingleProcessExecutor, SingleProcessExecutor
from .execution.task_queues import ParallelTaskQueue, SerialTaskQueue
from .infra.file_system import FileSystem
from .infra.file_writer import FileWriter, InPlaceFileWriter, NewEntryPointFileWriter
from .infra.package_json_updater import DirectPackageJsonUpdater, PackageJsonUpdater
from .services.build_marker import has_been_processed, mark_as_processed
from .services.bundle import make_entry_point_bundle
from .services.entry_point_finder import DirectoryWalkerEntryPointFinder, TargetedEntryPointFinder
from .services.entry_point_loader import get_entry_point_format
from .services.package_config import PackageConfiguration
from .services.task_planner import plan_tasks
from .services.transformer import DEFAULT_TRANSFORMER, format_diagnostics, load_transformer

logger = logging.getLogger(__name__)


@dataclass
class RecompileOptions:
    """
    Everything one run needs, validated once on construction.

    Example:
        options = RecompileOptions(base_path='./node_modules', properties_to_consider=['esm5'])
        recompile(options)
    """
    base_path: Union[str, Path]
    target_entry_point_path: Optional[Union[str, Path]] = None
    properties_to_consider: Sequence[str] = SUPPORTED_FORMAT_PROPERTIES
    compile_all_formats: bool = True
    create_new_entry_point_formats: bool = False
    backup_originals: bool = True
    path_mappings: Optional[Union[PathMappings, Dict[str, Any]]] = None
    async_mode: bool = False
    max_workers: int = 8
    parallelism: Optional[int] = None
    transformer: str = DEFAULT_TRANSFORMER

    def __post_init__(self):
        self.base_path = Path(os.path.abspath(Path(self.base_path).expanduser()))
        if self.target_entry_point_path is not None:
            target = Path(self.target_entry_point_path).expanduser()
            if not target.is_absolute():
                target = self.base_path / target
            self.target_entry_point_path = Path(os.path.abspath(target))

        if isinstance(self.properties_to_consider, str):
            self.properties_to_consider = [self.properties_to_consider]
        self.properties_to_consider = tuple(self.properties_to_consider)

        if isinstance(self.path_mappings, dict):
            self.path_mappings = PathMappings.from_dict(self.path_mappings)

        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.parallelism is None:
            self.parallelism = os.cpu_count() or 1

    @property
    def in_parallel(self) -> bool:
        return self.async_mode and self.parallelism >= 2

    @property
    def worker_count(self) -> int:
        return min(self.max_workers, self.parallelism - 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_path': str(self.base_path),
            'target_entry_point_path': str(self.target_entry_point_path) if self.target_entry_point_path else None,
            'properties_to_consider': list(self.properties_to_consider),
            'compile_all_formats': self.compile_all_formats,
            'create_new_entry_point_formats': self.create_new_entry_point_formats,
            'backup_originals': self.backup_originals,
            'path_mappings': self.path_mappings.to_dict() if self.path_mappings else None,
            'async_mode': self.async_mode,
            'max_workers': self.max_workers,
            'parallelism': self.parallelism,
            'transformer': self.transformer,
        }


def ensure_supported_properties(properties: Sequence[str]) -> Tuple[str, ...]:
    """
    Drop properties this tool cannot compile.

    Raises:
        ConfigError: if none of `properties` is supported
    """
    supported = tuple(prop for prop in properties if prop in SUPPORTED_FORMAT_PROPERTIES)
    if not supported:
        raise ConfigError(
            f"No supported format property to consider among [{', '.join(properties)}]. "
            f"Supported properties: {', '.join(SUPPORTED_FORMAT_PROPERTIES)}"
        )
    return supported


def has_processed_target_entry_point(
    fs: FileSystem,
    target_path: Path,
    properties_to_consider: Sequence[str],
    compile_all_formats: bool,
) -> bool:
    """
    True if the target needs no further work.

    With `compile_all_formats` every present property must be processed;
    otherwise the first present property decides.
    """
    package_json_path = target_path / 'package.json'
    # A configured target may have no package.json at all.
    if not fs.exists(package_json_path):
        return False

    package_json = json.loads(fs.read_text(package_json_path))
    for prop in properties_to_consider:
        if package_json.get(prop):
            if has_been_processed(package_json, prop, target_path):
                if not compile_all_formats:
                    return True
            else:
                return False
    return True


def find_entry_points(
    fs: FileSystem,
    pkg_json_updater: Optional[PackageJsonUpdater],
    options: RecompileOptions,
) -> SortedEntryPointsInfo:
    """
    Discover and sort the entry points of a run.

    For a targeted run that finds nothing to compile, the target is marked
    as processed for every supported format (requires `pkg_json_updater`).
    """
    module_resolver = ModuleResolver(fs, options.path_mappings)
    resolver = DependencyResolver(fs, create_dependency_hosts(fs, module_resolver))
    config = PackageConfiguration(fs, options.base_path.parent)

    if options.target_entry_point_path is not None:
        finder = TargetedEntryPointFinder(
            fs, config, resolver, options.base_path, options.target_entry_point_path, options.path_mappings
        )
        info = finder.find_entry_points()
        if not info.entry_points and pkg_json_updater is not None:
            _mark_non_target_package_as_processed(fs, pkg_json_updater, options.target_entry_point_path)
    else:
        finder = DirectoryWalkerEntryPointFinder(fs, config, resolver, options.base_path, options.path_mappings)
        info = finder.find_entry_points()

    for invalid in info.invalid_entry_points:
        missing = '\n'.join(f" - {dep}" for dep in invalid.missing_dependencies)
        logger.debug(
            f"Invalid entry-point {invalid.entry_point.path}. It is missing required dependencies:\n{missing}"
        )
    return info


def _mark_non_target_package_as_processed(fs: FileSystem, pkg_json_updater: PackageJsonUpdater, path: Path) -> None:
    package_json_path = path / 'package.json'
    if not fs.exists(package_json_path):
        return
    package_json = json.loads(fs.read_text(package_json_path))
    # Marking formats the package does not declare is redundant but harmless.
    mark_as_processed(pkg_json_updater, package_json, package_json_path, SUPPORTED_FORMAT_PROPERTIES)


@dataclass
class Analysis:
    """Planned tasks, the dependency graph they follow, and the entry points with nothing to compile."""
    tasks: List[Task]
    graph: DependencyGraph
    unprocessable_paths: List[Path]
    properties: Tuple[str, ...]

    def unprocessable_error(self) -> Optional[UnprocessableEntryPointsError]:
        if not self.unprocessable_paths:
            return None
        return UnprocessableEntryPointsError(self.unprocessable_paths, self.properties)


def analyze(
    fs: FileSystem,
    pkg_json_updater: Optional[PackageJsonUpdater],
    options: RecompileOptions,
) -> Analysis:
    """Find entry points and plan their tasks."""
    logger.debug('Analyzing entry-points...')
    start_time = time.time()

    properties = ensure_supported_properties(options.properties_to_consider)
    info = find_entry_points(fs, pkg_json_updater, options)
    tasks, unprocessable_paths = plan_tasks(info.entry_points, properties, options.compile_all_formats)

    duration = round(time.time() - start_time)
    logger.debug(f"Analyzed {len(info.entry_points)} entry-points in {duration}s. (Total tasks: {len(tasks)})")
    return Analysis(tasks, info.graph, unprocessable_paths, properties)


class CompileFnFactory:
    """
    Builds the function that compiles one task.

    Holds only plain, picklable settings so cluster workers can receive it
    and build their own compile function.
    """

    def __init__(
        self,
        path_mappings: Optional[PathMappings] = None,
        create_new_entry_point_formats: bool = False,
        backup_originals: bool = True,
        transformer: str = DEFAULT_TRANSFORMER,
    ):
        self.path_mappings = path_mappings
        self.create_new_entry_point_formats = create_new_entry_point_formats
        self.backup_originals = backup_originals
        self.transformer = transformer

    @classmethod
    def from_options(cls, options: RecompileOptions) -> 'CompileFnFactory':
        return cls(
            path_mappings=options.path_mappings,
            create_new_entry_point_formats=options.create_new_entry_point_formats,
            backup_originals=options.backup_originals,
            transformer=options.transformer,
        )

    def get_file_writer(self, fs: FileSystem, pkg_json_updater: PackageJsonUpdater) -> FileWriter:
        if self.create_new_entry_point_formats:
            return NewEntryPointFileWriter(fs, pkg_json_updater, backup=self.backup_originals)
        return InPlaceFileWriter(fs, backup=self.backup_originals)

    def __call__(self, on_task_completed: TaskCompletedCallback, pkg_json_updater: PackageJsonUpdater):
        fs = FileSystem()
        file_writer = self.get_file_writer(fs, pkg_json_updater)
        transformer = load_transformer(self.transformer, fs)
        hosts = create_dependency_hosts(fs, ModuleResolver(fs, self.path_mappings))

        def compile_task(task: Task) -> None:
            entry_point = task.entry_point
            format_property = task.format_property
            format_path = entry_point.format_path(format_property)
            fmt = get_entry_point_format(fs, entry_point, format_property)

            if format_path is None or fmt is None:
                raise CompilationError(
                    f"No format-path or format for {entry_point.path} : {format_property} "
                    f"(format_path: {format_path} | format: {fmt})"
                )

            if has_been_processed(entry_point.package_json, format_property, entry_point.path):
                logger.debug(f"Skipping {entry_point.name} : {format_property} (already compiled).")
                on_task_completed(task, TaskProcessingOutcome.ALREADY_PROCESSED)
                return

            bundle = make_entry_point_bundle(fs, hosts[fmt], entry_point, format_property, fmt, task.process_dts)

            logger.info(f"Compiling {entry_point.name} : {format_property} as {fmt}")
            result = transformer.transform(bundle)
            if not result.success:
                raise CompilationError(
                    f"Failed to compile entry-point {entry_point.name} due to compilation errors:\n"
                    f"{format_diagnostics(result.diagnostics)}"
                )
            if result.diagnostics:
                logger.warning(format_diagnostics(result.diagnostics))

            file_writer.write_bundle(bundle, result.transformed_files, task.format_properties_to_mark_as_processed)
            on_task_completed(task, TaskProcessingOutcome.PROCESSED)

        return compile_task


def get_executor(options: RecompileOptions, pkg_json_updater: PackageJsonUpdater, asynchronous: bool) -> Executor:
    if asynchronous and options.in_parallel:
        return ClusterExecutor(options.worker_count, pkg_json_updater)
    if asynchronous:
        return AsyncSingleProcessExecutor(pkg_json_updater)
    return SingleProcessExecutor(pkg_json_updater)


def _prepare(options: RecompileOptions, asynchronous: bool):
    fs = FileSystem()
    if not fs.is_dir(options.base_path):
        raise ConfigError(f"Base path {options.base_path} is not a directory")

    properties = ensure_supported_properties(options.properties_to_consider)

    target = options.target_entry_point_path
    if target is not None and has_processed_target_entry_point(fs, target, properties, options.compile_all_formats):
        logger.debug('The target entry-point has already been processed')
        return None

    pkg_json_updater = DirectPackageJsonUpdater(fs)
    in_parallel = asynchronous and options.in_parallel
    analyses: List[Analysis] = []

    def analyze_entry_points() -> TaskQueue:
        analysis = analyze(fs, pkg_json_updater, options)
        analyses.append(analysis)
        if in_parallel:
            return ParallelTaskQueue(analysis.tasks, analysis.graph)
        return SerialTaskQueue(analysis.tasks)

    executor = get_executor(options, pkg_json_updater, asynchronous)
    return executor, analyze_entry_points, CompileFnFactory.from_options(options), analyses


def _raise_for_unprocessable(analyses: List[Analysis]) -> None:
    # Called once the queue is drained.
    for analysis in analyses:
        error = analysis.unprocessable_error()
        if error is not None:
            raise error


def recompile(options: RecompileOptions) -> None:
    """
    Recompile synchronously in this process.

    Raises:
        CommandError: on any fatal error (see exit_codes)
        UnprocessableEntryPointsError: once every other entry point has been
            compiled, if some entry points had none of the considered formats
    """
    prepared = _prepare(options, asynchronous=False)
    if prepared is None:
        return
    executor, analyze_entry_points, create_compile_fn, analyses = prepared
    executor.execute(analyze_entry_points, create_compile_fn)
    _raise_for_unprocessable(analyses)


async def recompile_async(options: RecompileOptions) -> None:
    """Recompile as a coroutine, on worker processes when parallelism allows."""
    prepared = _prepare(options, asynchronous=True)
    if prepared is None:
        return
    executor, analyze_entry_points, create_compile_fn, analyses = prepared
    await executor.execute(analyze_entry_points, create_compile_fn)
    _raise_for_unprocessable(analyses)


def run(options: RecompileOptions) -> None:
    """Run `recompile_async` to completion if `async_mode` is set, else `recompile`."""
    if options.async_mode:
        asyncio.run(recompile_async(options))
    else:
        recompile(options)
