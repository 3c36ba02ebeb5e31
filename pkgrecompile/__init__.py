"""
pkgrecompile - Recompile installed library packages, format by format.

Given a node_modules-style directory, pkgrecompile finds every entry point
that needs processing, sorts them by their dependencies, compiles each
format property once and records what it did in the package's own
package.json, so running it again only does what is left.

Quick Start:
    from pkgrecompile import RecompileOptions, run

    # Whole tree, synchronously
    run(RecompileOptions(base_path="./node_modules"))

    # One entry point and its dependencies, on worker processes
    run(RecompileOptions(
        base_path="./node_modules",
        target_entry_point_path="@scope/lib",
        async_mode=True,
    ))

    # From a coroutine
    await recompile_async(RecompileOptions(base_path="./node_modules"))

Execution:
    SingleProcessExecutor - serial, synchronous
    AsyncSingleProcessExecutor - serial, yields to the event loop
    ClusterExecutor - worker processes, dependency-aware scheduling

Extension:
    Transformer - subclass and pass as "module:Class" to change what
    compiling a bundle means (the default re-emits files unchanged)
"""

__version__ = "0.4.0"

# High-level API
from .main import (
    RecompileOptions,
    recompile,
    recompile_async,
    run,
)

# Domain objects
from .domain import (
    SUPPORTED_FORMAT_PROPERTIES,
    EntryPoint,
    Task,
    TaskProcessingOutcome,
    PathMappings,
)

# Extension points
from .services.transformer import (
    Transformer,
    TransformResult,
    Diagnostic,
    FileToWrite,
)

# Errors
from .exit_codes import (
    CommandError,
    ConfigError,
    CompilationError,
    DependencyCycleError,
    MissingDependenciesError,
    UnprocessableEntryPointsError,
)

__all__ = [
    # Version
    "__version__",
    # High-level API
    "RecompileOptions",
    "recompile",
    "recompile_async",
    "run",
    # Domain objects
    "SUPPORTED_FORMAT_PROPERTIES",
    "EntryPoint",
    "Task",
    "TaskProcessingOutcome",
    "PathMappings",
    # Extension points
    "Transformer",
    "TransformResult",
    "Diagnostic",
    "FileToWrite",
    # Errors
    "CommandError",
    "ConfigError",
    "CompilationError",
    "DependencyCycleError",
    "MissingDependenciesError",
    "UnprocessableEntryPointsError",
]
