"""
Standard exit codes and fatal errors for pkgrecompile.

Following Unix/POSIX conventions for command-line tools: 0 on success and
1 on any fatal error. Every error a run can surface derives from
CommandError so the CLI can map it to an exit code uniformly.
"""
from typing import Iterable

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # Fatal error (unprocessable, missing deps, compile failure...)
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for exceptions that do not carry their own
EXCEPTION_EXIT_CODES = {
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that carries the exit code the CLI should use.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when options or configuration files are invalid."""
    def __init__(self, message: str):
        super().__init__(message)


class UnprocessableEntryPointsError(CommandError):
    """Raised once for all entry-points with no processable format."""
    def __init__(self, entry_point_paths: Iterable[str], properties_tried: Iterable[str]):
        self.entry_point_paths = [str(p) for p in entry_point_paths]
        self.properties_tried = list(properties_tried)
        message = (
            'Unable to process any formats for the following entry-points '
            f"(tried {', '.join(self.properties_tried)}): "
            + ''.join(f"\n  - {path}" for path in self.entry_point_paths)
        )
        super().__init__(message)


class MissingDependenciesError(CommandError):
    """Raised when the targeted entry-point has missing dependencies."""
    def __init__(self, entry_point_name: str, missing_dependencies: Iterable[str]):
        self.entry_point_name = entry_point_name
        self.missing_dependencies = list(missing_dependencies)
        message = (
            f'The target entry-point "{entry_point_name}" has missing dependencies:\n'
            + ''.join(f" - {dep}\n" for dep in self.missing_dependencies)
        )
        super().__init__(message)


class DependencyCycleError(CommandError):
    """Raised when entry-points depend on each other in a cycle."""
    def __init__(self, cycle: Iterable[str]):
        self.cycle = [str(node) for node in cycle]
        super().__init__(f"Dependency cycle found: {' -> '.join(self.cycle)}")


class CompilationError(CommandError):
    """Raised when a task fails fatally; aborts the whole run."""
    def __init__(self, message: str):
        super().__init__(message)
