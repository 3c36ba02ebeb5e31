"""
Entry-point domain objects for pkgrecompile.

An EntryPoint is a discovered, compilable unit: a directory with a
package.json (or a configured stand-in) that lists bundle paths per format.
These objects are created once during discovery and never mutated.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .dependency_graph import DependencyGraph

# Format properties this tool knows how to compile, most preferred first.
SUPPORTED_FORMAT_PROPERTIES: Tuple[str, ...] = (
    'fesm2015',
    'fesm5',
    'es2015',
    'esm2015',
    'esm5',
    'main',
    'module',
)

# Module formats a bundle can be written in.
ESM2015 = 'esm2015'
ESM5 = 'esm5'
UMD = 'umd'
COMMONJS = 'commonjs'

# Marker key recording the typings as processed.
TYPINGS_PROPERTY = 'typings'


@dataclass(frozen=True)
class EntryPoint:
    """A package (or sub-path of one) that can be recompiled on its own."""
    name: str
    path: Path
    package: Path
    typings: Path
    compiled_by_target: bool
    package_json: Dict[str, Any] = field(compare=False, hash=False, repr=False)

    @property
    def package_json_path(self) -> Path:
        return self.path / 'package.json'

    def format_path(self, property_name: str) -> Optional[str]:
        """Relative bundle path for a format property, if declared."""
        value = self.package_json.get(property_name)
        return value if isinstance(value, str) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'path': str(self.path),
            'package': str(self.package),
            'typings': str(self.typings),
            'compiled_by_target': self.compiled_by_target,
        }


@dataclass(frozen=True)
class InvalidEntryPoint:
    """An entry point excluded from the graph because of missing dependencies."""
    entry_point: EntryPoint
    missing_dependencies: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': str(self.entry_point.path),
            'name': self.entry_point.name,
            'missing_dependencies': list(self.missing_dependencies),
        }


@dataclass(frozen=True)
class IgnoredDependency:
    """A dependency on a package this tool does not process."""
    entry_point: EntryPoint
    dependency_path: Path


@dataclass
class SortedEntryPointsInfo:
    """Result of entry-point discovery: ordered entry points plus the graph."""
    entry_points: List[EntryPoint]
    invalid_entry_points: List[InvalidEntryPoint]
    ignored_dependencies: List[IgnoredDependency]
    graph: DependencyGraph
