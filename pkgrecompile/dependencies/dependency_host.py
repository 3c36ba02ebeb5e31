"""
Dependency hosts: find what a bundle depends on.

A DependencyHost pairs one import scanner (ESM, UMD or CommonJS) with the
module resolver. Starting from a bundle's entry file it follows relative
imports through the package and sorts every other specifier into
dependencies (entry points), deep imports, or missing modules.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Set

from ..domain.entry_point import COMMONJS, ESM2015, ESM5, UMD
from ..infra.file_system import FileSystem
from .import_scanners import SCANNERS, ImportScanner
from .module_resolver import (
    ModuleResolver,
    ResolvedDeepImport,
    ResolvedExternalModule,
    ResolvedRelativeModule,
)

logger = logging.getLogger(__name__)


@dataclass
class DependencyInfo:
    """What a bundle depends on, plus every package file it reaches."""
    dependencies: Set[Path] = field(default_factory=set)
    missing: Set[str] = field(default_factory=set)
    deep_imports: Set[Path] = field(default_factory=set)
    files: List[Path] = field(default_factory=list)


class DependencyHost:
    """
    Example:
        host = DependencyHost(fs, resolver, scan_esm_imports)
        info = host.find_dependencies(Path('/node_modules/lib/esm5/lib.js'))
    """

    def __init__(self, fs: FileSystem, module_resolver: ModuleResolver, scanner: ImportScanner):
        self.fs = fs
        self.module_resolver = module_resolver
        self.scanner = scanner

    def find_dependencies(self, entry_file: Path) -> DependencyInfo:
        info = DependencyInfo()
        if self.fs.is_file(entry_file):
            self._recursively_find_dependencies(entry_file, info, set())
        return info

    def _recursively_find_dependencies(self, file: Path, info: DependencyInfo, visited: Set[Path]) -> None:
        visited.add(file)
        info.files.append(file)

        for specifier in self.scanner(self.fs.read_text(file)):
            resolved = self.module_resolver.resolve_module_import(specifier, file)
            if resolved is None:
                info.missing.add(specifier)
            elif isinstance(resolved, ResolvedRelativeModule):
                if resolved.module_path not in visited:
                    self._recursively_find_dependencies(resolved.module_path, info, visited)
            elif isinstance(resolved, ResolvedDeepImport):
                info.deep_imports.add(resolved.import_path)
            elif isinstance(resolved, ResolvedExternalModule):
                info.dependencies.add(resolved.entry_point_path)


def create_dependency_hosts(fs: FileSystem, module_resolver: ModuleResolver) -> Dict[str, DependencyHost]:
    """One host per bundle format; both ESM flavours share the ESM scanner."""
    return {
        fmt: DependencyHost(fs, module_resolver, SCANNERS[fmt])
        for fmt in (ESM5, ESM2015, UMD, COMMONJS)
    }
