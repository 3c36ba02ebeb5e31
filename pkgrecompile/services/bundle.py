"""
Entry-point bundles: the set of files one task hands to the transformer.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..dependencies.dependency_host import DependencyHost
from ..dependencies.import_scanners import scan_esm_imports
from ..dependencies.module_resolver import ModuleResolver, is_within
from ..domain.entry_point import EntryPoint
from ..infra.file_system import FileSystem

logger = logging.getLogger(__name__)

DTS_EXTENSIONS = ('', '.d.ts', '/index.d.ts')


@dataclass(frozen=True)
class EntryPointBundle:
    """
    One format of one entry point, ready to be transformed.

    `src_files` are the bundle files inside the package reachable from the
    bundle's entry file; `dts_files` are the declaration files reachable from
    the typings, present only when the task processes typings.
    """
    entry_point: EntryPoint
    format: str
    format_property: str
    path: Path
    src_files: List[Path] = field(default_factory=list)
    dts_files: List[Path] = field(default_factory=list)

    @property
    def process_dts(self) -> bool:
        return bool(self.dts_files)


def make_entry_point_bundle(
    fs: FileSystem,
    src_host: DependencyHost,
    entry_point: EntryPoint,
    format_property: str,
    fmt: str,
    process_dts: bool,
) -> EntryPointBundle:
    """Collect the files of `format_property`'s bundle, and its typings if asked."""
    format_path = entry_point.format_path(format_property)
    if format_path is None:
        raise ValueError(f"Entry-point {entry_point.name} has no '{format_property}' property")
    path = fs.resolve(entry_point.path, format_path)

    src_files = [
        file for file in src_host.find_dependencies(path).files
        if is_within(entry_point.package, file)
    ]

    dts_files: List[Path] = []
    if process_dts and fs.is_file(entry_point.typings):
        dts_host = DependencyHost(fs, ModuleResolver(fs, relative_extensions=DTS_EXTENSIONS), scan_esm_imports)
        dts_files = [
            file for file in dts_host.find_dependencies(entry_point.typings).files
            if is_within(entry_point.package, file)
        ]

    logger.debug(
        f"Bundle for {entry_point.name} : {format_property} has "
        f"{len(src_files)} source file(s) and {len(dts_files)} typings file(s)"
    )
    return EntryPointBundle(
        entry_point=entry_point,
        format=fmt,
        format_property=format_property,
        path=path,
        src_files=src_files,
        dts_files=dts_files,
    )
