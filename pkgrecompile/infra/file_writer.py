"""
Writers for transformed bundle files.

- InPlaceFileWriter overwrites the original files, keeping a
  `<file>.__pkgrecompile_bak` copy of each.
- NewEntryPointFileWriter leaves the original bundle untouched, writes the
  transformed copy under `<package>/__pkgrecompile__/` and points new
  `<property>_pkgrecompile` properties at it.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence, TYPE_CHECKING

from .file_system import FileSystem
from .package_json_updater import PackageJsonUpdater

if TYPE_CHECKING:
    from ..services.bundle import EntryPointBundle
    from ..services.transformer import FileToWrite

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = '.__pkgrecompile_bak'
GENERATED_DIRECTORY = '__pkgrecompile__'
PROPERTY_SUFFIX = '_pkgrecompile'

_DTS_PATH = re.compile(r'\.d\.ts(\.map)?$')


class FileWriter(ABC):
    @abstractmethod
    def write_bundle(
        self,
        bundle: 'EntryPointBundle',
        transformed_files: Sequence['FileToWrite'],
        format_properties: Sequence[str] = (),
    ) -> None:
        """Persist `transformed_files` produced for `bundle`."""


class InPlaceFileWriter(FileWriter):
    """
    Example:
        writer = InPlaceFileWriter(fs)
        writer.write_bundle(bundle, result.transformed_files)
    """

    def __init__(self, fs: FileSystem, backup: bool = True):
        self.fs = fs
        self.backup = backup

    def write_bundle(self, bundle, transformed_files, format_properties=()):
        for file in transformed_files:
            self.write_file_and_backup(file)

    def write_file_and_backup(self, file: 'FileToWrite') -> None:
        self.fs.ensure_dir(Path(file.path).parent)
        if self.backup:
            backup_path = Path(f"{file.path}{BACKUP_SUFFIX}")
            if self.fs.exists(backup_path):
                raise RuntimeError(
                    f"Tried to overwrite {backup_path} with a pkgrecompile back up file, which is disallowed."
                )
            if self.fs.exists(file.path):
                self.fs.move(file.path, backup_path)
        self.fs.write_text(file.path, file.contents)


class NewEntryPointFileWriter(InPlaceFileWriter):
    """Writes the transformed bundle alongside the original one."""

    def __init__(self, fs: FileSystem, pkg_json_updater: PackageJsonUpdater, backup: bool = True):
        super().__init__(fs, backup)
        self.pkg_json_updater = pkg_json_updater

    def write_bundle(self, bundle, transformed_files, format_properties=()):
        entry_point = bundle.entry_point
        generated_folder = entry_point.package / GENERATED_DIRECTORY
        self._copy_bundle(bundle, entry_point.package, generated_folder)
        for file in transformed_files:
            self._write_file(file, entry_point.package, generated_folder)
        self._update_package_json(bundle, format_properties, generated_folder)

    def _copy_bundle(self, bundle: 'EntryPointBundle', package_path: Path, generated_folder: Path) -> None:
        for source_file in bundle.src_files:
            relative_path = os.path.relpath(source_file, package_path)
            if _DTS_PATH.search(str(source_file)) or relative_path.startswith('..'):
                continue
            self.fs.copy(source_file, generated_folder / relative_path)

    def _write_file(self, file: 'FileToWrite', package_path: Path, generated_folder: Path) -> None:
        if _DTS_PATH.search(str(file.path)):
            # Typings are shared by every format, so they are rewritten in place.
            self.write_file_and_backup(file)
        else:
            relative_path = os.path.relpath(file.path, package_path)
            self.fs.write_text(generated_folder / relative_path, file.contents)

    def _update_package_json(
        self,
        bundle: 'EntryPointBundle',
        format_properties: Sequence[str],
        generated_folder: Path,
    ) -> None:
        if not format_properties:
            return
        entry_point = bundle.entry_point
        package_json = entry_point.package_json
        package_json_path = entry_point.package_json_path

        old_format_path = package_json[format_properties[0]]
        old_abs_format_path = self.fs.resolve(entry_point.path, old_format_path)
        new_abs_format_path = generated_folder / os.path.relpath(old_abs_format_path, entry_point.package)
        new_format_path = Path(os.path.relpath(new_abs_format_path, entry_point.path)).as_posix()

        update = self.pkg_json_updater.create_update()
        for format_property in format_properties:
            if package_json.get(format_property) != old_format_path:
                raise RuntimeError(
                    f"Unable to update '{package_json_path}': Format properties "
                    f"({', '.join(format_properties)}) map to more than one format-path."
                )
            update.add_change([f"{format_property}{PROPERTY_SUFFIX}"], new_format_path)
        update.write_changes(package_json_path, package_json)
        logger.debug(f"Pointed {', '.join(format_properties)} of {entry_point.name} at {new_format_path}")
