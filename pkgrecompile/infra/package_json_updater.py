"""
package.json update infrastructure for pkgrecompile.

All writes to a package's metadata file go through a PackageJsonUpdater.
Exactly one updater per run actually touches the disk; in cluster mode the
workers hold a proxy that forwards their changes to it (see
execution/cluster/package_json_updater.py).

A change is a (property_path, value) pair. Using the REMOVE sentinel as the
value deletes the property instead of writing it.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .file_system import FileSystem

logger = logging.getLogger(__name__)


class _Sentinel(Enum):
    REMOVE = "remove"


# Value marking a property for deletion (picklable, so it survives IPC).
REMOVE = _Sentinel.REMOVE

PackageJsonChange = Tuple[Tuple[str, ...], Any]


class PackageJsonUpdate:
    """
    A batch of changes to be applied to one package.json file.

    Example:
        update = updater.create_update()
        update.add_change(['__processed_by_pkgrecompile__', 'esm5'], '1.0.0')
        update.write_changes(package_json_path, package_json)

    An update can only be written once.
    """

    def __init__(self, write_changes_impl):
        self._write_changes_impl = write_changes_impl
        self._changes: List[PackageJsonChange] = []
        self._applied = False

    def add_change(self, property_path: Sequence[str], value: Any) -> 'PackageJsonUpdate':
        self._ensure_not_applied()
        self._changes.append((tuple(property_path), value))
        return self

    def write_changes(self, package_json_path: Path, parsed_json: Optional[Dict[str, Any]] = None) -> None:
        self._ensure_not_applied()
        self._applied = True
        self._write_changes_impl(self._changes, package_json_path, parsed_json)

    def _ensure_not_applied(self) -> None:
        if self._applied:
            raise RuntimeError('Trying to apply a `PackageJsonUpdate` that has already been applied.')


class PackageJsonUpdater(ABC):
    """Interface shared by the direct and the cluster updater."""

    def create_update(self) -> PackageJsonUpdate:
        return PackageJsonUpdate(self.write_changes)

    def write_properties(self, package_json_path: Path, properties: Dict[str, Any]) -> None:
        """Write top-level properties; a REMOVE value deletes the property."""
        changes = [((name,), value) for name, value in properties.items()]
        self.write_changes(changes, package_json_path)

    @abstractmethod
    def write_changes(
        self,
        changes: List[PackageJsonChange],
        package_json_path: Path,
        parsed_json: Optional[Dict[str, Any]] = None
    ) -> None:
        """Apply `changes` to the package.json at `package_json_path`."""


class DirectPackageJsonUpdater(PackageJsonUpdater):
    """
    Updater that writes straight to disk.

    The file is always re-read before applying changes, so an outdated
    in-memory copy can never clobber markers written earlier in the run.
    """

    def __init__(self, fs: FileSystem):
        self.fs = fs

    def write_changes(
        self,
        changes: List[PackageJsonChange],
        package_json_path: Path,
        parsed_json: Optional[Dict[str, Any]] = None
    ) -> None:
        if not changes:
            return

        if self.fs.exists(package_json_path):
            on_disk = json.loads(self.fs.read_text(package_json_path))
        else:
            on_disk = {}

        for property_path, value in changes:
            if len(property_path) == 0:
                raise ValueError(f"Missing property path for writing value to '{package_json_path}'.")
            apply_change(on_disk, property_path, value)

        self.fs.write_text(package_json_path, json.dumps(on_disk, indent=2) + '\n')
        logger.debug(f"Updated {package_json_path} ({len(changes)} change(s))")

        if parsed_json is not None:
            for property_path, value in changes:
                apply_change(parsed_json, property_path, value)


def apply_change(ctx: Dict[str, Any], property_path: Sequence[str], value: Any) -> None:
    """Apply a single change to a parsed JSON object in place."""
    *parents, last = property_path

    for key in parents:
        if key not in ctx:
            ctx[key] = {}
        new_ctx = ctx[key]
        if not isinstance(new_ctx, dict):
            raise ValueError(f"Property path '{'.'.join(property_path)}' does not point to an object.")
        ctx = new_ctx

    if value is REMOVE:
        ctx.pop(last, None)
    else:
        ctx[last] = value
