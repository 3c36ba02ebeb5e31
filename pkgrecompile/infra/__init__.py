"""
Infrastructure layer for pkgrecompile.

Contains the pieces that touch the disk:
- FileSystem: File and directory primitives, atomic writes
- PackageJsonUpdater: The single writer of package.json changes
- FileWriter: Persists transformed bundles (in place or as new entry points)

These provide clean interfaces that can be swapped for testing.
"""

from .file_system import FileSystem
from .package_json_updater import (
    REMOVE,
    PackageJsonUpdate,
    PackageJsonUpdater,
    DirectPackageJsonUpdater,
)
from .file_writer import FileWriter, InPlaceFileWriter, NewEntryPointFileWriter

__all__ = [
    'FileSystem',
    'REMOVE',
    'PackageJsonUpdate',
    'PackageJsonUpdater',
    'DirectPackageJsonUpdater',
    'FileWriter',
    'InPlaceFileWriter',
    'NewEntryPointFileWriter',
]
