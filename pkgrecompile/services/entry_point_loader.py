"""
Entry-point construction for pkgrecompile.

Turns a directory (plus any package configuration for it) into an
EntryPoint, and works out which module format a format property's bundle is
written in.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

from ..dependencies.import_scanners import is_umd_module
from ..domain.entry_point import (
    COMMONJS, ESM2015, ESM5, SUPPORTED_FORMAT_PROPERTIES, UMD, EntryPoint,
)
from ..infra.file_system import FileSystem
from .package_config import EntryPointConfig, PackageConfiguration

logger = logging.getLogger(__name__)

_FORMAT_BY_PROPERTY = {
    'fesm2015': ESM2015,
    'fesm5': ESM5,
    'es2015': ESM2015,
    'esm2015': ESM2015,
    'esm5': ESM5,
    'module': ESM5,
}


def get_entry_point_info(
    fs: FileSystem,
    config: PackageConfiguration,
    package_path: Path,
    entry_point_path: Path,
) -> Optional[EntryPoint]:
    """
    Build the EntryPoint at `entry_point_path`, or None if it is not one.

    A directory is an entry point when it has a package.json (or is
    configured) and declares typings, directly or next to a format bundle.
    """
    package_json_path = entry_point_path / 'package.json'
    ep_config = config.get_config(package_path).entry_points.get(entry_point_path)

    if ep_config is None and not fs.exists(package_json_path):
        return None
    if ep_config is not None and ep_config.ignore:
        logger.debug(f"Ignoring configured entry-point {entry_point_path}")
        return None

    loaded = _load_entry_point_package(fs, package_json_path, has_config=ep_config is not None)
    package_json = _merge_config_and_package_json(loaded, ep_config, package_path, entry_point_path)
    if package_json is None:
        return None

    typings = (
        package_json.get('typings')
        or package_json.get('types')
        or _guess_typings_from_package_json(fs, entry_point_path, package_json)
    )
    if not typings:
        return None

    typings_path = fs.resolve(entry_point_path, typings)
    metadata_path = fs.resolve(entry_point_path, re.sub(r'\.d\.ts$', '', str(typings)) + '.metadata.json')
    compiled_by_target = ep_config is not None or fs.exists(metadata_path)

    return EntryPoint(
        name=package_json.get('name') or entry_point_path.name,
        path=entry_point_path,
        package=package_path,
        typings=typings_path,
        compiled_by_target=compiled_by_target,
        package_json=package_json,
    )


def get_entry_point_format(fs: FileSystem, entry_point: EntryPoint, property_name: str) -> Optional[str]:
    """
    The module format of the bundle behind `property_name`.

    `main` is sniffed: a UMD wrapper means umd, anything else commonjs.
    Returns None for unknown properties or a missing `main` bundle.
    """
    if property_name == 'main':
        main_file = entry_point.format_path('main')
        if main_file is None:
            return None
        main_path = fs.resolve(entry_point.path, main_file)
        if fs.is_file(main_path) and is_umd_module(fs.read_text(main_path)):
            return UMD
        return COMMONJS
    return _FORMAT_BY_PROPERTY.get(property_name)


def _load_entry_point_package(fs: FileSystem, package_json_path: Path, has_config: bool) -> Optional[Dict[str, Any]]:
    if not fs.exists(package_json_path):
        return None
    try:
        return json.loads(fs.read_text(package_json_path))
    except (OSError, ValueError) as e:
        # A configured entry point may legitimately have a broken package.json.
        if not has_config:
            logger.warning(f"Failed to read entry point info from {package_json_path} with error {e}.")
        return None


def _merge_config_and_package_json(
    package_json: Optional[Dict[str, Any]],
    ep_config: Optional[EntryPointConfig],
    package_path: Path,
    entry_point_path: Path,
) -> Optional[Dict[str, Any]]:
    if package_json is not None:
        if ep_config is None:
            return package_json
        merged = dict(package_json)
    else:
        if ep_config is None:
            return None
        relative = entry_point_path.relative_to(package_path) if entry_point_path != package_path else Path('.')
        merged = {'name': f"{package_path.name}/{relative.as_posix()}"}

    for key, value in ep_config.override.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def _guess_typings_from_package_json(fs: FileSystem, entry_point_path: Path, package_json: Dict[str, Any]) -> Optional[str]:
    for prop in SUPPORTED_FORMAT_PROPERTIES:
        field_value = package_json.get(prop)
        if not isinstance(field_value, str):
            continue
        typings_path = fs.resolve(entry_point_path, re.sub(r'\.js$', '.d.ts', field_value))
        if fs.exists(typings_path):
            return str(typings_path)
    return None
