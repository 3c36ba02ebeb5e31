"""
Build markers: which formats of an entry point have already been processed.

The marker lives in the entry point's own package.json:

    "__processed_by_pkgrecompile__": {"esm5": "0.4.0", "typings": "0.4.0"}

A property counts as processed only when its stamp equals the running
version. Marking also installs a `prepublishOnly` script so a recompiled
package cannot be published by accident.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .. import __version__
from ..infra.package_json_updater import PackageJsonUpdater

logger = logging.getLogger(__name__)

PROCESSED_MARKER_KEY = '__processed_by_pkgrecompile__'

PREPUBLISH_GUARD = (
    'node --eval "console.error(\''
    'ERROR: Trying to publish a package that has been compiled by pkgrecompile. '
    'This is not allowed.\\n'
    'Please delete and rebuild the package, without compiling with pkgrecompile, before attempting to publish.\\n'
    '\')" && exit 1'
)
PREPUBLISH_BACKUP_KEY = 'prepublishOnly__pkgrecompile_bak'


def has_been_processed(package_json: Dict[str, Any], property_name: str, entry_point_path: Optional[Path] = None) -> bool:
    """
    True if `property_name` carries a marker with the current version.

    A marker written by another version means the bundle must be compiled
    again; it is reported as a warning rather than treated as processed.
    """
    markers = package_json.get(PROCESSED_MARKER_KEY)
    if not isinstance(markers, dict) or property_name not in markers:
        return False

    stamp = markers[property_name]
    if stamp == __version__:
        return True

    where = f" in {entry_point_path}" if entry_point_path is not None else ''
    logger.warning(
        f"The '{property_name}' format{where} was processed by pkgrecompile {stamp} "
        f"but the current version is {__version__}; it will be processed again."
    )
    return False


def mark_as_processed(
    updater: PackageJsonUpdater,
    package_json: Dict[str, Any],
    package_json_path: Path,
    properties: Iterable[str],
) -> None:
    """
    Stamp each of `properties` with the current version.

    The updater applies the changes to `package_json` in place as well, so
    callers holding the parsed metadata see the new markers.
    """
    properties = list(properties)
    update = updater.create_update()

    for prop in properties:
        update.add_change([PROCESSED_MARKER_KEY, prop], __version__)

    scripts = package_json.get('scripts') or {}
    old_prepublish = scripts.get('prepublishOnly')
    if old_prepublish != PREPUBLISH_GUARD:
        if old_prepublish is not None:
            update.add_change(['scripts', PREPUBLISH_BACKUP_KEY], old_prepublish)
        update.add_change(['scripts', 'prepublishOnly'], PREPUBLISH_GUARD)

    update.write_changes(package_json_path, package_json)

