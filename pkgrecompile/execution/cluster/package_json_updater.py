"""
package.json updates from inside a worker process.

Workers never write package.json files themselves: every change is sent to
the master, which applies it through the run's single direct updater and
acknowledges it.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...infra.package_json_updater import PackageJsonChange, PackageJsonUpdater, apply_change
from .messages import Ack, UpdatePackageJson

logger = logging.getLogger(__name__)


class ClusterWorkerPackageJsonUpdater(PackageJsonUpdater):
    """
    Example:
        updater = ClusterWorkerPackageJsonUpdater(conn)
        updater.write_properties(package_json_path, {'esm5_pkgrecompile': '__pkgrecompile__/esm5/lib.js'})
    """

    def __init__(self, conn):
        self.conn = conn

    def write_changes(
        self,
        changes: List[PackageJsonChange],
        package_json_path: Path,
        parsed_json: Optional[Dict[str, Any]] = None
    ) -> None:
        if not changes:
            return

        self.conn.send(UpdatePackageJson(package_json_path=Path(package_json_path), changes=list(changes)))
        reply = self.conn.recv()
        if not isinstance(reply, Ack):
            raise RuntimeError(f"Expected an acknowledgement for updating '{package_json_path}', got: {reply}")

        # Keep the worker's copy in step; it is not shared with other workers.
        if parsed_json is not None:
            for property_path, value in changes:
                apply_change(parsed_json, property_path, value)
