"""
Package configuration for pkgrecompile.

Packages can be configured at two levels, both as YAML files named
`pkgrecompile.config.yaml`:

- project level, in the parent of the base path:

      packages:
        '@scope/lib':
          entry_points:
            './testing': {ignore: true}
            './deep': {override: {es2015: '../deep.js', typings: '../deep.d.ts'}}

- package level, in the package's own directory:

      entry_points:
        '.': {override: {fesm2015: null}}

An `override` is merged over the entry point's package.json before any
dependency analysis; a null value removes the property. `ignore: true`
drops the entry point entirely. Project-level configuration wins over
package-level configuration for the same package.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..exit_codes import ConfigError
from ..infra.file_system import FileSystem

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'pkgrecompile.config.yaml'


@dataclass(frozen=True)
class EntryPointConfig:
    ignore: bool = False
    override: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass
class PackageConfig:
    """Entry-point configuration of one package, keyed by absolute path."""
    entry_points: Dict[Path, EntryPointConfig] = field(default_factory=dict)


class PackageConfiguration:
    """
    Loads and caches package configuration.

    Example:
        config = PackageConfiguration(fs, project_root)
        ep_config = config.get_config(package_path).entry_points.get(entry_point_path)
    """

    def __init__(self, fs: FileSystem, project_root: Path):
        self.fs = fs
        self.project_root = project_root
        self._cache: Dict[Path, PackageConfig] = {}
        self._project_packages = self._load_project_config()

    def get_config(self, package_path: Path) -> PackageConfig:
        if package_path in self._cache:
            return self._cache[package_path]

        config = self._project_packages.get(package_path)
        if config is None:
            config = self._load_package_config(package_path) or PackageConfig()

        self._cache[package_path] = config
        return config

    def _load_project_config(self) -> Dict[Path, PackageConfig]:
        data = self._read_yaml(self.project_root / CONFIG_FILE_NAME)
        if not data:
            return {}

        packages = data.get('packages') or {}
        if not isinstance(packages, dict):
            raise ConfigError(f"'packages' must be a mapping in {self.project_root / CONFIG_FILE_NAME}")

        result: Dict[Path, PackageConfig] = {}
        for package_name, package_data in packages.items():
            package_path = self.fs.resolve(self.project_root, 'node_modules', package_name)
            result[package_path] = self._parse_package(package_path, package_data or {})
        return result

    def _load_package_config(self, package_path: Path) -> Optional[PackageConfig]:
        data = self._read_yaml(package_path / CONFIG_FILE_NAME)
        if data is None:
            return None
        return self._parse_package(package_path, data)

    def _parse_package(self, package_path: Path, data: Dict[str, Any]) -> PackageConfig:
        entry_points: Dict[Path, EntryPointConfig] = {}
        for relative_path, ep_data in (data.get('entry_points') or {}).items():
            ep_data = ep_data or {}
            override = ep_data.get('override') or {}
            if not isinstance(override, dict):
                raise ConfigError(f"'override' for {package_path}/{relative_path} must be a mapping")
            entry_points[self.fs.resolve(package_path, relative_path)] = EntryPointConfig(
                ignore=bool(ep_data.get('ignore', False)),
                override=dict(override),
            )
        return PackageConfig(entry_points=entry_points)

    def _read_yaml(self, path: Path) -> Optional[Dict[str, Any]]:
        if not self.fs.is_file(path):
            return None
        try:
            data = yaml.safe_load(self.fs.read_text(path))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration file {path}: {e}")
        logger.debug(f"Loaded package configuration from {path}")
        return data or {}
