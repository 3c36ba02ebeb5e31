"""
Module resolution for pkgrecompile.

Resolves a module specifier found in a bundle file to one of:
- ResolvedRelativeModule: a file inside the importing package
- ResolvedExternalModule: another entry point (a directory with package.json)
- ResolvedDeepImport: a file inside another package that is not an entry point

Resolution follows node rules (relative paths, then walking up through
`node_modules` folders) and optional tsconfig-style path mappings.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..domain.path_mappings import PathMappings
from ..infra.file_system import FileSystem

logger = logging.getLogger(__name__)

DEFAULT_RELATIVE_EXTENSIONS = ('', '.js', '/index.js')


@dataclass(frozen=True)
class ResolvedRelativeModule:
    module_path: Path


@dataclass(frozen=True)
class ResolvedExternalModule:
    entry_point_path: Path


@dataclass(frozen=True)
class ResolvedDeepImport:
    import_path: Path


ResolvedModule = Union[ResolvedRelativeModule, ResolvedExternalModule, ResolvedDeepImport]


@dataclass(frozen=True)
class _Splitted:
    prefix: str
    postfix: str
    has_wildcard: bool


@dataclass(frozen=True)
class _ProcessedPathMapping:
    matcher: _Splitted
    templates: Sequence[_Splitted]
    base_url: Path


def is_relative_path(specifier: str) -> bool:
    return specifier.startswith('.') or specifier.startswith('/')


def is_within(parent: Path, child: Path) -> bool:
    """True if `child` is `parent` or lies below it."""
    return not os.path.relpath(child, parent).startswith('..')


class ModuleResolver:
    """
    Example:
        resolver = ModuleResolver(fs, PathMappings('/proj', {'*': ['dist/*']}))
        resolved = resolver.resolve_module_import('@scope/lib', Path('/proj/node_modules/app/index.js'))
    """

    def __init__(
        self,
        fs: FileSystem,
        path_mappings: Optional[PathMappings] = None,
        relative_extensions: Sequence[str] = DEFAULT_RELATIVE_EXTENSIONS,
    ):
        self.fs = fs
        self.relative_extensions = tuple(relative_extensions)
        self._path_mappings = self._process_path_mappings(path_mappings) if path_mappings else []

    def resolve_module_import(self, specifier: str, from_path: Path) -> Optional[ResolvedModule]:
        """Resolve `specifier` as imported from the file `from_path`."""
        if is_relative_path(specifier):
            return self._resolve_as_relative_path(specifier, from_path)
        return (
            (self._path_mappings and self._resolve_by_path_mappings(specifier, from_path))
            or self._resolve_as_entry_point(specifier, from_path)
        )

    def _resolve_as_relative_path(self, specifier: str, from_path: Path) -> Optional[ResolvedRelativeModule]:
        resolved = self._resolve_path(self.fs.resolve(from_path.parent, specifier), self.relative_extensions)
        return ResolvedRelativeModule(resolved) if resolved is not None else None

    def _resolve_by_path_mappings(self, specifier: str, from_path: Path) -> Optional[ResolvedModule]:
        mapped_paths = self._find_mapped_paths(specifier)
        if not mapped_paths:
            return None

        package_path = self._find_package_path(from_path)
        if package_path is None:
            return None

        for mapped_path in mapped_paths:
            if self._is_entry_point(mapped_path):
                return ResolvedExternalModule(mapped_path)
            non_entry_point_import = self._resolve_path(mapped_path, self.relative_extensions)
            if non_entry_point_import is not None:
                if is_within(package_path, mapped_path):
                    return ResolvedRelativeModule(non_entry_point_import)
                return ResolvedDeepImport(non_entry_point_import)
        return None

    def _resolve_as_entry_point(self, specifier: str, from_path: Path) -> Optional[ResolvedModule]:
        folder = from_path
        while folder.parent != folder:
            folder = folder.parent
            if folder.name == 'node_modules':
                # Skip up if the folder already ends in node_modules
                folder = folder.parent
            module_path = self.fs.resolve(folder, 'node_modules', specifier)
            if self._is_entry_point(module_path):
                return ResolvedExternalModule(module_path)
            if self._resolve_path(module_path, self.relative_extensions) is not None:
                return ResolvedDeepImport(module_path)
        return None

    def _resolve_path(self, path: Path, postfixes: Sequence[str]) -> Optional[Path]:
        for postfix in postfixes:
            candidate = Path(f"{path}{postfix}")
            if self.fs.is_file(candidate):
                return candidate
        return None

    def _is_entry_point(self, module_path: Path) -> bool:
        return self.fs.exists(module_path / 'package.json')

    def _find_package_path(self, path: Path) -> Optional[Path]:
        folder = path
        while folder.parent != folder:
            folder = folder.parent
            if self.fs.exists(folder / 'package.json'):
                return folder
        return None

    def _process_path_mappings(self, path_mappings: PathMappings) -> List[_ProcessedPathMapping]:
        base_url = self.fs.resolve(path_mappings.base_url)
        return [
            _ProcessedPathMapping(
                matcher=_split_on_star(pattern),
                templates=tuple(_split_on_star(template) for template in templates),
                base_url=base_url,
            )
            for pattern, templates in path_mappings.paths.items()
        ]

    def _find_mapped_paths(self, specifier: str) -> List[Path]:
        """
        Pick the best mapping for `specifier`.

        An exact (wildcard-free) match wins outright; otherwise the wildcard
        mapping with the longest prefix wins.
        """
        best_mapping: Optional[_ProcessedPathMapping] = None
        best_match: Optional[str] = None

        for mapping in self._path_mappings:
            match = _match_mapping(specifier, mapping.matcher)
            if match is None:
                continue
            if not mapping.matcher.has_wildcard:
                best_mapping, best_match = mapping, match
                break
            if best_mapping is None or len(mapping.matcher.prefix) > len(best_mapping.matcher.prefix):
                best_mapping, best_match = mapping, match

        if best_mapping is None or best_match is None:
            return []
        return [
            self.fs.resolve(best_mapping.base_url, template.prefix + best_match + template.postfix)
            for template in best_mapping.templates
        ]


def _split_on_star(text: str) -> _Splitted:
    prefix, star, postfix = text.partition('*')
    return _Splitted(prefix=prefix, postfix=postfix, has_wildcard=bool(star))


def _match_mapping(specifier: str, matcher: _Splitted) -> Optional[str]:
    if matcher.has_wildcard:
        if (specifier.startswith(matcher.prefix) and specifier.endswith(matcher.postfix)
                and len(specifier) >= len(matcher.prefix) + len(matcher.postfix)):
            return specifier[len(matcher.prefix):len(specifier) - len(matcher.postfix)]
        return None
    return '' if specifier == matcher.prefix else None
