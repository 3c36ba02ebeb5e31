"""Tests for entry-point discovery."""

import logging
import os

import pytest

from pkgrecompile.domain import PathMappings
from pkgrecompile.exit_codes import MissingDependenciesError
from pkgrecompile.services.entry_point_finder import (
    DirectoryWalkerEntryPointFinder,
    TargetedEntryPointFinder,
    get_base_paths,
)
from pkgrecompile.services.package_config import CONFIG_FILE_NAME, PackageConfiguration

from conftest import build_package


def names(info):
    return [ep.name for ep in info.entry_points]


class TestGetBasePaths:

    def test_source_only(self, fs, node_modules):
        assert get_base_paths(fs, node_modules, None) == [node_modules]

    def test_mapped_paths_are_added_and_deduplicated(self, fs, project, node_modules):
        mappings = PathMappings(str(project), {"@app/*": ["dist/*"], "@lib/*": ["libs/*", "dist/other/*"]})

        assert get_base_paths(fs, node_modules, mappings) == [
            project / "dist",
            project / "libs",
            node_modules,
        ]

    def test_containing_path_wins(self, fs, project, node_modules):
        mappings = PathMappings(str(project), {"*": ["*"], "@app/*": ["dist/*"]})
        assert get_base_paths(fs, node_modules, mappings) == [project]


class TestDirectoryWalkerEntryPointFinder:

    def test_finds_and_sorts_everything(self, fs, package_config, dependency_resolver, simple_tree, node_modules):
        finder = DirectoryWalkerEntryPointFinder(fs, package_config, dependency_resolver, node_modules)

        info = finder.find_entry_points()

        assert names(info) == ["@lib/core", "@lib/common", "@lib/common/http"]

    def test_skips_hidden_directories_and_symlinks(self, fs, package_config, dependency_resolver, make_package, node_modules):
        make_package("lib")
        make_package(".cache/hidden")
        os.symlink(node_modules / "lib", node_modules / "linked")

        walked = DirectoryWalkerEntryPointFinder(
            fs, package_config, dependency_resolver, node_modules
        ).walk_directory_for_entry_points(node_modules)

        assert [ep.name for ep in walked] == ["lib"]

    def test_walks_nested_node_modules(self, fs, package_config, dependency_resolver, make_package, node_modules):
        outer = make_package("outer")
        build_package(outer / "node_modules", "inner")

        info = DirectoryWalkerEntryPointFinder(fs, package_config, dependency_resolver, node_modules).find_entry_points()

        assert sorted(names(info)) == ["inner", "outer"]

    def test_walks_path_mapped_directories(self, fs, package_config, dependency_resolver, project, make_package, node_modules):
        make_package("lib")
        build_package(project / "dist", "feature")
        mappings = PathMappings(str(project), {"@app/*": ["dist/*"]})

        info = DirectoryWalkerEntryPointFinder(
            fs, package_config, dependency_resolver, node_modules, mappings
        ).find_entry_points()

        assert sorted(names(info)) == ["feature", "lib"]

    def test_configured_entry_points(self, fs, dependency_resolver, project, make_package, node_modules):
        lib = make_package("lib")
        make_package("lib/testing")
        (lib / "extra.js").write_text("export const EXTRA = 1;\n", encoding="utf-8")
        (project / CONFIG_FILE_NAME).write_text(
            "packages:\n"
            "  lib:\n"
            "    entry_points:\n"
            "      './testing': {ignore: true}\n"
            "      './extra': {override: {esm5: '../extra.js', typings: '../index.d.ts'}}\n",
            encoding="utf-8",
        )
        config = PackageConfiguration(fs, project)

        info = DirectoryWalkerEntryPointFinder(fs, config, dependency_resolver, node_modules).find_entry_points()

        assert sorted(names(info)) == ["lib", "lib/extra"]


class TestTargetedEntryPointFinder:

    def make_finder(self, fs, config, resolver, node_modules, target):
        return TargetedEntryPointFinder(fs, config, resolver, node_modules, target)

    def test_target_and_dependencies(self, fs, package_config, dependency_resolver, simple_tree, node_modules):
        target = node_modules / "@lib" / "common" / "http"

        info = self.make_finder(fs, package_config, dependency_resolver, node_modules, target).find_entry_points()

        assert names(info) == ["@lib/core", "@lib/common", "@lib/common/http"]

    def test_unrelated_packages_are_not_read(self, fs, package_config, dependency_resolver, simple_tree, node_modules, caplog):
        caplog.set_level(logging.DEBUG)
        broken = node_modules / "broken"
        broken.mkdir()
        (broken / "package.json").write_text("{not json", encoding="utf-8")
        target = node_modules / "@lib" / "common"

        info = self.make_finder(fs, package_config, dependency_resolver, node_modules, target).find_entry_points()

        assert names(info) == ["@lib/core", "@lib/common"]
        assert "Failed to read entry point info" not in caplog.text

    def test_uncompiled_target(self, fs, package_config, dependency_resolver, simple_tree, node_modules):
        finder = self.make_finder(fs, package_config, dependency_resolver, node_modules, node_modules / "tslib")

        assert finder.find_entry_points().entry_points == []

    def test_missing_dependencies(self, fs, package_config, dependency_resolver, make_package, node_modules):
        make_package("a", deps=["missing-lib"])

        finder = self.make_finder(fs, package_config, dependency_resolver, node_modules, node_modules / "a")
        with pytest.raises(MissingDependenciesError) as exc_info:
            finder.find_entry_points()

        assert exc_info.value.missing_dependencies == ["missing-lib"]
        assert 'The target entry-point "a" has missing dependencies' in str(exc_info.value)

    def test_transitively_missing_dependencies(self, fs, package_config, dependency_resolver, make_package, node_modules):
        make_package("a", deps=["missing-lib"])
        make_package("b", deps=["a"])

        finder = self.make_finder(fs, package_config, dependency_resolver, node_modules, node_modules / "b")
        with pytest.raises(MissingDependenciesError) as exc_info:
            finder.find_entry_points()

        assert exc_info.value.missing_dependencies == [str(node_modules / "a")]

    def test_compute_package_path(self, fs, package_config, dependency_resolver, simple_tree, tmp_path, node_modules):
        finder = self.make_finder(fs, package_config, dependency_resolver, node_modules, node_modules / "tslib")

        assert finder.compute_package_path(node_modules / "@lib" / "common" / "http") == node_modules / "@lib" / "common"
        assert finder.compute_package_path(node_modules / "@lib" / "core") == node_modules / "@lib" / "core"

        other = tmp_path / "other" / "node_modules"
        plain = build_package(other, "x")
        scoped = build_package(other, "@s/y")
        assert finder.compute_package_path(plain / "sub") == plain
        assert finder.compute_package_path(scoped / "sub") == scoped
