"""
Shared fixtures: build small node_modules trees under tmp_path.
"""

import json
import logging
import os
from pathlib import Path

import pytest


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def load_package_json(path: Path) -> dict:
    return json.loads((Path(path) / "package.json").read_text(encoding="utf-8"))


def build_package(
    base: Path,
    name: str,
    deps=(),
    compiled=True,
    typings=True,
    properties=None,
    extra=None,
    umd=False,
) -> Path:
    """
    Write a package (or a secondary entry point, for names like `lib/testing`).

    The package gets an esm2015 bundle (fesm2015/es2015), an esm5 bundle
    (esm5/module) and, with `umd=True`, a UMD `main` bundle. Each bundle
    imports every name in `deps`.
    """
    path = base / name
    file_name = name.replace("/", "-").lstrip("@")
    imports = "".join(f"import {{ dep{i} }} from '{dep}';\n" for i, dep in enumerate(deps))

    (path / "esm2015").mkdir(parents=True, exist_ok=True)
    (path / "esm2015" / f"{file_name}.js").write_text(
        f"{imports}export const VALUE = '{name}';\n", encoding="utf-8")
    (path / "esm5").mkdir(parents=True, exist_ok=True)
    (path / "esm5" / f"{file_name}.js").write_text(
        f"{imports}export var VALUE = '{name}';\n", encoding="utf-8")

    package_json = {
        "name": name,
        "fesm2015": f"./esm2015/{file_name}.js",
        "es2015": f"./esm2015/{file_name}.js",
        "esm5": f"./esm5/{file_name}.js",
        "module": f"./esm5/{file_name}.js",
    }

    if umd:
        (path / "bundles").mkdir(parents=True, exist_ok=True)
        deps_list = ", ".join(f"'{dep}'" for dep in deps)
        requires = ", ".join(f"require('{dep}')" for dep in deps)
        (path / "bundles" / f"{file_name}.umd.js").write_text(
            "(function (global, factory) {\n"
            f"  typeof exports === 'object' ? factory(exports{', ' + requires if requires else ''}) :\n"
            f"  typeof define === 'function' && define.amd ? define(['exports'{', ' + deps_list if deps_list else ''}], factory) :\n"
            "  factory(global.lib = {});\n"
            "}(this, function (exports) { exports.VALUE = 1; }));\n",
            encoding="utf-8",
        )
        package_json["main"] = f"./bundles/{file_name}.umd.js"

    if typings:
        (path / "index.d.ts").write_text("export declare const VALUE: string;\n", encoding="utf-8")
        package_json["typings"] = "./index.d.ts"
        if compiled:
            write_json(path / "index.metadata.json", {"__symbolic": "module", "version": 4})

    if properties is not None:
        package_json = {key: value for key, value in package_json.items()
                        if key in ("name", "typings") or key in properties}
    if extra:
        package_json.update(extra)

    write_json(path / "package.json", package_json)
    return path


@pytest.fixture
def project(tmp_path):
    """A project directory containing an empty node_modules folder."""
    root = tmp_path / "project"
    (root / "node_modules").mkdir(parents=True)
    return root


@pytest.fixture
def node_modules(project):
    return project / "node_modules"


@pytest.fixture
def make_package(node_modules):
    """Build a package under the project's node_modules (see build_package)."""
    def _make(name, **kwargs):
        return build_package(node_modules, name, **kwargs)
    return _make


@pytest.fixture
def simple_tree(make_package):
    """
    core <- common <- common/http, plus an uncompiled `tslib`.

    Every compiled entry point depends on core; common/http also on common.
    """
    make_package("tslib", compiled=False)
    make_package("@lib/core", deps=["tslib"])
    make_package("@lib/common", deps=["@lib/core", "tslib"])
    make_package("@lib/common/http", deps=["@lib/common", "@lib/core"])
    return make_package


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config and logging setup from leaking into or between tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in list(os.environ):
        if key.startswith("PKGRECOMPILE_"):
            monkeypatch.delenv(key)

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("pkgrecompile").setLevel(logging.NOTSET)


@pytest.fixture
def fs():
    from pkgrecompile.infra.file_system import FileSystem
    return FileSystem()


@pytest.fixture
def package_config(fs, project):
    from pkgrecompile.services.package_config import PackageConfiguration
    return PackageConfiguration(fs, project)


@pytest.fixture
def dependency_resolver(fs):
    from pkgrecompile.dependencies.dependency_host import create_dependency_hosts
    from pkgrecompile.dependencies.dependency_resolver import DependencyResolver
    from pkgrecompile.dependencies.module_resolver import ModuleResolver
    return DependencyResolver(fs, create_dependency_hosts(fs, ModuleResolver(fs)))


@pytest.fixture
def load_entry_point(fs, package_config):
    """Load the entry point at `path`; `package` defaults to `path`."""
    from pkgrecompile.services.entry_point_loader import get_entry_point_info

    def _load(path, package=None):
        return get_entry_point_info(fs, package_config, package or path, path)
    return _load
