"""Tests for package.json updaters."""

import json

import pytest

from pkgrecompile.infra.package_json_updater import REMOVE, DirectPackageJsonUpdater, apply_change

from conftest import write_json


@pytest.fixture
def package_json_path(tmp_path):
    path = tmp_path / "lib" / "package.json"
    write_json(path, {"name": "lib", "scripts": {"test": "jest"}})
    return path


def read(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestDirectPackageJsonUpdater:

    def test_writes_nested_changes(self, fs, package_json_path):
        updater = DirectPackageJsonUpdater(fs)

        updater.create_update() \
            .add_change(["scripts", "build"], "tsc") \
            .add_change(["marker", "esm5"], "1.0.0") \
            .write_changes(package_json_path)

        assert read(package_json_path) == {
            "name": "lib",
            "scripts": {"test": "jest", "build": "tsc"},
            "marker": {"esm5": "1.0.0"},
        }

    def test_remove(self, fs, package_json_path):
        DirectPackageJsonUpdater(fs).write_properties(package_json_path, {"scripts": REMOVE, "main": "./x.js"})

        assert read(package_json_path) == {"name": "lib", "main": "./x.js"}

    def test_rereads_disk_and_updates_in_memory_copy(self, fs, package_json_path):
        updater = DirectPackageJsonUpdater(fs)
        stale = {"name": "lib"}
        write_json(package_json_path, {"name": "lib", "written": "elsewhere"})

        updater.create_update().add_change(["esm5_x"], "./x.js").write_changes(package_json_path, stale)

        assert read(package_json_path) == {"name": "lib", "written": "elsewhere", "esm5_x": "./x.js"}
        assert stale == {"name": "lib", "esm5_x": "./x.js"}

    def test_creates_missing_file(self, fs, tmp_path):
        path = tmp_path / "new" / "package.json"

        DirectPackageJsonUpdater(fs).write_properties(path, {"name": "new"})

        assert read(path) == {"name": "new"}

    def test_update_can_only_be_written_once(self, fs, package_json_path):
        update = DirectPackageJsonUpdater(fs).create_update().add_change(["a"], 1)
        update.write_changes(package_json_path)

        with pytest.raises(RuntimeError, match="already been applied"):
            update.write_changes(package_json_path)
        with pytest.raises(RuntimeError):
            update.add_change(["b"], 2)

    def test_empty_property_path(self, fs, package_json_path):
        with pytest.raises(ValueError, match="Missing property path"):
            DirectPackageJsonUpdater(fs).write_changes([((), 1)], package_json_path)


class TestApplyChange:

    def test_non_object_in_path(self):
        data = {"name": "lib"}
        with pytest.raises(ValueError, match="does not point to an object"):
            apply_change(data, ("name", "nested"), 1)

    def test_remove_missing_key_is_noop(self):
        data = {"a": {}}
        apply_change(data, ("a", "b"), REMOVE)
        assert data == {"a": {}}
