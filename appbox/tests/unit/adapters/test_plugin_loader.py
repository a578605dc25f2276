from __future__ import annotations

import importlib
import sys

import pytest

from appbox.adapters.plugin_loader import (
    ArtifactNamespace,
    DynamicLoader,
    EntryPointRegistry,
    SANDBOX_PACKAGE,
)
from appbox.domain.errors import LoadError
from appbox.domain.runtime import LaunchParameters
from appbox.tests.helpers import APP_SOURCE, HELPERS_SOURCE, build_pyz


def _install(tmp_path, demo_pyz_bytes, name="demo.pyz"):
    app_dir = tmp_path / "appdir"
    app_dir.mkdir(exist_ok=True)
    (app_dir / name).write_bytes(demo_pyz_bytes)
    return app_dir


def test_load_and_start_runs_lifecycle(tmp_path, demo_pyz_bytes) -> None:
    app_dir = _install(tmp_path, demo_pyz_bytes)
    params = LaunchParameters.from_args(["--mode=dev"])

    handle = DynamicLoader().load_and_start(app_dir, tmp_path / "Demo.cfg", params, app_name="Demo")

    module = handle.namespace.import_module("app")
    assert module.EVENTS == ["initialize", ("start", "hello Demo", ("--mode=dev",))]
    assert handle.entry_point == "demo"
    assert handle.application.context.config_file == tmp_path / "Demo.cfg"

    handle.stop()
    assert module.EVENTS[-1] == "stop"
    assert not any(key.startswith(handle.namespace.prefix) for key in sys.modules)


def test_artifact_modules_are_not_importable_by_their_own_names(tmp_path, demo_pyz_bytes) -> None:
    app_dir = _install(tmp_path, demo_pyz_bytes)
    handle = DynamicLoader().load_and_start(app_dir, tmp_path / "c.cfg", LaunchParameters(), app_name="Demo")
    try:
        assert handle.namespace.prefix.startswith(SANDBOX_PACKAGE + ".")
        with pytest.raises(ImportError):
            importlib.import_module("app.helpers")
    finally:
        handle.stop()


def test_missing_artifact_is_load_error(tmp_path) -> None:
    (tmp_path / "appdir").mkdir()

    with pytest.raises(LoadError) as excinfo:
        DynamicLoader().load_and_start(tmp_path / "appdir", tmp_path / "c.cfg", LaunchParameters(), app_name="x")

    assert excinfo.value.code == "load.artifact_missing"


def test_multiple_artifacts_are_ambiguous(tmp_path, demo_pyz_bytes) -> None:
    app_dir = _install(tmp_path, demo_pyz_bytes)
    (app_dir / "other.pyz").write_bytes(demo_pyz_bytes)

    with pytest.raises(LoadError) as excinfo:
        DynamicLoader.locate_artifact(app_dir)

    assert excinfo.value.code == "load.artifact_ambiguous"


def test_unknown_entry_point_is_reported(tmp_path) -> None:
    app_dir = tmp_path / "appdir"
    build_pyz(
        app_dir / "demo.pyz",
        {"app/__init__.py": APP_SOURCE, "app/helpers.py": HELPERS_SOURCE},
        {"Entry-Module": "app", "Entry-Point": "other"},
    )

    with pytest.raises(LoadError) as excinfo:
        DynamicLoader().load_and_start(app_dir, tmp_path / "c.cfg", LaunchParameters(), app_name="x")

    assert excinfo.value.code == "load.entry_point_missing"
    assert "demo" in (excinfo.value.hint or "")


def test_lifecycle_exception_is_wrapped(tmp_path) -> None:
    source = (
        "class Broken:\n"
        "    def __init__(self, context):\n"
        "        pass\n"
        "    def initialize(self):\n"
        "        raise RuntimeError('boom')\n"
        "    def start(self, parameters):\n"
        "        pass\n"
        "def register_entry_points(registry):\n"
        "    registry.register('broken', Broken)\n"
    )
    app_dir = tmp_path / "appdir"
    build_pyz(app_dir / "broken.pyz", {"broken.py": source}, {"Entry-Module": "broken", "Entry-Point": "broken"})

    with pytest.raises(LoadError) as excinfo:
        DynamicLoader().load_and_start(app_dir, tmp_path / "c.cfg", LaunchParameters(), app_name="x")

    assert excinfo.value.code == "load.initialize_failed"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert not any(isinstance(finder, ArtifactNamespace) for finder in sys.meta_path)


def test_registry_rejects_duplicates() -> None:
    registry = EntryPointRegistry()
    registry.register("demo", object)

    with pytest.raises(LoadError):
        registry.register("demo", object)
    assert "demo" in registry
    assert registry.identifiers == ("demo",)
