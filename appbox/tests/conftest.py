from __future__ import annotations

import pytest

from appbox.adapters.manifest_reader import render_manifest
from appbox.domain.resources import ResourceDescriptor, ResourceRegistry
from appbox.domain.runtime import RuntimeContext
from appbox.domain.settings import LauncherSettings
from appbox.tests.helpers import (
    APP_SOURCE,
    HELPERS_SOURCE,
    MANIFEST_URL,
    FakeTransport,
    build_pyz,
    build_zip,
)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry(
        resources=(
            ResourceDescriptor(
                remote_location="http://updates.test/app/demo.pyz",
                metadata_key="App-Version",
                local_file_names=("demo.pyz",),
            ),
            ResourceDescriptor(
                remote_location="http://updates.test/app/libs.zip",
                metadata_key="Libs-Version",
                local_file_names=("libs",),
            ),
        )
    )


@pytest.fixture
def make_ctx(tmp_path, registry):
    def _make(**overrides) -> RuntimeContext:
        values = dict(
            app_name="Demo",
            manifest_location=MANIFEST_URL,
            resources=registry,
        )
        values.update(overrides)
        settings = LauncherSettings(**values)
        return RuntimeContext.prepare(tmp_path / "launcher", settings)

    return _make


@pytest.fixture
def demo_pyz_bytes(tmp_path) -> bytes:
    path = build_pyz(
        tmp_path / "build" / "demo.pyz",
        {"app/__init__.py": APP_SOURCE, "app/helpers.py": HELPERS_SOURCE},
        {"Entry-Module": "app", "Entry-Point": "demo"},
    )
    return path.read_bytes()


@pytest.fixture
def libs_zip_bytes(tmp_path) -> bytes:
    path = build_zip(
        tmp_path / "build" / "libs.zip",
        {
            "libs/core.txt": "core library",
            "libs/nested/extra.txt": "extra",
            "libs/empty.txt": b"",
            "libs/.hidden": "secret",
        },
    )
    return path.read_bytes()


@pytest.fixture
def remote_server(fake_transport, demo_pyz_bytes, libs_zip_bytes):
    """Fake hosting with a demo artifact, a library archive, and metadata."""

    def _publish(app_version: str = "2", libs_version: str = "2", **extra: str) -> FakeTransport:
        attributes = {"App-Version": app_version, "Libs-Version": libs_version}
        attributes.update(extra)
        fake_transport.files.update(
            {
                MANIFEST_URL: render_manifest(attributes).encode("utf-8"),
                "http://updates.test/app/demo.pyz": demo_pyz_bytes,
                "http://updates.test/app/libs.zip": libs_zip_bytes,
            }
        )
        return fake_transport

    return _publish
