"""Shared test doubles and archive builders for the launcher tests."""

from __future__ import annotations

import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from appbox.adapters.manifest_reader import render_manifest
from appbox.domain.errors import TransportError
from appbox.domain.progress import PercentProgress

MANIFEST_URL = "http://updates.test/app/MANIFEST.MF"


class FakeSession:
    def __init__(self, transport: "FakeTransport") -> None:
        self.transport = transport
        self.closed = False

    def fetch(self, remote_location, destination, progress=None):
        if self.closed:
            raise AssertionError("fetch on closed session")
        self.transport.fetched.append(remote_location)
        if remote_location in self.transport.failures:
            raise self.transport.failures[remote_location]
        try:
            payload = self.transport.files[remote_location]
        except KeyError:
            raise TransportError(f"missing {remote_location}", reason="not_found") from None
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        tracker = PercentProgress(len(payload), progress)
        tracker.begin()
        with destination.open("wb") as handle:
            for offset in range(0, len(payload), 7):
                chunk = payload[offset : offset + 7]
                handle.write(chunk)
                tracker.advance(len(chunk))
        tracker.finish()
        return destination

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """In-memory transport keyed by remote location."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None) -> None:
        self.files: Dict[str, bytes] = dict(files or {})
        self.failures: Dict[str, Exception] = {}
        self.ping_error: Optional[Exception] = None
        self.fetched: List[str] = []
        self.sessions: List[FakeSession] = []

    def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error

    @contextmanager
    def open_session(self):
        session = FakeSession(self)
        self.sessions.append(session)
        try:
            yield session
        finally:
            session.close()

    def fetch(self, remote_location, destination, progress=None):
        with self.open_session() as session:
            return session.fetch(remote_location, destination, progress)


def write_manifest(path: Path, attributes: Dict[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_manifest(attributes), encoding="utf-8")
    return path


def build_zip(path: Path, entries: Dict[str, bytes | str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


def build_pyz(path: Path, modules: Dict[str, str], attributes: Dict[str, str]) -> Path:
    entries: Dict[str, bytes | str] = dict(modules)
    entries["META-INF/MANIFEST.MF"] = render_manifest(attributes)
    return build_zip(path, entries)


APP_SOURCE = '''
from .helpers import greeting

EVENTS = []


class DemoApp:
    def __init__(self, context):
        self.context = context

    def initialize(self):
        EVENTS.append("initialize")

    def start(self, parameters):
        EVENTS.append(("start", greeting(self.context.app_name), tuple(parameters.raw)))

    def stop(self):
        EVENTS.append("stop")


def register_entry_points(registry):
    registry.register("demo", DemoApp)
'''

HELPERS_SOURCE = '''
def greeting(name):
    return "hello " + name
'''

