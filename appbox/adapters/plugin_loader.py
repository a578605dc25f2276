"""Load the launched application from its ``.pyz`` artifact and start it.

The artifact's modules are served by an ``ArtifactNamespace`` finder under a
private ``appbox_sandbox.<token>`` package. Artifact code can import shared
``appbox`` types through the regular import system, but nothing outside the
sandbox can import artifact modules by their own names. Imports between
artifact modules must therefore be relative.

Entry points are resolved by identifier through an ``EntryPointRegistry``
populated by the artifact's ``register_entry_points(registry)`` hook.
"""

from __future__ import annotations

import importlib
import importlib.abc
import importlib.util
import logging
import sys
import threading
import types
import uuid
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from appbox.domain.errors import LoadError
from appbox.domain.ports import EmbeddedApplication
from appbox.domain.runtime import LaunchParameters

from appbox.adapters.manifest_reader import read_metadata

_log = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".pyz"
ENTRY_MODULE_ATTRIBUTE = "Entry-Module"
ENTRY_POINT_ATTRIBUTE = "Entry-Point"
REGISTER_HOOK = "register_entry_points"
SANDBOX_PACKAGE = "appbox_sandbox"


class ArtifactNamespace(importlib.abc.MetaPathFinder, importlib.abc.Loader):
    """Import-system finder and loader scoped to one zip artifact."""

    def __init__(self, artifact: Path) -> None:
        self.artifact = Path(artifact)
        self.token = "a" + uuid.uuid4().hex[:12]
        self.prefix = f"{SANDBOX_PACKAGE}.{self.token}"
        self._archive = zipfile.ZipFile(self.artifact)
        self._names = frozenset(self._archive.namelist())
        self._lock = threading.Lock()
        self._installed = False

    # ---- finder ----
    def find_spec(self, fullname, path=None, target=None):
        entry = self._entry_for(fullname)
        if entry is None:
            return None
        is_package = fullname == self.prefix or entry.endswith("__init__.py")
        spec = importlib.util.spec_from_loader(
            fullname,
            self,
            origin=f"{self.artifact}/{entry}" if entry else str(self.artifact),
            is_package=is_package,
        )
        return spec

    def _entry_for(self, fullname: str) -> Optional[str]:
        if fullname == self.prefix:
            return "__init__.py" if "__init__.py" in self._names else ""
        if not fullname.startswith(self.prefix + "."):
            return None
        relative = fullname[len(self.prefix) + 1 :].replace(".", "/")
        for candidate in (f"{relative}/__init__.py", f"{relative}.py"):
            if candidate in self._names:
                return candidate
        return None

    # ---- loader ----
    def create_module(self, spec):
        return None

    def exec_module(self, module: types.ModuleType) -> None:
        entry = self._entry_for(module.__name__)
        if entry is None:
            raise ImportError(f"{module.__name__} is not part of {self.artifact.name}", name=module.__name__)
        module.__file__ = f"{self.artifact}/{entry or '__init__.py'}"
        if not entry:
            return
        with self._lock:
            source = self._archive.read(entry).decode("utf-8")
        code = compile(source, module.__file__, "exec", dont_inherit=True)
        exec(code, module.__dict__)

    # ---- lifecycle ----
    def install(self) -> None:
        if self._installed:
            return
        if SANDBOX_PACKAGE not in sys.modules:
            root = types.ModuleType(SANDBOX_PACKAGE)
            root.__path__ = []
            sys.modules[SANDBOX_PACKAGE] = root
        sys.meta_path.insert(0, self)
        self._installed = True

    def import_module(self, relative_name: str) -> types.ModuleType:
        """Import ``relative_name`` (dotted, relative to the artifact root)."""
        name = self.prefix if not relative_name else f"{self.prefix}.{relative_name}"
        return importlib.import_module(name)

    def close(self) -> None:
        if self in sys.meta_path:
            sys.meta_path.remove(self)
        for name in [key for key in sys.modules if key == self.prefix or key.startswith(self.prefix + ".")]:
            sys.modules.pop(name, None)
        root = sys.modules.get(SANDBOX_PACKAGE)
        if root is not None and hasattr(root, self.token):
            delattr(root, self.token)
        self._installed = False
        self._archive.close()


@dataclass(frozen=True)
class LaunchContext:
    """Everything an entry-point factory receives."""

    app_name: str
    app_dir: Path
    config_file: Path
    parameters: LaunchParameters
    namespace: ArtifactNamespace


EntryPointFactory = Callable[[LaunchContext], EmbeddedApplication]


class EntryPointRegistry:
    """Identifier to factory mapping filled by the artifact's register hook."""

    def __init__(self) -> None:
        self._factories: Dict[str, EntryPointFactory] = {}

    def register(self, identifier: str, factory: EntryPointFactory) -> None:
        key = str(identifier or "").strip()
        if not key:
            raise ValueError("Entry point identifier must be a non-empty string")
        if not callable(factory):
            raise TypeError(f"Entry point '{key}' factory is not callable")
        if key in self._factories:
            raise LoadError(f"Entry point '{key}' registered twice", code="load.entry_point_duplicate")
        self._factories[key] = factory

    def resolve(self, identifier: str) -> EntryPointFactory:
        try:
            return self._factories[identifier]
        except KeyError as exc:
            known = ", ".join(sorted(self._factories)) or "none"
            raise LoadError(
                f"Entry point '{identifier}' not found",
                code="load.entry_point_missing",
                hint=f"Registered entry points: {known}",
            ) from exc

    @property
    def identifiers(self) -> Tuple[str, ...]:
        return tuple(self._factories)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._factories


@dataclass
class ApplicationHandle:
    """Running application plus the namespace its code was loaded from."""

    application: EmbeddedApplication
    artifact: Path
    entry_point: str
    namespace: ArtifactNamespace
    _stopped: bool = field(default=False, repr=False)

    def stop(self) -> None:
        """Stop the application (if it supports it) and tear down its namespace."""
        if self._stopped:
            return
        self._stopped = True
        try:
            stop = getattr(self.application, "stop", None)
            if callable(stop):
                stop()
        finally:
            self.namespace.close()


class DynamicLoader:
    """Locate, load, and start the application artifact."""

    def __init__(self, registry_factory: Callable[[], EntryPointRegistry] = EntryPointRegistry) -> None:
        self._registry_factory = registry_factory

    @staticmethod
    def locate_artifact(app_dir: Path) -> Path:
        """Return the single ``*.pyz`` directly inside ``app_dir``."""
        app_dir = Path(app_dir)
        matches: List[Path] = (
            sorted(p for p in app_dir.iterdir() if p.is_file() and p.suffix == ARTIFACT_SUFFIX)
            if app_dir.is_dir()
            else []
        )
        if not matches:
            raise LoadError(
                f"No {ARTIFACT_SUFFIX} artifact found in {app_dir}",
                code="load.artifact_missing",
                hint="Run the update again to reinstall the application.",
            )
        if len(matches) > 1:
            raise LoadError(
                f"Multiple {ARTIFACT_SUFFIX} artifacts found in {app_dir}",
                code="load.artifact_ambiguous",
                hint=", ".join(p.name for p in matches),
            )
        return matches[0]

    def load_and_start(
        self,
        app_dir: Path,
        config_file: Path,
        parameters: LaunchParameters,
        *,
        app_name: str,
    ) -> ApplicationHandle:
        """Load the artifact, build its entry point, then ``initialize`` and ``start`` it.

        Raises:
            LoadError: For every failure between inspection and ``start``.
        """
        artifact = self.locate_artifact(app_dir)
        metadata = read_metadata(artifact)
        entry_module = metadata.version_of(ENTRY_MODULE_ATTRIBUTE)
        entry_point = metadata.version_of(ENTRY_POINT_ATTRIBUTE)
        if not entry_module or not entry_point:
            raise LoadError(
                f"{artifact.name} does not declare {ENTRY_MODULE_ATTRIBUTE}/{ENTRY_POINT_ATTRIBUTE}",
                code="load.entry_point_missing",
                context=str(artifact),
            )

        try:
            namespace = ArtifactNamespace(artifact)
        except (OSError, zipfile.BadZipFile) as exc:
            raise LoadError(f"Cannot open {artifact.name}: {exc}", code="load.artifact_unreadable") from exc
        namespace.install()

        phase = "import"
        try:
            module = namespace.import_module(entry_module)
            phase = "register"
            register = getattr(module, REGISTER_HOOK, None)
            if not callable(register):
                raise LoadError(
                    f"{entry_module} has no {REGISTER_HOOK}() hook",
                    code="load.entry_point_missing",
                    context=str(artifact),
                )
            registry = self._registry_factory()
            register(registry)
            factory = registry.resolve(entry_point)

            phase = "instantiate"
            context = LaunchContext(
                app_name=app_name,
                app_dir=Path(app_dir),
                config_file=Path(config_file),
                parameters=parameters,
                namespace=namespace,
            )
            application = factory(context)
            phase = "initialize"
            application.initialize()
            phase = "start"
            application.start(parameters)
        except LoadError:
            namespace.close()
            raise
        except Exception as exc:
            namespace.close()
            raise LoadError(
                f"Application {phase} failed: {exc}",
                code=f"load.{phase}_failed",
                context=f"{artifact.name}:{entry_point}",
            ) from exc

        _log.info("Started %s from %s (entry point %s)", app_name, artifact.name, entry_point)
        return ApplicationHandle(
            application=application,
            artifact=artifact,
            entry_point=entry_point,
            namespace=namespace,
        )


__all__ = [
    "ARTIFACT_SUFFIX",
    "ApplicationHandle",
    "ArtifactNamespace",
    "DynamicLoader",
    "ENTRY_MODULE_ATTRIBUTE",
    "ENTRY_POINT_ATTRIBUTE",
    "EntryPointRegistry",
    "LaunchContext",
    "SANDBOX_PACKAGE",
]
