"""Explicit runtime context passed to every pipeline component."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from .resources import ResourceDescriptor
from .settings import LauncherSettings

_log = logging.getLogger(__name__)

METADATA_FILE_NAME = "MANIFEST.MF"
APP_DIR_NAME = "appdir"
TEMP_DIR_NAME = "tempdir"
LOG_FILE_NAME = "appbox.log"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class LaunchParameters:
    """Parameters forwarded to the launched application."""

    raw: Tuple[str, ...] = ()
    """Unparsed command line arguments."""
    named: Dict[str, str] = field(default_factory=dict)
    """``--key=value`` arguments."""
    unnamed: Tuple[str, ...] = ()

    @classmethod
    def from_args(cls, args: Sequence[str]) -> "LaunchParameters":
        named: Dict[str, str] = {}
        unnamed = []
        for arg in args:
            if arg.startswith("--") and "=" in arg:
                key, value = arg[2:].split("=", 1)
                named[key] = value
            else:
                unnamed.append(arg)
        return cls(raw=tuple(args), named=named, unnamed=tuple(unnamed))


@dataclass(frozen=True)
class RuntimeContext:
    """Paths and settings owned by one launcher process.

    The application and staging directories are exclusively owned by the
    orchestration run while it is active.
    """

    base_dir: Path
    app_dir: Path
    temp_dir: Path
    config_file: Path
    log_file: Path
    settings: LauncherSettings
    launch_parameters: LaunchParameters = field(default_factory=LaunchParameters)

    @property
    def metadata_path(self) -> Path:
        """Installed-version record inside the application directory."""
        return self.app_dir / METADATA_FILE_NAME

    @property
    def staged_metadata_path(self) -> Path:
        return self.temp_dir / METADATA_FILE_NAME

    def staged_resource_path(self, index: int, resource: ResourceDescriptor) -> Path:
        """Staging file for the ``index``-th stale resource.

        Each resource gets its own directory so resources whose remote files
        share a name never overwrite each other.
        """
        key = _UNSAFE_CHARS.sub("_", resource.metadata_key).strip("._") or "resource"
        return self.temp_dir / f"{index:03d}-{key}" / resource.name

    @classmethod
    def prepare(
        cls,
        base_dir: Path | str,
        settings: LauncherSettings,
        launch_parameters: Optional[LaunchParameters] = None,
        *,
        clean_staging: bool = True,
    ) -> "RuntimeContext":
        """Create the directory layout under ``base_dir`` and return the context."""
        base = Path(base_dir).expanduser().resolve()
        app_dir = base / APP_DIR_NAME
        temp_dir = base / TEMP_DIR_NAME
        app_dir.mkdir(parents=True, exist_ok=True)
        temp_dir.mkdir(parents=True, exist_ok=True)
        if clean_staging:
            clear_directory(temp_dir)
        config_name = f"{settings.app_name or 'application'}.cfg"
        return cls(
            base_dir=base,
            app_dir=app_dir,
            temp_dir=temp_dir,
            config_file=base / config_name,
            log_file=base / LOG_FILE_NAME,
            settings=settings,
            launch_parameters=launch_parameters or LaunchParameters(),
        )


def clear_directory(directory: Path) -> None:
    """Remove the contents of ``directory`` but keep the directory itself."""
    if not directory.is_dir():
        return
    for item in directory.iterdir():
        try:
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
        except OSError:
            _log.warning("Could not remove staged item %s", item, exc_info=True)


__all__ = [
    "APP_DIR_NAME",
    "LOG_FILE_NAME",
    "LaunchParameters",
    "METADATA_FILE_NAME",
    "RuntimeContext",
    "TEMP_DIR_NAME",
    "clear_directory",
]
