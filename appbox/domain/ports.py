from __future__ import annotations

from pathlib import Path
from typing import ContextManager, Optional, Protocol, Sequence

from .progress import ProgressSink
from .resources import ResourceDescriptor


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ---- Ports (Hexagonal boundaries) ----
class TransportSession(Protocol):
    """Scoped connection owned by exactly one stage; closed on every exit path."""

    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path: ...
    def close(self) -> None: ...


class TransportPort(Protocol):
    """Uniform file fetch over SFTP or HTTP hosting."""

    def ping(self) -> None: ...  # raises TransportError when unreachable
    def open_session(self) -> ContextManager[TransportSession]: ...
    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path: ...


class LauncherObserver(Protocol):
    """One-way notifications pushed from the pipeline worker to the UI."""

    def report_progress(self, fraction: float) -> None: ...  # 0.0-1.0 or INDETERMINATE
    def report_message(self, text: str) -> None: ...
    def report_title(self, text: str) -> None: ...
    def on_stage_failed(self, error: object, recovery_label: str) -> None: ...
    def on_update_available(
        self, can_skip: bool, stale_resources: Sequence[ResourceDescriptor]
    ) -> None: ...


class EmbeddedApplication(Protocol):
    """Capability contract implemented by a launched application."""

    def initialize(self) -> None: ...
    def start(self, parameters: object) -> None: ...


__all__ = [
    "EmbeddedApplication",
    "LauncherObserver",
    "TransportPort",
    "TransportSession",
    "UseCaseError",
]
