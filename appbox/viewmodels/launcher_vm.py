from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence, Tuple

from ..domain.pipeline import StageFailure
from ..domain.progress import INDETERMINATE
from ..domain.resources import ResourceDescriptor


@dataclass(frozen=True)
class LauncherViewState:
    """Immutable snapshot rendered by the launcher window."""

    title: str = ""
    message: str = ""
    progress: float = 0.0
    """Fraction 0.0-1.0, or ``INDETERMINATE``."""
    error_message: str = ""
    error_detail: str = ""
    recovery_label: str = ""
    update_available: bool = False
    can_skip: bool = False
    stale_names: Tuple[str, ...] = field(default_factory=tuple)
    revision: int = 0

    @property
    def indeterminate(self) -> bool:
        return self.progress == INDETERMINATE

    @property
    def percent_label(self) -> str:
        if self.indeterminate:
            return ""
        return f"{int(round(self.progress * 100))}%"


@dataclass
class LauncherVM:
    """Observer bridge between the pipeline worker and the UI thread.

    Worker threads store the latest values under a lock (last value wins);
    the UI thread calls ``drain`` on its own schedule and only re-renders when
    the revision changed.
    """

    on_change: Optional[Callable[[], None]] = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._state = LauncherViewState()
        self._drained_revision = 0

    # ---- observer contract (worker thread) ----
    def report_progress(self, fraction: float) -> None:
        value = INDETERMINATE if fraction < 0 else min(max(float(fraction), 0.0), 1.0)
        self._update(progress=value)

    def report_message(self, text: str) -> None:
        self._update(message=str(text or ""))

    def report_title(self, text: str) -> None:
        self._update(
            title=str(text or ""),
            update_available=False,
            error_message="",
            error_detail="",
            recovery_label="",
        )

    def on_stage_failed(self, error: object, recovery_label: str) -> None:
        if isinstance(error, StageFailure):
            message, detail = error.message, error.detail
        else:
            message, detail = str(error), ""
        self._update(
            error_message=message,
            error_detail=detail,
            recovery_label=str(recovery_label or ""),
            update_available=False,
        )

    def on_update_available(
        self, can_skip: bool, stale_resources: Sequence[ResourceDescriptor]
    ) -> None:
        self._update(
            update_available=True,
            can_skip=bool(can_skip),
            stale_names=tuple(str(resource) for resource in stale_resources),
        )

    # ---- UI thread ----
    @property
    def state(self) -> LauncherViewState:
        with self._lock:
            return self._state

    def drain(self) -> Optional[LauncherViewState]:
        """Return the newest state if it changed since the last drain."""
        with self._lock:
            if self._state.revision == self._drained_revision:
                return None
            self._drained_revision = self._state.revision
            return self._state

    def _update(self, **changes) -> None:
        with self._lock:
            self._state = replace(self._state, revision=self._state.revision + 1, **changes)
        if self.on_change:
            self.on_change()


__all__ = ["LauncherVM", "LauncherViewState"]
