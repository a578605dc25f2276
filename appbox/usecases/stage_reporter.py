"""Progress and message callbacks handed to each stage use case."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from appbox.domain.progress import INDETERMINATE, ProgressSink


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


@dataclass
class StageReporter:
    """Stage-local progress (0.0-1.0) and current-item message callbacks."""

    progress: Callable[[float], None] = _noop
    message: Callable[[str], None] = _noop

    def __post_init__(self) -> None:
        self.progress = self.progress or _noop
        self.message = self.message or _noop

    def item_sink(self, index: int, total: int) -> ProgressSink:
        """Return a percent sink that maps one item's percent into the stage fraction.

        Negative percents mean the item size is unknown and are forwarded as
        ``INDETERMINATE``.
        """
        total = max(total, 1)

        def _sink(percent: int) -> None:
            if percent < 0:
                self.progress(INDETERMINATE)
                return
            self.progress((index + percent / 100.0) / total)

        return _sink

    def items_done(self, done: int, total: int) -> None:
        self.progress(done / total if total > 0 else 1.0)


__all__ = ["StageReporter"]
