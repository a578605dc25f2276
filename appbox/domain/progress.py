"""Integer percent progress with redundant-callback suppression."""

from __future__ import annotations

from typing import Callable, Optional

ProgressSink = Callable[[int], None]
"""Receives integer percent values (0-100) for one fetch or extract.

``UNKNOWN_PERCENT`` is sent once when the total size is unknown.
"""

UNKNOWN_PERCENT = -1

INDETERMINATE = -1.0
"""Fraction pushed to the observer when the total size is unknown."""


def _noop(_: int) -> None:
    """Default sink used when the caller does not observe progress."""


class PercentProgress:
    """Convert cumulative counts into monotonic integer percent callbacks.

    Callbacks fire only when the computed percent advances. With ``total <= 0``
    the progress is indeterminate: ``UNKNOWN_PERCENT`` is reported once, then
    nothing until ``finish``.
    """

    def __init__(self, total: int, sink: Optional[ProgressSink] = None) -> None:
        self.total = int(total or 0)
        self.count = 0
        self._sink = sink or _noop
        self._percent = -1
        self._announced_unknown = False

    @property
    def indeterminate(self) -> bool:
        return self.total <= 0

    @property
    def percent(self) -> int:
        return max(self._percent, 0)

    def begin(self) -> None:
        """Announce an unknown total before the first bytes arrive."""
        if self.indeterminate and not self._announced_unknown and self._percent < 0:
            self._announced_unknown = True
            self._sink(UNKNOWN_PERCENT)

    def advance(self, delta: int) -> None:
        """Add ``delta`` units to the running count."""
        if delta <= 0:
            return
        self.update(self.count + int(delta))

    def update(self, count: int) -> None:
        """Set the cumulative count (values lower than before are ignored)."""
        self.count = max(self.count, int(count))
        if self.indeterminate:
            self.begin()
            return
        percent = min(100, self.count * 100 // self.total)
        self._emit(percent)

    def finish(self) -> None:
        """Terminate the sequence at 100."""
        self._emit(100)

    def _emit(self, percent: int) -> None:
        if percent <= self._percent:
            return
        self._percent = percent
        self._sink(percent)


__all__ = ["INDETERMINATE", "PercentProgress", "ProgressSink", "UNKNOWN_PERCENT"]
