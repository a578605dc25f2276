"""Pipeline state rendered by the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Orchestrator stages; exactly one is active at a time."""

    IDLE = "idle"
    PINGING = "pinging"
    RECONCILING = "reconciling"
    AWAITING_USER_DECISION = "awaiting_user_decision"
    PURGING = "purging"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    LAUNCHING = "launching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES

    @property
    def is_blocking(self) -> bool:
        """Stages that wait for an inward command before continuing."""
        return self in BLOCKING_STAGES


TERMINAL_STAGES = frozenset({Stage.SUCCEEDED, Stage.FAILED, Stage.CLOSED})
BLOCKING_STAGES = frozenset({Stage.IDLE, Stage.AWAITING_USER_DECISION}) | TERMINAL_STAGES

STAGE_TITLES = {
    Stage.IDLE: "Ready",
    Stage.PINGING: "Ping Server Connection",
    Stage.RECONCILING: "Checking For Updates",
    Stage.AWAITING_USER_DECISION: "Update Available",
    Stage.PURGING: "Deleting Application Resources",
    Stage.DOWNLOADING: "Downloading Application Resources",
    Stage.EXTRACTING: "Extracting Application Resources",
    Stage.LAUNCHING: "Loading & Starting Application",
    Stage.SUCCEEDED: "Application Started",
    Stage.FAILED: "Task Failed",
    Stage.CLOSED: "Closed",
}


class RecoveryAction(str, Enum):
    """Action offered to the user after a failure."""

    SKIP_UPDATE = "Skip Update"
    CLOSE = "Close"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class StageFailure:
    """Short user-facing failure plus the original cause for inspection."""

    stage: Stage
    code: str
    message: str
    recovery: RecoveryAction = RecoveryAction.CLOSE
    detail: str = ""
    cause: Optional[BaseException] = None


@dataclass(frozen=True)
class PipelineState:
    """Single source of truth for the observer.

    Failed is absorbing for the pipeline itself; the recovery action chosen by
    the user (skip to launch, or close) is the only way out.
    """

    current_stage: Stage = Stage.IDLE
    progress: float = 0.0
    message: str = ""
    title: str = ""
    last_error: Optional[StageFailure] = None

    def advance(self, stage: Stage, *, message: Optional[str] = None) -> "PipelineState":
        return replace(
            self,
            current_stage=stage,
            progress=0.0,
            title=STAGE_TITLES.get(stage, stage.value),
            message=self.message if message is None else message,
            last_error=None if stage is not Stage.FAILED else self.last_error,
        )

    def with_progress(self, fraction: float) -> "PipelineState":
        return replace(self, progress=float(fraction))

    def with_message(self, message: str) -> "PipelineState":
        return replace(self, message=message)

    def fail(self, failure: StageFailure) -> "PipelineState":
        return replace(
            self,
            current_stage=Stage.FAILED,
            progress=0.0,
            title=STAGE_TITLES[Stage.FAILED],
            message=failure.message,
            last_error=failure,
        )


__all__ = [
    "BLOCKING_STAGES",
    "PipelineState",
    "RecoveryAction",
    "STAGE_TITLES",
    "Stage",
    "StageFailure",
    "TERMINAL_STAGES",
]
