"""Finite-state machine driving ping, reconcile, sync, and launch.

One controller loop dispatches on ``PipelineState.current_stage``. Each stage
handler runs a use case and returns a ``StageResult`` naming the next stage.
The loop stops at blocking stages (awaiting a user decision, or terminal) and
resumes only through the inward commands ``proceed``, ``skip``, and ``close``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from appbox.domain.pipeline import PipelineState, RecoveryAction, Stage, StageFailure
from appbox.domain.ports import LauncherObserver, UseCaseError
from appbox.domain.reconciler import UpdatePlan
from appbox.domain.runtime import RuntimeContext

from appbox.adapters.plugin_loader import ApplicationHandle
from appbox.usecases.error_mapping import map_stage_error
from appbox.usecases.local_install import local_install_valid
from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)

_SKIPPABLE_STAGES = frozenset({Stage.PINGING, Stage.RECONCILING})


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage handler."""

    next_stage: Stage
    message: Optional[str] = None


@dataclass
class LaunchHooks:
    """Optional callbacks triggered on significant pipeline events."""

    on_state: Callable[[PipelineState], None] = _noop
    on_launched: Callable[[ApplicationHandle], None] = _noop
    on_finished: Callable[[PipelineState], None] = _noop

    def __post_init__(self) -> None:
        self.on_state = self.on_state or _noop
        self.on_launched = self.on_launched or _noop
        self.on_finished = self.on_finished or _noop


class _NullObserver:
    def report_progress(self, fraction: float) -> None:
        pass

    def report_message(self, text: str) -> None:
        pass

    def report_title(self, text: str) -> None:
        pass

    def on_stage_failed(self, error: object, recovery_label: str) -> None:
        pass

    def on_update_available(self, can_skip, stale_resources) -> None:
        pass


class LaunchOrchestrator:
    """Coordinates the launcher pipeline on a dedicated worker thread."""

    def __init__(
        self,
        ctx: RuntimeContext,
        *,
        uc_ping,
        uc_check,
        uc_purge,
        uc_download,
        uc_install,
        uc_start,
        observer: Optional[LauncherObserver] = None,
        hooks: Optional[LaunchHooks] = None,
        install_probe: Callable[[RuntimeContext], bool] = local_install_valid,
        thread_factory: Callable[..., threading.Thread] = threading.Thread,
    ) -> None:
        """
        Initialize the orchestrator with its collaborators.

        The stage use cases are plain callables taking ``(ctx, reporter)`` or
        ``(ctx, plan, reporter)`` so tests can pass simple doubles.
        """
        self.ctx = ctx
        self.uc_ping = uc_ping
        self.uc_check = uc_check
        self.uc_purge = uc_purge
        self.uc_download = uc_download
        self.uc_install = uc_install
        self.uc_start = uc_start
        self.observer = observer or _NullObserver()
        self.hooks = hooks or LaunchHooks()
        self._install_probe = install_probe
        self._thread_factory = thread_factory

        self._lock = threading.RLock()
        self._state = PipelineState()
        self._plan: Optional[UpdatePlan] = None
        self._handle: Optional[ApplicationHandle] = None
        self._worker: Optional[threading.Thread] = None
        self._active = False
        self._close_requested = False
        self._handlers: Dict[Stage, Callable[[], StageResult]] = {
            Stage.PINGING: self._run_ping,
            Stage.RECONCILING: self._run_reconcile,
            Stage.PURGING: self._run_purge,
            Stage.DOWNLOADING: self._run_download,
            Stage.EXTRACTING: self._run_extract,
            Stage.LAUNCHING: self._run_launch,
        }

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> PipelineState:
        with self._lock:
            return self._state

    @property
    def plan(self) -> Optional[UpdatePlan]:
        return self._plan

    @property
    def handle(self) -> Optional[ApplicationHandle]:
        return self._handle

    @property
    def is_running(self) -> bool:
        """True while the controller loop owns the pipeline."""
        with self._lock:
            return self._active

    # ------------------------------------------------------------------
    # Inward commands
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Begin a fresh run from Pinging (from Idle, or after a failure)."""
        with self._lock:
            self._ensure_idle_worker()
            stage = self._state.current_stage
            if stage not in (Stage.IDLE, Stage.FAILED):
                raise UseCaseError("INVALID_COMMAND", f"Cannot start from stage '{stage.value}'.")
            self._plan = None
            self._close_requested = False
            self._transition(Stage.PINGING, message="")
            self._spawn()

    def proceed(self) -> None:
        """Apply the update after a notification, or launch after a skippable failure."""
        with self._lock:
            self._ensure_idle_worker()
            stage = self._state.current_stage
            if stage is Stage.AWAITING_USER_DECISION:
                self._transition(Stage.PURGING)
            elif self._failure_allows_skip():
                self._transition(Stage.LAUNCHING, message="Starting installed version")
            else:
                raise UseCaseError("INVALID_COMMAND", f"Nothing to proceed from stage '{stage.value}'.")
            self._spawn()

    def skip(self) -> None:
        """Launch the installed version without updating."""
        with self._lock:
            self._ensure_idle_worker()
            stage = self._state.current_stage
            plan = self._plan
            allowed = (
                stage is Stage.AWAITING_USER_DECISION
                and plan is not None
                and plan.may_resume_without_update
            ) or self._failure_allows_skip()
            if not allowed:
                raise UseCaseError("SKIP_NOT_ALLOWED", "Skipping the update is not allowed.")
            self._transition(Stage.LAUNCHING, message="Update skipped")
            self._spawn()

    def close(self) -> None:
        """Terminate the run; a busy worker stops at the next stage boundary."""
        with self._lock:
            if self.is_running:
                self._close_requested = True
                _log.info("Close requested while %s is active", self._state.current_stage.value)
                return
            if self._state.current_stage is not Stage.CLOSED:
                self._transition(Stage.CLOSED, message="")
                self.hooks.on_finished(self._state)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the current worker; returns ``True`` when it has finished."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def shutdown(self) -> None:
        """Stop the launched application, if any."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            handle.stop()
        except Exception:
            _log.exception("Error while stopping %s", self.ctx.settings.app_name)

    # ------------------------------------------------------------------
    # Controller loop
    # ------------------------------------------------------------------
    def run_until_blocked(self) -> PipelineState:
        """Run stages until one blocks on user input or the run is terminal.

        A pending ``close`` request is applied once the loop stops, whatever
        stage it stopped in (except a successful launch).
        """
        with self._lock:
            self._active = True
        while True:
            with self._lock:
                stage = self._state.current_stage
                if stage.is_blocking or self._close_requested:
                    break
            handler = self._handlers[stage]
            try:
                result = handler()
            except Exception as exc:
                failure = map_stage_error(exc, stage=stage, recovery=self._recovery_for(stage))
                _log.error("Stage %s failed: %s", stage.value, failure.detail, exc_info=exc)
                with self._lock:
                    self._fail(failure)
                break
            with self._lock:
                self._transition(result.next_stage, message=result.message)

        with self._lock:
            if self._close_requested and self._state.current_stage not in (Stage.SUCCEEDED, Stage.CLOSED):
                self._transition(Stage.CLOSED, message="")
            self._close_requested = False
            self._active = False
            final = self._state
        if final.current_stage.is_terminal:
            self.hooks.on_finished(final)
        return final

    def _spawn(self) -> None:
        worker = self._thread_factory(target=self.run_until_blocked, name="appbox-pipeline", daemon=True)
        self._worker = worker
        self._active = True
        try:
            worker.start()
        except Exception:
            self._active = False
            raise

    def _ensure_idle_worker(self) -> None:
        if self.is_running:
            raise UseCaseError("PIPELINE_BUSY", "A launcher task is already running.")

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------
    def _run_ping(self) -> StageResult:
        self.uc_ping(self.ctx, self._reporter())
        return StageResult(Stage.RECONCILING, message="Server reachable")

    def _run_reconcile(self) -> StageResult:
        plan = self.uc_check(self.ctx, self._reporter())
        self._plan = plan
        if plan.is_up_to_date:
            note = "Application is up to date" if plan.remote_available else "Update server unavailable"
            return StageResult(Stage.LAUNCHING, message=note)
        if plan.must_notify:
            names = ", ".join(str(resource) for resource in plan.stale_resources)
            return StageResult(Stage.AWAITING_USER_DECISION, message=f"Update available: {names}")
        return StageResult(Stage.PURGING)

    def _run_purge(self) -> StageResult:
        self.uc_purge(self.ctx, self._require_plan(), self._reporter())
        return StageResult(Stage.DOWNLOADING)

    def _run_download(self) -> StageResult:
        self.uc_download(self.ctx, self._require_plan(), self._reporter())
        return StageResult(Stage.EXTRACTING)

    def _run_extract(self) -> StageResult:
        self.uc_install(self.ctx, self._require_plan(), self._reporter())
        return StageResult(Stage.LAUNCHING, message="Update installed")

    def _run_launch(self) -> StageResult:
        handle = self.uc_start(self.ctx, self._reporter())
        self._handle = handle
        self.hooks.on_launched(handle)
        return StageResult(Stage.SUCCEEDED, message=f"{self.ctx.settings.app_name} started")

    def _require_plan(self) -> UpdatePlan:
        if self._plan is None:
            raise UseCaseError("NO_PLAN", "No update plan available.")
        return self._plan

    # ------------------------------------------------------------------
    # State updates
    # ------------------------------------------------------------------
    def _recovery_for(self, stage: Stage) -> RecoveryAction:
        if stage in _SKIPPABLE_STAGES:
            try:
                if self._install_probe(self.ctx):
                    return RecoveryAction.SKIP_UPDATE
            except OSError:
                _log.warning("Could not inspect local install", exc_info=True)
        return RecoveryAction.CLOSE

    def _failure_allows_skip(self) -> bool:
        state = self._state
        return (
            state.current_stage is Stage.FAILED
            and state.last_error is not None
            and state.last_error.recovery is RecoveryAction.SKIP_UPDATE
        )

    def _reporter(self) -> StageReporter:
        return StageReporter(progress=self._report_progress, message=self._report_message)

    def _report_progress(self, fraction: float) -> None:
        with self._lock:
            self._state = self._state.with_progress(fraction)
        self.observer.report_progress(fraction)

    def _report_message(self, text: str) -> None:
        with self._lock:
            self._state = self._state.with_message(text)
        self.observer.report_message(text)

    def _transition(self, stage: Stage, *, message: Optional[str] = None) -> None:
        previous = self._state.current_stage
        self._state = self._state.advance(stage, message=message)
        _log.debug("Pipeline %s -> %s", previous.value, stage.value)
        self.observer.report_title(self._state.title)
        self.observer.report_message(self._state.message)
        self.observer.report_progress(self._state.progress)
        plan = self._plan
        if stage is Stage.AWAITING_USER_DECISION and plan is not None:
            self.observer.on_update_available(plan.may_resume_without_update, plan.stale_resources)
        self.hooks.on_state(self._state)

    def _fail(self, failure: StageFailure) -> None:
        self._state = self._state.fail(failure)
        self.observer.report_title(self._state.title)
        self.observer.report_message(failure.message)
        self.observer.on_stage_failed(failure, failure.recovery.label)
        self.hooks.on_state(self._state)


__all__ = ["LaunchHooks", "LaunchOrchestrator", "StageResult"]
