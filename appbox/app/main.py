# appbox/app/main.py
from __future__ import annotations

import argparse
import logging
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional, Sequence

# ---- ViewModels ----
from ..viewmodels.launcher_vm import LauncherVM

# ---- UseCases & Adapters ----
from ..adapters.plugin_loader import DynamicLoader
from ..adapters.storage_local import StorageLocal
from ..adapters.transports import build_transport
from ..domain.pipeline import PipelineState, RecoveryAction, Stage
from ..domain.ports import TransportPort, UseCaseError
from ..domain.runtime import LOG_FILE_NAME, LaunchParameters, RuntimeContext
from ..usecases.check_for_updates import CheckForUpdates
from ..usecases.download_resources import DownloadResources
from ..usecases.install_resources import InstallResources
from ..usecases.launch_orchestrator import LaunchHooks, LaunchOrchestrator
from ..usecases.ping_server import PingServer
from ..usecases.purge_resources import PurgeResources
from ..usecases.start_application import StartApplication
from ..utils import logging as logging_utils

_log = logging.getLogger(__name__)


def build_orchestrator(
    ctx: RuntimeContext,
    *,
    observer=None,
    hooks: Optional[LaunchHooks] = None,
    transport: Optional[TransportPort] = None,
    loader: Optional[DynamicLoader] = None,
    keep: Sequence[str] = (),
) -> LaunchOrchestrator:
    """Wire stage use cases around one transport and loader."""
    transport = transport or build_transport(ctx.settings)
    loader = loader or DynamicLoader()
    return LaunchOrchestrator(
        ctx,
        uc_ping=PingServer(transport),
        uc_check=CheckForUpdates(transport),
        uc_purge=PurgeResources(keep=tuple(keep)),
        uc_download=DownloadResources(transport),
        uc_install=InstallResources(),
        uc_start=StartApplication(loader),
        observer=observer,
        hooks=hooks,
    )


class App:
    """Bootstrap: wire the launcher window <-> LauncherVM <-> orchestrator."""

    def __init__(self, ctx: RuntimeContext) -> None:
        from .views.launcher_window import LauncherWindow, schedule_drain

        self._log = logging.getLogger(__name__)
        self.ctx = ctx
        self.vm = LauncherVM()
        self.orchestrator = build_orchestrator(ctx, observer=self.vm)
        self.win = LauncherWindow(
            title=ctx.settings.app_name,
            on_proceed=lambda: self._command(self.orchestrator.proceed),
            on_skip=lambda: self._command(self.orchestrator.skip),
            on_close=self._on_close,
            on_details=self._open_version_description if ctx.settings.version_description_url else None,
        )
        schedule_drain(self.win, self.vm.drain, self._render)

    def run(self) -> None:
        self.win.after(0, lambda: self._command(self.orchestrator.start))
        self.win.mainloop()

    def _render(self, state) -> None:
        self.win.render(state)
        if self.orchestrator.state.current_stage is Stage.SUCCEEDED:
            # the launched application owns the screen from here on
            self.win.withdraw()

    def _command(self, action) -> None:
        try:
            action()
        except UseCaseError as exc:
            self._log.info("Command rejected: %s", exc.message)

    def _open_version_description(self) -> None:
        url = self.ctx.settings.version_description_url
        if not webbrowser.open(url):
            self._log.warning("Could not open %s", url)

    def _on_close(self) -> None:
        self.orchestrator.close()
        self.orchestrator.shutdown()
        self.win.destroy()


def run_headless(ctx: RuntimeContext, *, skip_update: bool = False) -> int:
    """Drive the pipeline from the console; returns a process exit code."""
    orchestrator = build_orchestrator(ctx, hooks=LaunchHooks(on_state=_log_state))
    orchestrator.start()
    while True:
        orchestrator.wait()
        state = orchestrator.state
        if state.current_stage is Stage.AWAITING_USER_DECISION:
            plan = orchestrator.plan
            if ctx.settings.version_description_url:
                _log.info("What's new: %s", ctx.settings.version_description_url)
            if skip_update and plan is not None and plan.may_resume_without_update:
                orchestrator.skip()
            else:
                orchestrator.proceed()
            continue
        failure = state.last_error
        if (
            skip_update
            and state.current_stage is Stage.FAILED
            and failure is not None
            and failure.recovery is RecoveryAction.SKIP_UPDATE
        ):
            _log.warning("%s; starting installed version", failure.message)
            orchestrator.skip()
            continue
        break

    if state.current_stage is Stage.SUCCEEDED:
        return 0
    if state.last_error is not None:
        _log.error("%s (%s)", state.last_error.message, state.last_error.recovery.label)
    return 1


def _log_state(state: PipelineState) -> None:
    _log.info("[%s] %s", state.title, state.message)


def parse_args(argv: Optional[Sequence[str]] = None) -> tuple[argparse.Namespace, List[str]]:
    parser = argparse.ArgumentParser(prog="appbox", description="Self-updating application launcher")
    parser.add_argument("--base-dir", default=".", help="Directory holding settings, appdir and tempdir")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--skip-update", action="store_true", help="Skip optional updates in headless mode")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_known_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args, extra = parse_args(argv)
    base_dir = Path(args.base_dir).expanduser().resolve()
    logging_utils.configure_root(args.log_level, base_dir / LOG_FILE_NAME)
    settings = StorageLocal(str(base_dir)).load_settings()
    ctx = RuntimeContext.prepare(base_dir, settings, LaunchParameters.from_args(extra))
    _log.info("Launching %s from %s", settings.app_name, base_dir)

    try:
        if args.headless:
            return run_headless(ctx, skip_update=args.skip_update)
        app = App(ctx)
    except ValueError as exc:
        _log.error("Invalid launcher settings in %s: %s", ctx.base_dir / StorageLocal.SETTINGS_FILE, exc)
        return 2
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
