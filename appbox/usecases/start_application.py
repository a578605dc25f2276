from __future__ import annotations

from dataclasses import dataclass

from appbox.domain.runtime import RuntimeContext

from appbox.adapters.plugin_loader import ApplicationHandle, DynamicLoader
from appbox.usecases.stage_reporter import StageReporter


@dataclass
class StartApplication:
    loader: DynamicLoader

    def __call__(self, ctx: RuntimeContext, reporter: StageReporter) -> ApplicationHandle:
        reporter.message(f"Starting {ctx.settings.app_name}")
        handle = self.loader.load_and_start(
            ctx.app_dir,
            ctx.config_file,
            ctx.launch_parameters,
            app_name=ctx.settings.app_name,
        )
        reporter.progress(1.0)
        return handle
