from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from appbox.domain.errors import SyncError, TransportError
from appbox.domain.ports import TransportPort
from appbox.domain.reconciler import UpdatePlan
from appbox.domain.runtime import RuntimeContext

from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)


@dataclass
class DownloadResources:
    """Fetch every stale resource into staging over a single transport session."""

    transport: TransportPort

    def __call__(self, ctx: RuntimeContext, plan: UpdatePlan, reporter: StageReporter) -> List[Path]:
        stale = list(plan.stale_resources)
        need_metadata = not ctx.staged_metadata_path.is_file()
        total = len(stale) + (1 if need_metadata else 0)
        staged: List[Path] = []
        try:
            with self.transport.open_session() as session:
                for index, resource in enumerate(stale):
                    reporter.message(f"Downloading {resource.name}")
                    destination = ctx.staged_resource_path(index, resource)
                    session.fetch(resource.remote_location, destination, reporter.item_sink(index, total))
                    staged.append(destination)
                if need_metadata:
                    reporter.message("Downloading version information")
                    session.fetch(
                        ctx.settings.manifest_location,
                        ctx.staged_metadata_path,
                        reporter.item_sink(total - 1, total),
                    )
        except TransportError as exc:
            raise SyncError(
                exc.message,
                stage="download",
                hint=exc.hint,
                context=exc.context,
            ) from exc
        reporter.items_done(total, total)
        _log.info("Staged %d resources in %s", len(staged), ctx.temp_dir)
        return staged


__all__ = ["DownloadResources"]
