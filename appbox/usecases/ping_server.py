from __future__ import annotations

import logging
from dataclasses import dataclass

from appbox.domain.ports import TransportPort
from appbox.domain.runtime import RuntimeContext

from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)


@dataclass
class PingServer:
    """Verify that the update server is reachable before reconciling."""

    transport: TransportPort

    def __call__(self, ctx: RuntimeContext, reporter: StageReporter) -> None:
        target = ctx.settings.manifest_location or ctx.settings.sftp_hostname
        reporter.message(f"Connecting to {target}")
        self.transport.ping()
        reporter.progress(1.0)
        _log.info("Update server reachable (%s)", ctx.settings.hosting_mode.value)
