from __future__ import annotations

import logging
from dataclasses import dataclass

from appbox.domain.errors import TransportError
from appbox.domain.ports import TransportPort
from appbox.domain.reconciler import UpdatePlan, reconcile
from appbox.domain.runtime import RuntimeContext

from appbox.adapters.manifest_reader import read_metadata
from appbox.usecases.local_install import local_install_valid
from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)


@dataclass
class CheckForUpdates:
    """Fetch the remote metadata into staging and derive the update plan.

    When the remote metadata cannot be fetched, an existing valid install is
    launched as-is; without one the transport error propagates.
    """

    transport: TransportPort

    def __call__(self, ctx: RuntimeContext, reporter: StageReporter) -> UpdatePlan:
        settings = ctx.settings
        local = read_metadata(ctx.metadata_path)
        valid = local_install_valid(ctx)
        if local.is_empty:
            _log.info("No installed metadata at %s; treating as first install", ctx.metadata_path)

        reporter.message("Fetching remote version information")
        try:
            self.transport.fetch(
                settings.manifest_location,
                ctx.staged_metadata_path,
                reporter.item_sink(0, 1),
            )
        except TransportError as exc:
            if valid:
                _log.warning("Remote metadata unavailable, launching installed version: %s", exc)
                return UpdatePlan.no_update(remote_available=False)
            raise

        remote = read_metadata(ctx.staged_metadata_path)
        plan = reconcile(
            local,
            remote,
            settings.resources,
            notify_attribute=settings.notify_attribute,
            skip_attribute=settings.skip_attribute,
            local_install_valid=valid,
        )
        _log.info(
            "Reconciled %d resources: stale=%s notify=%s may_skip=%s",
            len(settings.resources),
            list(plan.stale_keys),
            plan.must_notify,
            plan.may_resume_without_update,
        )
        reporter.progress(1.0)
        return plan
