from __future__ import annotations

import errno
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Sequence

from appbox.domain.errors import SyncError
from appbox.domain.reconciler import UpdatePlan
from appbox.domain.runtime import RuntimeContext

from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)

_NOT_EMPTY = {errno.ENOTEMPTY, errno.EEXIST}


@dataclass
class PurgeResources:
    """Delete the stale resources' local files and the installed metadata.

    Paths listed in ``keep`` (relative to the application directory) are left
    in place; directories that still hold kept files are tolerated.
    """

    keep: Sequence[str] = field(default_factory=tuple)

    def __call__(self, ctx: RuntimeContext, plan: UpdatePlan, reporter: StageReporter) -> List[Path]:
        app_dir = ctx.app_dir.resolve()
        keep = frozenset((app_dir / name).resolve() for name in self.keep)
        targets = self._targets(app_dir, plan)
        targets.append(ctx.metadata_path.resolve())

        removed: List[Path] = []
        for index, target in enumerate(targets):
            reporter.message(f"Deleting {target.relative_to(app_dir)}")
            if self._delete(target, keep):
                removed.append(target)
            reporter.items_done(index + 1, len(targets))
        _log.info("Purged %d of %d paths in %s", len(removed), len(targets), app_dir)
        return removed

    @staticmethod
    def _targets(app_dir: Path, plan: UpdatePlan) -> List[Path]:
        targets: List[Path] = []
        for resource in plan.stale_resources:
            for name in resource.local_file_names:
                path = (app_dir / name).resolve()
                if path == app_dir or app_dir not in path.parents:
                    raise SyncError(
                        f"Resource path escapes the application directory: {name}",
                        stage="purge",
                        context=resource.metadata_key,
                    )
                if path not in targets:
                    targets.append(path)
        return targets

    def _delete(self, path: Path, keep: FrozenSet[Path]) -> bool:
        if path in keep:
            _log.debug("Keeping %s", path)
            return False
        if not path.exists() and not path.is_symlink():
            return False
        try:
            if path.is_dir() and not path.is_symlink():
                for child in list(path.iterdir()):
                    self._delete(child, keep)
                return self._remove_dir(path)
            path.unlink()
            return True
        except OSError as exc:
            raise SyncError(
                f"Could not delete {path}",
                stage="purge",
                hint=str(exc),
            ) from exc

    @staticmethod
    def _remove_dir(path: Path) -> bool:
        try:
            path.rmdir()
            return True
        except OSError as exc:
            if exc.errno in _NOT_EMPTY:
                _log.debug("Directory not empty, left in place: %s", path)
                return False
            raise


__all__ = ["PurgeResources"]
