from __future__ import annotations

import logging

from appbox.domain.runtime import RuntimeContext

from appbox.adapters.manifest_reader import read_metadata
from appbox.adapters.plugin_loader import ARTIFACT_SUFFIX

_log = logging.getLogger(__name__)


def local_install_valid(ctx: RuntimeContext) -> bool:
    """True when the installed metadata is readable and exactly one artifact exists."""
    if read_metadata(ctx.metadata_path).is_empty:
        return False
    if not ctx.app_dir.is_dir():
        return False
    artifacts = [p for p in ctx.app_dir.iterdir() if p.is_file() and p.suffix == ARTIFACT_SUFFIX]
    if len(artifacts) != 1:
        _log.debug("Local install has %d artifacts in %s", len(artifacts), ctx.app_dir)
        return False
    return True


__all__ = ["local_install_valid"]
