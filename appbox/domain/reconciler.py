"""Version reconciliation between local and remote metadata snapshots.

Pure functions only: no filesystem or network access happens here. Callers
pass in snapshots they already read and a flag describing whether a usable
local installation exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .metadata import MetadataSnapshot
from .resources import ResourceDescriptor, ResourceRegistry

_log = logging.getLogger(__name__)

_TRUE_FLAGS = {"true", "yes", "1", "on"}
_FALSE_FLAGS = {"false", "no", "0", "off", ""}


@dataclass(frozen=True)
class UpdatePlan:
    """Outcome of one reconciliation run; replaced, never mutated."""

    stale_resources: Tuple[ResourceDescriptor, ...] = ()
    must_notify: bool = False
    """Remote metadata asks the user to confirm the update."""
    may_resume_without_update: bool = False
    """A usable local copy exists and remote policy allows skipping."""
    remote_available: bool = True
    """False when the remote metadata could not be fetched at all."""

    @property
    def is_up_to_date(self) -> bool:
        return not self.stale_resources

    @property
    def stale_keys(self) -> Tuple[str, ...]:
        return tuple(resource.metadata_key for resource in self.stale_resources)

    @classmethod
    def no_update(cls, *, remote_available: bool = True) -> "UpdatePlan":
        return cls(stale_resources=(), remote_available=remote_available)


def parse_policy_flag(value: Optional[str], *, attribute: str = "") -> bool:
    """Interpret a remote policy attribute; absent or malformed means ``False``."""
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE_FLAGS:
        return True
    if text not in _FALSE_FLAGS:
        _log.warning("Malformed policy flag %s=%r treated as false", attribute or "?", value)
    return False


def find_stale_resources(
    local: MetadataSnapshot,
    remote: MetadataSnapshot,
    registry: ResourceRegistry,
) -> Tuple[ResourceDescriptor, ...]:
    """Return registry entries whose local version is absent or differs from remote.

    Versions are compared as opaque strings.
    """
    stale = []
    for resource in registry:
        local_value = local.version_of(resource.metadata_key)
        remote_value = remote.version_of(resource.metadata_key)
        if local_value is None or local_value != remote_value:
            stale.append(resource)
    return tuple(stale)


def reconcile(
    local: MetadataSnapshot,
    remote: MetadataSnapshot,
    registry: ResourceRegistry,
    *,
    notify_attribute: str = "Notify-Update",
    skip_attribute: str = "Allow-Ignore-Update",
    local_install_valid: bool = False,
) -> UpdatePlan:
    """Derive the minimal update plan for ``registry``.

    An empty ``remote`` snapshot carries no version information: with a
    valid local install nothing is updated, otherwise every resource is
    stale.
    """
    must_notify = parse_policy_flag(remote.version_of(notify_attribute), attribute=notify_attribute)
    allow_skip = parse_policy_flag(remote.version_of(skip_attribute), attribute=skip_attribute)
    may_resume = bool(local_install_valid and allow_skip)

    remote_versions = remote.restricted_to(registry.metadata_keys)
    if remote_versions.is_empty:
        if local_install_valid:
            _log.info("Remote metadata lists no resource versions; keeping local install")
            return UpdatePlan.no_update()
        return UpdatePlan(
            stale_resources=tuple(registry),
            must_notify=must_notify,
            may_resume_without_update=False,
        )

    stale = find_stale_resources(local, remote, registry)
    return UpdatePlan(
        stale_resources=stale,
        must_notify=must_notify,
        may_resume_without_update=may_resume,
    )


__all__ = ["UpdatePlan", "find_stale_resources", "parse_policy_flag", "reconcile"]
