"""Domain package exports for value objects, policies, and ports."""

from .errors import LauncherError, LoadError, MetadataError, SyncError, TransportError
from .metadata import MetadataSnapshot
from .pipeline import PipelineState, RecoveryAction, Stage, StageFailure
from .ports import UseCaseError
from .progress import INDETERMINATE, PercentProgress
from .reconciler import UpdatePlan, reconcile
from .resources import ResourceDescriptor, ResourceRegistry
from .runtime import LaunchParameters, RuntimeContext
from .settings import HostingMode, LauncherSettings

__all__ = [
    "HostingMode",
    "INDETERMINATE",
    "LaunchParameters",
    "LauncherError",
    "LauncherSettings",
    "LoadError",
    "MetadataError",
    "MetadataSnapshot",
    "PercentProgress",
    "PipelineState",
    "RecoveryAction",
    "ResourceDescriptor",
    "ResourceRegistry",
    "RuntimeContext",
    "Stage",
    "StageFailure",
    "SyncError",
    "TransportError",
    "UpdatePlan",
    "UseCaseError",
    "reconcile",
]
