"""Resource descriptors and the ordered registry kept in sync by the launcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urlparse


@dataclass(frozen=True)
class ResourceDescriptor:
    """One independently versioned unit of the target application's files."""

    remote_location: str
    """URL (web hosting) or remote path (SFTP hosting) of the resource."""
    metadata_key: str
    """Manifest attribute holding this resource's version."""
    local_file_names: Tuple[str, ...] = ()
    """Paths relative to the application directory owned by this resource."""

    def __post_init__(self) -> None:
        if not isinstance(self.remote_location, str) or not self.remote_location.strip():
            raise ValueError("ResourceDescriptor.remote_location must be a non-empty string.")
        if not isinstance(self.metadata_key, str) or not self.metadata_key.strip():
            raise ValueError("ResourceDescriptor.metadata_key must be a non-empty string.")
        object.__setattr__(self, "local_file_names", tuple(str(name) for name in self.local_file_names))

    @property
    def name(self) -> str:
        """Return the file name of the remote resource (last path segment)."""
        path = urlparse(self.remote_location).path or self.remote_location
        return PurePosixPath(path).name

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ResourceDescriptor":
        """Build a descriptor from a persisted settings entry."""
        if not isinstance(payload, Mapping):
            raise ValueError("Resource entry must be a mapping.")
        file_names = payload.get("local_file_names") or ()
        if isinstance(file_names, str):
            file_names = [file_names]
        return cls(
            remote_location=str(payload.get("remote_location") or "").strip(),
            metadata_key=str(payload.get("metadata_key") or "").strip(),
            local_file_names=tuple(str(name).strip() for name in file_names if str(name).strip()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remote_location": self.remote_location,
            "metadata_key": self.metadata_key,
            "local_file_names": list(self.local_file_names),
        }


@dataclass(frozen=True)
class ResourceRegistry:
    """Ordered, read-only set of resource descriptors.

    Order only affects logging; duplicates are dropped on construction.
    """

    resources: Tuple[ResourceDescriptor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        unique: List[ResourceDescriptor] = []
        for resource in self.resources:
            if not isinstance(resource, ResourceDescriptor):
                raise TypeError("ResourceRegistry entries must be ResourceDescriptor instances.")
            if resource not in unique:
                unique.append(resource)
        object.__setattr__(self, "resources", tuple(unique))

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self.resources)

    def __len__(self) -> int:
        return len(self.resources)

    def __contains__(self, item: object) -> bool:
        return item in self.resources

    @property
    def metadata_keys(self) -> Tuple[str, ...]:
        return tuple(resource.metadata_key for resource in self.resources)

    def find(self, metadata_key: str) -> Optional[ResourceDescriptor]:
        for resource in self.resources:
            if resource.metadata_key == metadata_key:
                return resource
        return None

    @classmethod
    def from_entries(cls, entries: Iterable[Any]) -> "ResourceRegistry":
        descriptors = []
        for entry in entries or ():
            if isinstance(entry, ResourceDescriptor):
                descriptors.append(entry)
            else:
                descriptors.append(ResourceDescriptor.from_dict(entry))
        return cls(resources=tuple(descriptors))

    def to_list(self) -> List[Dict[str, Any]]:
        return [resource.to_dict() for resource in self.resources]


__all__ = ["ResourceDescriptor", "ResourceRegistry"]
