"""Typed metadata snapshot describing installed or available resource versions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional


@dataclass(frozen=True)
class MetadataSnapshot(Mapping):
    """Immutable ``attribute -> value`` mapping read from a manifest document.

    A missing key means "version unknown"; an empty snapshot means the source
    was missing or unreadable.
    """

    attributes: Dict[str, str] = field(default_factory=dict)
    source: str = ""
    """Human-readable origin (file path or archive entry) for logging."""

    def __post_init__(self) -> None:
        normalized = {str(key): str(value) for key, value in dict(self.attributes).items()}
        object.__setattr__(self, "attributes", normalized)

    def __getitem__(self, key: str) -> str:
        return self.attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.attributes.items())))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MetadataSnapshot):
            return self.attributes == other.attributes
        if isinstance(other, Mapping):
            return self.attributes == dict(other)
        return NotImplemented

    @property
    def is_empty(self) -> bool:
        return not self.attributes

    def version_of(self, key: str) -> Optional[str]:
        """Return the version string for ``key`` or ``None`` when unknown."""
        return self.attributes.get(key)

    def restricted_to(self, keys: Iterable[str]) -> "MetadataSnapshot":
        """Return a snapshot containing only ``keys`` that are present."""
        wanted = set(keys)
        return MetadataSnapshot(
            attributes={key: value for key, value in self.attributes.items() if key in wanted},
            source=self.source,
        )

    @classmethod
    def empty(cls, source: str = "") -> "MetadataSnapshot":
        return cls(attributes={}, source=source)


__all__ = ["MetadataSnapshot"]
