"""Read key/value metadata from a standalone manifest or an archive entry.

The document uses the manifest format: ``Key: Value`` lines, continuation
lines starting with a single space, and sections separated by blank lines.
Only the main (first) section is read.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Dict, Mapping, Optional

from appbox.domain.errors import MetadataError
from appbox.domain.metadata import MetadataSnapshot
from appbox.domain.resources import ResourceRegistry

_log = logging.getLogger(__name__)

MANIFEST_ENTRY_NAMES = ("META-INF/MANIFEST.MF", "MANIFEST.MF")


def parse_manifest(text: str) -> Dict[str, str]:
    """Parse the main section of a manifest document.

    Raises:
        MetadataError: A line has no ``:`` separator or a continuation line
            appears before any attribute.
    """
    attributes: Dict[str, str] = {}
    current: Optional[str] = None
    for number, raw in enumerate(text.lstrip("\ufeff").splitlines(), start=1):
        if not raw.strip():
            if attributes:
                break
            continue
        if raw.startswith(" "):
            if current is None:
                raise MetadataError(f"Continuation without attribute on line {number}")
            attributes[current] += raw[1:]
            continue
        name, sep, value = raw.partition(":")
        name = name.strip()
        if not sep or not name:
            raise MetadataError(f"Malformed manifest line {number}: {raw!r}")
        current = name
        attributes[name] = value.strip()
    return attributes


def _read_archive_entry(path: Path) -> Optional[str]:
    with zipfile.ZipFile(path) as archive:
        names = set(archive.namelist())
        for entry in MANIFEST_ENTRY_NAMES:
            if entry in names:
                return archive.read(entry).decode("utf-8")
    return None


def read_metadata(source: Path | str) -> MetadataSnapshot:
    """Return the snapshot stored in ``source``.

    ``source`` is a standalone manifest file or a zip-based artifact with an
    embedded manifest. Missing files, missing entries, and unreadable content
    all yield an empty snapshot.
    """
    path = Path(source)
    if not path.is_file():
        _log.debug("Metadata source missing: %s", path)
        return MetadataSnapshot.empty(str(path))
    try:
        if zipfile.is_zipfile(path):
            text = _read_archive_entry(path)
            if text is None:
                _log.info("No embedded manifest in %s", path)
                return MetadataSnapshot.empty(str(path))
        else:
            text = path.read_text(encoding="utf-8")
        attributes = parse_manifest(text)
    except (OSError, UnicodeDecodeError, zipfile.BadZipFile, MetadataError) as exc:
        _log.warning("Unreadable metadata in %s: %s", path, exc)
        return MetadataSnapshot.empty(str(path))
    return MetadataSnapshot(attributes=attributes, source=str(path))


def read_attribute(source: Path | str, name: str) -> Optional[str]:
    """Return a single attribute from ``source`` or ``None``."""
    return read_metadata(source).version_of(name)


def read_resource_versions(source: Path | str, registry: ResourceRegistry) -> MetadataSnapshot:
    """Return only the attributes named by ``registry`` entries."""
    return read_metadata(source).restricted_to(registry.metadata_keys)


def render_manifest(attributes: Mapping[str, str]) -> str:
    """Serialize attributes to manifest text (used to publish and in tests)."""
    lines = ["Manifest-Version: 1.0"]
    for key, value in attributes.items():
        if key == "Manifest-Version":
            continue
        lines.append(f"{key}: {value}")
    return "\n".join(lines) + "\n"


__all__ = [
    "MANIFEST_ENTRY_NAMES",
    "parse_manifest",
    "read_attribute",
    "read_metadata",
    "read_resource_versions",
    "render_manifest",
]
