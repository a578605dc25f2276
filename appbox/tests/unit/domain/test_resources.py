from __future__ import annotations

import pytest

from appbox.domain.metadata import MetadataSnapshot
from appbox.domain.resources import ResourceDescriptor, ResourceRegistry


def test_descriptor_equality_uses_all_fields() -> None:
    a = ResourceDescriptor("http://h/a.zip", "A", ("a",))
    same = ResourceDescriptor("http://h/a.zip", "A", ["a"])
    other_files = ResourceDescriptor("http://h/a.zip", "A", ("b",))

    assert a == same
    assert a != other_files


def test_descriptor_name_is_url_basename() -> None:
    resource = ResourceDescriptor("http://h/dir/lib.zip?token=1", "L")

    assert resource.name == "lib.zip"
    assert str(resource) == "lib.zip"


def test_descriptor_rejects_blank_fields() -> None:
    with pytest.raises(ValueError):
        ResourceDescriptor("", "A")
    with pytest.raises(ValueError):
        ResourceDescriptor("http://h/a.zip", " ")


def test_registry_drops_duplicates_and_keeps_order() -> None:
    a = ResourceDescriptor("http://h/a.zip", "A")
    b = ResourceDescriptor("http://h/b.zip", "B")

    registry = ResourceRegistry(resources=(b, a, b))

    assert list(registry) == [b, a]
    assert registry.metadata_keys == ("B", "A")
    assert registry.find("A") is a
    assert registry.find("missing") is None


def test_registry_round_trips_through_entries() -> None:
    entries = [
        {"remote_location": "/srv/app.pyz", "metadata_key": "App", "local_file_names": ["app.pyz"]},
        {"remote_location": "/srv/libs.zip", "metadata_key": "Libs", "local_file_names": "libs"},
    ]

    registry = ResourceRegistry.from_entries(entries)

    assert len(registry) == 2
    assert registry.to_list()[1]["local_file_names"] == ["libs"]
    assert ResourceRegistry.from_entries(registry.to_list()) == registry


def test_snapshot_mapping_behavior() -> None:
    snapshot = MetadataSnapshot(attributes={"A": "1", "B": "2"}, source="x")

    assert snapshot["A"] == "1"
    assert snapshot.version_of("C") is None
    assert snapshot == {"A": "1", "B": "2"}
    assert snapshot.restricted_to(["B", "C"]) == MetadataSnapshot(attributes={"B": "2"})
    assert MetadataSnapshot.empty().is_empty
