from __future__ import annotations

import itertools
import logging

from appbox.domain.metadata import MetadataSnapshot
from appbox.domain.reconciler import UpdatePlan, find_stale_resources, parse_policy_flag, reconcile
from appbox.domain.resources import ResourceDescriptor, ResourceRegistry


def _resource(key: str, name: str | None = None) -> ResourceDescriptor:
    return ResourceDescriptor(
        remote_location=f"http://host/{name or key.lower()}.zip",
        metadata_key=key,
        local_file_names=(name or key.lower(),),
    )


def _snapshot(**attrs: str) -> MetadataSnapshot:
    return MetadataSnapshot(attributes=attrs)


def test_scenario_a_single_outdated_resource() -> None:
    resource = _resource("V")
    registry = ResourceRegistry(resources=(resource,))

    plan = reconcile(_snapshot(V="1"), _snapshot(V="2"), registry)

    assert list(plan.stale_resources) == [resource]
    assert plan.must_notify is False
    assert plan.may_resume_without_update is False


def test_scenario_b_equal_snapshots_are_up_to_date() -> None:
    registry = ResourceRegistry(resources=(_resource("A"), _resource("B")))
    snapshot = _snapshot(A="1.0", B="7")

    plan = reconcile(snapshot, _snapshot(A="1.0", B="7"), registry, local_install_valid=True)

    assert plan.stale_resources == ()
    assert plan.is_up_to_date


def test_stale_set_matches_definition_for_all_combinations() -> None:
    keys = ("A", "B", "C")
    registry = ResourceRegistry(resources=tuple(_resource(k) for k in keys))
    values = (None, "1", "2")
    for local_values in itertools.product(values, repeat=3):
        for remote_values in itertools.product(values[1:], repeat=3):
            local = _snapshot(**{k: v for k, v in zip(keys, local_values) if v is not None})
            remote = _snapshot(**dict(zip(keys, remote_values)))

            stale = find_stale_resources(local, remote, registry)

            expected = {
                r for r in registry
                if r.metadata_key not in local or local[r.metadata_key] != remote[r.metadata_key]
            }
            assert set(stale) == expected


def test_versions_compare_as_opaque_strings() -> None:
    registry = ResourceRegistry(resources=(_resource("V"),))

    plan = reconcile(_snapshot(V="1.0"), _snapshot(V="1.00"), registry)

    assert plan.stale_keys == ("V",)


def test_empty_remote_marks_everything_stale_without_local_install() -> None:
    registry = ResourceRegistry(resources=(_resource("A"), _resource("B")))

    plan = reconcile(_snapshot(A="1", B="1"), MetadataSnapshot.empty(), registry)

    assert set(plan.stale_keys) == {"A", "B"}
    assert plan.may_resume_without_update is False


def test_empty_remote_keeps_valid_local_install() -> None:
    registry = ResourceRegistry(resources=(_resource("A"),))

    plan = reconcile(_snapshot(A="1"), MetadataSnapshot.empty(), registry, local_install_valid=True)

    assert plan == UpdatePlan.no_update()


def test_empty_local_marks_everything_stale() -> None:
    registry = ResourceRegistry(resources=(_resource("A"), _resource("B")))

    plan = reconcile(MetadataSnapshot.empty(), _snapshot(A="1", B="2"), registry)

    assert set(plan.stale_keys) == {"A", "B"}


def test_policy_flags_read_from_remote() -> None:
    registry = ResourceRegistry(resources=(_resource("A"),))
    remote = _snapshot(A="2", **{"Notify-Update": "true", "Allow-Ignore-Update": "TRUE"})

    plan = reconcile(_snapshot(A="1"), remote, registry, local_install_valid=True)

    assert plan.must_notify is True
    assert plan.may_resume_without_update is True


def test_skip_requires_valid_local_install() -> None:
    registry = ResourceRegistry(resources=(_resource("A"),))
    remote = _snapshot(A="2", **{"Allow-Ignore-Update": "true"})

    plan = reconcile(_snapshot(A="1"), remote, registry, local_install_valid=False)

    assert plan.may_resume_without_update is False


def test_custom_policy_attribute_names() -> None:
    registry = ResourceRegistry(resources=(_resource("A"),))
    remote = _snapshot(A="2", Ask="yes")

    plan = reconcile(_snapshot(A="1"), remote, registry, notify_attribute="Ask")

    assert plan.must_notify is True


def test_malformed_policy_flag_defaults_false_and_logs(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="appbox.domain.reconciler"):
        assert parse_policy_flag("maybe", attribute="Notify-Update") is False
    assert "Notify-Update" in caplog.text


def test_policy_flag_parsing() -> None:
    assert parse_policy_flag(None) is False
    assert parse_policy_flag("") is False
    assert parse_policy_flag(" True ") is True
    assert parse_policy_flag("1") is True
    assert parse_policy_flag("false") is False
