from __future__ import annotations

from typing import Any

import pytest

from plan_atlas.builders import ResourceOverviewBuilder, normalize_action
from plan_atlas.errors import AddressError, PlanStructureError
from plan_atlas.models import ChangeAction, DiffKind


def _change(address: str, actions: list[str], **change: Any) -> dict[str, Any]:
    return {"address": address, "change": {"actions": actions, **change}}


@pytest.mark.parametrize(
    ("actions", "expected"),
    [
        ([], ChangeAction.NOOP),
        (["no-op"], ChangeAction.NOOP),
        (["create"], ChangeAction.CREATE),
        (["read"], ChangeAction.READ),
        (["update"], ChangeAction.UPDATE),
        (["delete"], ChangeAction.DELETE),
        (["delete", "create"], ChangeAction.REPLACE),
        (["create", "delete"], ChangeAction.REPLACE),
    ],
)
def test_normalize_action(actions: list[str], expected: ChangeAction) -> None:
    assert normalize_action(actions) is expected


def test_unknown_action_combination_is_structural_error() -> None:
    with pytest.raises(PlanStructureError):
        normalize_action(["update", "read"])


def test_builds_one_entry_per_planned_instance(network_plan: dict[str, Any]) -> None:
    overview = ResourceOverviewBuilder().build(network_plan)

    assert list(overview) == [
        "aws_vpc.main",
        "aws_instance.web[0]",
        "aws_instance.web[1]",
        "data.aws_ami.ubuntu",
        "aws_db_instance.db",
        "module.net.aws_subnet.public",
        "aws_s3_bucket.legacy",
    ]
    assert all(entry.action in set(ChangeAction) for entry in overview.values())

    assert overview["aws_instance.web[0]"].action is ChangeAction.CREATE
    assert overview["data.aws_ami.ubuntu"].action is ChangeAction.READ
    assert overview["data.aws_ami.ubuntu"].is_data_source
    assert overview["data.aws_ami.ubuntu"].action_reason == "read_because_config_unknown"
    assert not overview["aws_vpc.main"].is_data_source
    assert overview["module.net.aws_subnet.public"].module_path == ("net",)
    assert overview["aws_s3_bucket.legacy"].action is ChangeAction.DELETE


def test_entries_carry_attribute_differences(network_plan: dict[str, Any]) -> None:
    overview = ResourceOverviewBuilder().build(network_plan)

    db = {diff.path_text: diff for diff in overview["aws_db_instance.db"].diffs}
    assert set(db) == {"instance_class", "password", "tags.team"}
    assert db["instance_class"].kind is DiffKind.CHANGED
    assert db["password"].kind is DiffKind.SENSITIVE
    assert "new-secret" not in (db["password"].before, db["password"].after)
    assert db["tags.team"].kind is DiffKind.ADDED

    vpc = {diff.path_text: diff for diff in overview["aws_vpc.main"].diffs}
    assert vpc["cidr_block"].kind is DiffKind.ADDED
    assert vpc["id"].after == "(known after apply)"

    legacy = overview["aws_s3_bucket.legacy"].diffs
    assert [(diff.path_text, diff.kind) for diff in legacy] == [("bucket", DiffKind.REMOVED)]


def test_instances_grouped_by_declaration(network_plan: dict[str, Any]) -> None:
    overview = ResourceOverviewBuilder().build(network_plan)

    instances = overview.instances_of("aws_instance.web")

    assert [entry.key for entry in instances] == ["aws_instance.web[0]", "aws_instance.web[1]"]
    assert overview.instances_of("aws_instance.missing") == ()


def test_output_changes_are_summarised(network_plan: dict[str, Any]) -> None:
    overview = ResourceOverviewBuilder().build(network_plan)

    assert overview.output_changes["web_ids"].action is ChangeAction.CREATE


def test_sensitive_output_values_are_redacted() -> None:
    plan = {
        "resource_changes": [],
        "output_changes": {
            "token": {
                "actions": ["update"],
                "before": "a",
                "after": "b",
                "before_sensitive": True,
                "after_sensitive": True,
            }
        },
    }

    overview = ResourceOverviewBuilder(sensitive_placeholder="<hidden>").build(plan)

    change = overview.output_changes["token"]
    assert change.sensitive
    assert (change.before, change.after) == ("<hidden>", "<hidden>")


def test_address_normalization_is_applied() -> None:
    plan = {"resource_changes": [_change("aws_instance.web[ 0 ]", ["create"], after={})]}

    overview = ResourceOverviewBuilder().build(plan)

    assert list(overview) == ["aws_instance.web[0]"]


def test_malformed_address_aborts() -> None:
    plan = {"resource_changes": [_change("aws_instance.web[oops]", ["create"], after={})]}

    with pytest.raises(AddressError):
        ResourceOverviewBuilder().build(plan)


def test_duplicate_addresses_abort() -> None:
    plan = {
        "resource_changes": [
            _change("aws_instance.web", ["create"], after={}),
            _change("aws_instance.web", ["delete"], before={}),
        ]
    }

    with pytest.raises(PlanStructureError):
        ResourceOverviewBuilder().build(plan)


def test_handles_missing_sections() -> None:
    overview = ResourceOverviewBuilder().build({})

    assert len(overview) == 0
    assert dict(overview.output_changes) == {}


def test_rejects_non_mapping_plan() -> None:
    with pytest.raises(PlanStructureError):
        ResourceOverviewBuilder().build([])  # type: ignore[arg-type]


def test_no_op_entries_have_no_differences() -> None:
    state = {"name": "web", "tags": {"env": "dev"}}
    plan = {"resource_changes": [_change("aws_instance.web", ["no-op"], before=state, after=state)]}

    entry = ResourceOverviewBuilder().build(plan)["aws_instance.web"]

    assert entry.action is ChangeAction.NOOP
    assert entry.diffs == ()


def test_deposed_objects_are_kept_apart() -> None:
    plan = {
        "resource_changes": [
            _change("aws_instance.web", ["create"], after={"ami": "ami-2"}),
            {
                "address": "aws_instance.web",
                "deposed": "00000001",
                "change": {"actions": ["delete"], "before": {"ami": "ami-1"}, "after": None},
            },
        ]
    }

    overview = ResourceOverviewBuilder().build(plan)

    assert list(overview) == ["aws_instance.web"]
    assert overview["aws_instance.web"].action is ChangeAction.CREATE
    [deposed] = overview.deposed
    assert deposed.deposed == "00000001"
    assert deposed.action is ChangeAction.DELETE
    [diagnostic] = overview.diagnostics
    assert diagnostic.code == "deposed-object"
    assert diagnostic.subject == "aws_instance.web"


def test_repeated_deposed_object_aborts() -> None:
    deposed = {
        "address": "aws_instance.web",
        "deposed": "00000001",
        "change": {"actions": ["delete"], "before": {}},
    }

    with pytest.raises(PlanStructureError):
        ResourceOverviewBuilder().build({"resource_changes": [deposed, dict(deposed)]})
