import json

import pytest

from plan_atlas.adapters import ConfigLoader, collect_references
from plan_atlas.errors import ConfigurationError
from plan_atlas.models import DiagnosticSeverity


def test_collect_references_walks_nested_expressions():
    expressions = {
        "ami": {"references": ["data.aws_ami.ubuntu.id", "data.aws_ami.ubuntu"]},
        "tags": {"constant_value": {"references": ["not.a.reference"]}},
        "block": [{"subnet_id": {"references": ["aws_subnet.a.id", "data.aws_ami.ubuntu"]}}],
    }

    assert collect_references(expressions) == [
        "data.aws_ami.ubuntu.id",
        "data.aws_ami.ubuntu",
        "aws_subnet.a.id",
    ]
    assert collect_references(None) == []


def test_from_plan_reads_configuration_block(network_plan):
    tree = ConfigLoader().from_plan(network_plan)

    root = tree.root_module
    assert [resource.declaration for resource in root.resources] == [
        "aws_vpc.main",
        "aws_instance.web",
        "data.aws_ami.ubuntu",
        "aws_db_instance.db",
    ]
    assert [variable.name for variable in root.variables] == ["region", "instance_count", "db_password"]
    assert root.variables[2].sensitive

    web = root.resources[1]
    assert "aws_kms_key.external" in web.references
    assert web.count_references == ["var.instance_count"]
    assert root.resources[3].depends_on == ["aws_vpc.main"]

    [call] = root.module_calls
    assert call.name == "net"
    assert call.arguments == {"vpc_id": ["aws_vpc.main.id", "aws_vpc.main"]}
    assert call.module is not None
    assert [output.name for output in call.module.outputs] == ["subnet_id"]

    [provider] = root.providers
    assert provider.key == "aws"
    assert provider.references == ["var.region"]
    assert not tree.has_errors


def test_from_plan_without_configuration_raises():
    with pytest.raises(ConfigurationError):
        ConfigLoader().from_plan({"resource_changes": []})


def test_missing_root_module_raises():
    with pytest.raises(ConfigurationError):
        ConfigLoader().parse({"provider_config": {}})


def test_error_diagnostics_abort():
    data = {
        "root_module": {},
        "diagnostics": [
            {"severity": "error", "summary": "Unsupported argument", "pos": {"filename": "main.tf"}}
        ],
    }

    with pytest.raises(ConfigurationError, match="Unsupported argument"):
        ConfigLoader().parse(data)


def test_warning_diagnostics_are_kept():
    data = {
        "root_module": {},
        "diagnostics": [
            {"severity": "warning", "summary": "Deprecated attribute", "pos": {"filename": "vpc.tf"}}
        ],
    }

    tree = ConfigLoader().parse(data)

    [diagnostic] = tree.diagnostics
    assert diagnostic.severity is DiagnosticSeverity.WARNING
    assert diagnostic.subject == "vpc.tf"


def test_module_call_without_body_raises():
    data = {"root_module": {"module_calls": {"net": {"source": "./net"}}}}

    with pytest.raises(ConfigurationError):
        ConfigLoader().parse(data)


def test_nested_module_providers_are_attached():
    data = {
        "root_module": {
            "module_calls": {"net": {"source": "./net", "module": {}}},
        },
        "provider_config": {
            "net:aws": {"name": "aws", "module_address": "module.net"},
        },
    }

    tree = ConfigLoader().parse(data)

    assert tree.root_module.providers == []
    [provider] = tree.root_module.module_calls[0].module.providers
    assert provider.key == "net:aws"


def test_load_json_document(tmp_path, network_plan):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(network_plan["configuration"]), encoding="utf-8")

    tree = ConfigLoader().load(path)

    assert len(tree.root_module.resources) == 4


def test_load_yaml_document(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "config.yaml"
    path.write_text(
        "root_module:\n"
        "  resources:\n"
        "    - mode: managed\n"
        "      type: aws_vpc\n"
        "      name: main\n",
        encoding="utf-8",
    )

    tree = ConfigLoader().load(path)

    assert tree.root_module.resources[0].declaration == "aws_vpc.main"


def test_load_missing_document_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigLoader().load(tmp_path / "absent.json")


def test_resource_without_type_raises():
    with pytest.raises(ConfigurationError):
        ConfigLoader().parse({"root_module": {"resources": [{"mode": "managed", "name": "x"}]}})
