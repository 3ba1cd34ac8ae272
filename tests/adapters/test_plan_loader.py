import json
import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from plan_atlas.adapters import PlanLoader, PlanLoaderError

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


def test_load_plan_from_json_artifact(tmp_path):
    loader = PlanLoader(working_dir=tmp_path, plan_json_path=FIXTURES / "network_plan.json")

    data = loader.load_plan()

    assert data["format_version"] == "1.2"
    assert len(data["resource_changes"]) == 7


def test_invalid_json_artifact_raises(tmp_path):
    artifact = tmp_path / "plan.json"
    artifact.write_text("{not json", encoding="utf-8")

    with pytest.raises(PlanLoaderError):
        PlanLoader(working_dir=tmp_path, plan_json_path=artifact).load_plan()


def test_load_plan_from_plan_file(monkeypatch, tmp_path):
    plan_file = tmp_path / "saved-plan.tfplan"
    plan_file.write_text("", encoding="utf-8")

    recorded = {}

    def fake_run(self, args, cwd=None, env=None, capture_output=False):
        recorded["args"] = args
        recorded["cwd"] = cwd
        recorded["capture_output"] = capture_output
        if args[:2] == ["terraform", "show"]:
            return SimpleNamespace(stdout=json.dumps({"format_version": "1.2"}))
        return SimpleNamespace(stdout="")

    monkeypatch.setattr(PlanLoader, "_run_command", fake_run, raising=False)

    loader = PlanLoader(working_dir=tmp_path, plan_file_path=plan_file)
    data = loader.load_plan()

    assert data == {"format_version": "1.2"}
    assert recorded["args"] == ["terraform", "show", "-json", str(plan_file.resolve())]
    assert Path(recorded["cwd"]).resolve() == tmp_path.resolve()
    assert recorded["capture_output"] is True


def test_generate_plan_runs_terraform(monkeypatch, tmp_path):
    var_file = tmp_path / "vars.tfvars"
    var_file.write_text("region=\"eu-west-1\"", encoding="utf-8")

    commands = []

    def fake_run(self, args, cwd=None, env=None, capture_output=False):
        commands.append({
            "args": list(args),
            "cwd": Path(cwd) if cwd else None,
            "env": env,
            "capture_output": capture_output,
        })
        if args[1] == "show":
            return SimpleNamespace(stdout=json.dumps({"resource_changes": []}))
        return SimpleNamespace(stdout="")

    monkeypatch.setattr(PlanLoader, "_run_command", fake_run, raising=False)

    loader = PlanLoader(
        working_dir=tmp_path,
        var_files=[var_file],
        env={"TF_VAR_region": "eu-west-1"},
        inherit_environment=False,
        terraform_bin="tofu",
    )

    data = loader.load_plan()

    assert data == {"resource_changes": []}
    assert [command["args"][1] for command in commands] == ["init", "plan", "show"]
    assert commands[0]["args"] == ["tofu", "init", "-input=false", "-upgrade"]

    plan_command = commands[1]
    assert f"-var-file={var_file.resolve()}" in plan_command["args"]
    assert plan_command["env"]["TF_VAR_region"] == "eu-west-1"
    assert plan_command["env"]["PATH"] == os.environ.get("PATH", "")

    out_arg = next(arg for arg in plan_command["args"] if arg.startswith("-out="))
    assert commands[2]["args"][-1] == out_arg[len("-out="):]
    assert commands[2]["capture_output"] is True

    for command in commands:
        assert command["cwd"].resolve() == tmp_path.resolve()


def test_upgrade_can_be_disabled(monkeypatch, tmp_path):
    commands = []

    def fake_run(self, args, cwd=None, env=None, capture_output=False):
        commands.append(list(args))
        return SimpleNamespace(stdout="{}")

    monkeypatch.setattr(PlanLoader, "_run_command", fake_run, raising=False)

    PlanLoader(working_dir=tmp_path, upgrade=False).load_plan()

    assert commands[0] == ["terraform", "init", "-input=false"]


def test_inherited_environment_is_extended(monkeypatch, tmp_path):
    monkeypatch.setenv("ATLAS_TEST_MARKER", "present")
    loader = PlanLoader(working_dir=tmp_path, env={"TF_LOG": "debug"}, inherit_environment=True)

    env = loader._build_environment()

    assert env["ATLAS_TEST_MARKER"] == "present"
    assert env["TF_LOG"] == "debug"


def test_non_json_command_output_raises(monkeypatch, tmp_path):
    plan_file = tmp_path / "saved-plan.tfplan"
    plan_file.write_text("", encoding="utf-8")

    monkeypatch.setattr(
        PlanLoader,
        "_run_command",
        lambda self, args, cwd=None, env=None, capture_output=False: SimpleNamespace(stdout="oops"),
        raising=False,
    )

    with pytest.raises(PlanLoaderError):
        PlanLoader(working_dir=tmp_path, plan_file_path=plan_file).load_plan()


def test_missing_executable_raises(tmp_path):
    loader = PlanLoader(working_dir=tmp_path, terraform_bin="definitely-not-terraform-binary")

    with pytest.raises(PlanLoaderError):
        loader.load_plan()


def test_missing_artifact_raises(tmp_path):
    loader = PlanLoader(working_dir=tmp_path, plan_json_path=tmp_path / "missing.json")
    with pytest.raises(PlanLoaderError):
        loader.load_plan()

    loader = PlanLoader(working_dir=tmp_path, plan_file_path=tmp_path / "missing.tfplan")
    with pytest.raises(PlanLoaderError):
        loader.load_plan()
