"""Integration tests for the ``plan-atlas generate`` command."""

from __future__ import annotations

import json
from pathlib import Path

from plan_atlas.cli import app

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"
PLAN = FIXTURES / "network_plan.json"


def test_generate_writes_all_documents(tmp_path: Path) -> None:
    exit_code = app.main(
        [
            "generate",
            str(tmp_path),
            "--plan-json",
            str(PLAN),
            "--name",
            "network",
            "--output-dir",
            str(tmp_path / "out"),
        ]
    )

    assert exit_code == 0
    target = tmp_path / "out" / "network"
    written = sorted(path.name for path in target.iterdir())
    assert written == [
        "network-graph.json",
        "network-map.json",
        "network-plan.json",
        "network-rso.json",
    ]
    graph = json.loads((target / "network-graph.json").read_text(encoding="utf-8"))
    assert len(graph["edges"]) == 11


def test_generate_prints_single_document(tmp_path: Path, capsys) -> None:
    exit_code = app.main(
        ["generate", str(tmp_path), "--plan-json", str(PLAN), "--print", "map", "--log-level", "error"]
    )

    assert exit_code == 0
    document = json.loads(capsys.readouterr().out)
    assert document["root"] == "root"
    assert not (tmp_path / "output").exists()


def test_no_module_edges_flag(tmp_path: Path, capsys) -> None:
    exit_code = app.main(
        ["generate", str(tmp_path), "--plan-json", str(PLAN), "--print", "graph", "--no-module-edges"]
    )

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["module_edges"] == []


def test_settings_file_provides_defaults(tmp_path: Path) -> None:
    settings = tmp_path / "atlas.json"
    settings.write_text(
        json.dumps({"name": "from-settings", "output_dir": str(tmp_path / "assets")}),
        encoding="utf-8",
    )

    exit_code = app.main(
        ["generate", str(tmp_path), "--plan-json", str(PLAN), "--settings", str(settings)]
    )

    assert exit_code == 0
    assert (tmp_path / "assets" / "from-settings" / "from-settings-rso.json").exists()


def test_missing_plan_reports_error(tmp_path: Path, capsys) -> None:
    exit_code = app.main(["generate", str(tmp_path), "--plan-json", str(tmp_path / "absent.json")])

    assert exit_code == 2
    assert "Error:" in capsys.readouterr().out


def test_pipeline_failure_reports_error(tmp_path: Path, capsys) -> None:
    plan = tmp_path / "plan.json"
    plan.write_text(
        json.dumps(
            {
                "resource_changes": [
                    {"address": "aws_vpc.rogue", "change": {"actions": ["create"], "after": {}}}
                ],
                "configuration": {"root_module": {}},
            }
        ),
        encoding="utf-8",
    )

    exit_code = app.main(["generate", str(tmp_path), "--plan-json", str(plan)])

    assert exit_code == 2
    assert "aws_vpc.rogue" in capsys.readouterr().out


def test_invalid_env_value(tmp_path: Path, capsys) -> None:
    exit_code = app.main(["generate", str(tmp_path), "--plan-json", str(PLAN), "--env", "NOVALUE"])

    assert exit_code == 2
    assert "KEY=VALUE" in capsys.readouterr().out


def test_no_command_prints_help(capsys) -> None:
    assert app.main([]) == 0
    assert "plan-atlas" in capsys.readouterr().out
