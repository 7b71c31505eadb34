"""CLI smoke tests."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from ui.cli.cli import app

runner = CliRunner()


def write_config(tmp_path: Path) -> Path:
    override = tmp_path / "character.yaml"
    override.write_text(
        yaml.safe_dump(
            {
                "paths": {
                    "workspace_dir": str(tmp_path / "workspace"),
                    "db_path": str(tmp_path / "workspace" / "npcmind.db"),
                },
            }
        ),
        encoding="utf-8",
    )
    return override


def write_script(tmp_path: Path) -> Path:
    script = tmp_path / "greeting.yaml"
    script.write_text(
        yaml.safe_dump(
            {
                "events": [
                    {
                        "time": 1,
                        "term": "action.talk('1'[number],'player'[#id],'hi'[symbol],perf.greet('self'[#id]))",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return script


def test_config_and_actions_commands(tmp_path: Path) -> None:
    config = write_config(tmp_path)

    shown = runner.invoke(app, ["config", "show", "--config", str(config)])
    assert shown.exit_code == 0
    assert '"self_id": "self"' in shown.stdout
    assert str(tmp_path / "workspace") in shown.stdout

    listed = runner.invoke(app, ["actions", "list", "--config", str(config)])
    assert listed.exit_code == 0
    assert "talk: enabled" in listed.stdout
    assert "answer_how: enabled" in listed.stdout


def test_ontology_ancestors(tmp_path: Path) -> None:
    config = write_config(tmp_path)

    result = runner.invoke(app, ["ontology", "ancestors", "perf.q.predicate", "--config", str(config)])
    assert result.exit_code == 0
    assert result.stdout.split() == ["perf.question", "performative", "any"]

    missing = runner.invoke(app, ["ontology", "ancestors", "no.such.sort", "--config", str(config)])
    assert missing.exit_code == 1


def test_run_script_greets_back_and_saves(tmp_path: Path) -> None:
    config = write_config(tmp_path)
    script = write_script(tmp_path)

    result = runner.invoke(
        app,
        ["run-script", str(script), "--config", str(config), "--until", "5", "--save-slot", "demo"],
    )
    assert result.exit_code == 0, result.output
    assert "self -> player: perf.greet('player'[#id])" in result.stdout
    assert "Saved slot 1 (demo) at t=5" in result.stdout

    listed = runner.invoke(app, ["saves", "list", "--config", str(config)])
    assert listed.exit_code == 0
    assert '"label": "demo"' in listed.stdout

    shown = runner.invoke(app, ["saves", "show", "1", "--config", str(config)])
    assert shown.exit_code == 0
    assert shown.stdout.startswith("<RuleBasedAI")

    missing = runner.invoke(app, ["saves", "show", "99", "--config", str(config)])
    assert missing.exit_code == 1


def test_run_script_rejects_missing_script(tmp_path: Path) -> None:
    config = write_config(tmp_path)
    result = runner.invoke(app, ["run-script", str(tmp_path / "absent.yaml"), "--config", str(config)])
    assert result.exit_code != 0
