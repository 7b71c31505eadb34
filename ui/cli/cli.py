"""CLI entrypoint for npcmind."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import typer

from ui.cli import commands

app = typer.Typer(help="Rule-based NPC cognition: beliefs, inference and dialogue")
saves_app = typer.Typer(help="Save slot commands")
config_app = typer.Typer(help="Configuration commands")
actions_app = typer.Typer(help="Capability commands")
ontology_app = typer.Typer(help="Ontology commands")


def _config_option() -> Any:
    return typer.Option(None, "--config", help="Extra YAML merged over config/default.yaml")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("run-script")
def run_script_cmd(
    script: Path = typer.Argument(..., help="YAML file with timed perceptions"),
    config: Path | None = _config_option(),
    until: int | None = typer.Option(None, help="Last tick to simulate"),
    save_slot: str | None = typer.Option(None, "--save-slot", help="Save the character under this label"),
    resume: bool = typer.Option(False, "--resume", help="Start from the latest save slot"),
) -> None:
    """Run a scripted conversation tick by tick."""
    commands.run_script(script=script, config=config, until=until, save_label=save_slot, resume=resume)


@saves_app.command("list")
def saves_list_cmd(
    config: Path | None = _config_option(),
    character: str | None = typer.Option(None, help="Only this character's slots"),
    limit: int = typer.Option(20, min=1, max=500),
) -> None:
    """List save slots, newest first."""
    commands.saves_list(config=config, character=character, limit=limit)


@saves_app.command("show")
def saves_show_cmd(
    slot_id: int = typer.Argument(..., help="Save slot id"),
    config: Path | None = _config_option(),
) -> None:
    """Print the saved XML."""
    commands.saves_show(slot_id=slot_id, config=config)


@config_app.command("show")
def config_show_cmd(config: Path | None = _config_option()) -> None:
    """Show effective configuration."""
    commands.config_show(config=config)


@actions_app.command("list")
def actions_list_cmd(config: Path | None = _config_option()) -> None:
    """List capability status."""
    commands.actions_list(config=config)


@ontology_app.command("ancestors")
def ontology_ancestors_cmd(
    sort_name: str = typer.Argument(..., help="Sort name, e.g. perf.q.predicate"),
    config: Path | None = _config_option(),
) -> None:
    """Show the sorts a sort inherits from."""
    commands.ontology_ancestors(sort_name=sort_name, config=config)


app.add_typer(saves_app, name="saves")
app.add_typer(config_app, name="config")
app.add_typer(actions_app, name="actions")
app.add_typer(ontology_app, name="ontology")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
