"""Typer command handlers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from core.policy_runtime import read_yaml_mapping
from logic.parser import TermParseError, parse_term
from memory.entries import Provenance
from tools.talk_action import TALK_EVENT


def _runtime(config: Path | None = None, root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root, config_override=config).build()
    return bundle


def _load_script(script: Path) -> dict[str, Any]:
    if not script.exists():
        raise typer.BadParameter(f"Script not found: {script}")
    data = read_yaml_mapping(script)
    events = data.get("events", [])
    if not isinstance(events, list):
        raise typer.BadParameter("'events' must be a list of {time, term} entries")
    return data


def run_script(
    script: Path,
    config: Path | None = None,
    until: int | None = None,
    save_label: str | None = None,
    resume: bool = False,
) -> None:
    """Feed scripted perceptions to a character and print what it says."""
    bundle = _runtime(config)
    ai = bundle.ai
    data = _load_script(script)

    if resume and not bundle.save_slots.load_latest(ai):
        typer.echo(f"No save found for {ai.self_id}, starting fresh.")

    for fact in data.get("background", []):
        try:
            ai.memory.add_long_term_term(parse_term(str(fact), bundle.ontology), Provenance.BACKGROUND)
        except TermParseError as exc:
            raise typer.BadParameter(f"Bad background fact {fact!r}: {exc}") from exc

    timeline: dict[int, list[str]] = {}
    for event in data.get("events", []):
        timeline.setdefault(int(event["time"]), []).append(str(event["term"]))

    def _print_utterance(payload: dict[str, Any]) -> None:
        listeners = ",".join(payload["listeners"]) or "-"
        typer.echo(f"[{payload['time']}] {payload['speaker']} -> {listeners}: {payload['text']}")

    bundle.event_bus.subscribe(TALK_EVENT, _print_utterance)

    start = ai.clock.now() + 1 if resume else 0
    end = until if until is not None else int(data.get("until", max(timeline, default=0) + 50))
    for now in range(start, end + 1):
        ai.clock.set(now)
        for text in timeline.get(now, []):
            try:
                ai.perceive(parse_term(text, bundle.ontology))
            except TermParseError as exc:
                typer.echo(f"[{now}] skipping unparsable perception: {exc}", err=True)
        ai.update(now)

    if save_label is not None:
        slot = bundle.save_slots.save(ai, label=save_label)
        typer.echo(f"Saved slot {slot['id']} ({save_label}) at t={slot['time_in_seconds']}")


def saves_list(config: Path | None = None, character: str | None = None, limit: int = 20) -> None:
    """List save slots."""
    bundle = _runtime(config)
    slots = bundle.save_slots.list_slots(character_id=character, limit=limit)
    typer.echo(json.dumps(_json_safe(slots), indent=2))


def saves_show(slot_id: int, config: Path | None = None) -> None:
    """Print the XML of one save slot."""
    bundle = _runtime(config)
    slot = bundle.save_slots.get(slot_id)
    if slot is None:
        typer.echo(f"No save slot with id {slot_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(slot["xml"])


def config_show(config: Path | None = None) -> None:
    """Show effective runtime config."""
    bundle = _runtime(config)
    typer.echo(json.dumps(_json_safe(bundle.config), indent=2))


def actions_list(config: Path | None = None) -> None:
    """List capabilities and enabled flags."""
    bundle = _runtime(config)
    for action in bundle.registry.list_actions():
        typer.echo(f"{action.name}: {'enabled' if action.enabled else 'disabled'}")


def ontology_ancestors(sort_name: str, config: Path | None = None) -> None:
    """Print every sort that ``sort_name`` is-a, nearest first."""
    bundle = _runtime(config)
    sort = bundle.ontology.get_sort(sort_name)
    if sort is None:
        typer.echo(f"Unknown sort: {sort_name}", err=True)
        raise typer.Exit(code=1)
    for ancestor in sort.get_ancestors():
        typer.echo(ancestor.name)


def _json_safe(payload: object) -> object:
    """Convert datetimes to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
