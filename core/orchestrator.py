"""Top-level application orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.event_bus import EventBus
from core.policy_runtime import RuntimePaths, load_effective_config
from core.rule_based_ai import RuleBasedAI
from core.settings import AISettings
from logic.sorts import Ontology
from memory.save_slots import SaveSlotManager
from memory.stores.sql_store import SQLStore
from tools.action_registry import ActionRegistry, build_default_registry

logger = logging.getLogger("npc.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    ontology: Ontology
    ai: RuleBasedAI
    registry: ActionRegistry
    save_slots: SaveSlotManager
    event_bus: EventBus


class Orchestrator:
    """Creates and wires one character for CLI use."""

    def __init__(self, root: Path | None = None, config_override: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.config_override = config_override

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root, self.config_override)
        paths = RuntimePaths.from_config(self.root, config).ensure()

        ontology = Ontology.from_yaml(paths.ontology_path)
        settings = AISettings.from_config(config)
        registry = build_default_registry(config=config)
        event_bus = EventBus()
        ai = RuleBasedAI(ontology, settings, registry, event_bus=event_bus)

        saves_cfg = config.get("saves", {})
        sql_store = SQLStore(paths.db_path, lock_timeout=float(saves_cfg.get("lock_timeout", 5.0)))
        save_slots = SaveSlotManager(sql_store, saves_cfg.get("max_slots_per_character"))
        logger.debug("Built runtime for %s with %d sorts", settings.self_id, len(ontology.all_sorts()))

        return RuntimeBundle(
            config=config,
            ontology=ontology,
            ai=ai,
            registry=registry,
            save_slots=save_slots,
            event_bus=event_bus,
        )
