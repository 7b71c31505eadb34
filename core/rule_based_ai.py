"""One character's mind: memory, reasoning, dialogue and intentions wired together."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from typing import Any

from cognition.inference_scheduler import InferenceScheduler
from cognition.parse_errors import ParseError
from cognition.reaction_engine import ReactionEngine
from cognition.utterances import UtteranceBuilder
from core.event_bus import EventBus
from core.settings import AISettings
from core.sim_clock import SimClock
from dialogue.dialogue_manager import DialogueManager
from dialogue.nl_context import NLContext
from executor.intention_executor import IntentionExecutor
from executor.intention_record import IntentionRecord
from logic.parser import TermParseError
from logic.sorts import Ontology
from logic.terms import Term
from memory.belief_memory import INTENTION_TERM_PERCEIVED, TERM_ADDED, BeliefMemory
from tools.action_registry import ActionRegistry

logger = logging.getLogger("npc.ai")


def _int_attribute(xml: ET.Element, name: str, default: int) -> int:
    value = xml.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r on <%s>", name, value, xml.tag)
        return default


class RuleBasedAI:
    """Advance with :meth:`update` once per simulated second."""

    def __init__(
        self,
        ontology: Ontology,
        settings: AISettings,
        registry: ActionRegistry,
        *,
        clock: SimClock | None = None,
        event_bus: EventBus | None = None,
        perception_source: Callable[[], Iterable[Term]] | None = None,
        can_see: Callable[[str], bool] | None = None,
    ) -> None:
        self.o = ontology
        self.settings = settings
        self.registry = registry
        self.clock = clock or SimClock()
        self.event_bus = event_bus or EventBus()
        self.perception_source = perception_source
        self.utterances = UtteranceBuilder(ontology, settings.self_id)

        self.memory = BeliefMemory(ontology, self.clock, settings, self.event_bus)
        self.inference = InferenceScheduler(self.memory, ontology, settings)
        self.executor = IntentionExecutor(
            registry,
            inference_idle=self.inference.is_idle,
            request_memory_size=settings.request_memory_size,
        )
        self.dialogue = DialogueManager(settings, self.clock, ontology, self.executor, can_see)
        self.inference.on_idle = self.dialogue.check_overdue_questions
        self.inference.effect_context = self
        self.reaction = ReactionEngine(self)

        self.event_bus.subscribe(TERM_ADDED, self._on_term_added)
        self.event_bus.subscribe(INTENTION_TERM_PERCEIVED, self._on_intention_perceived)

    @property
    def self_id(self) -> str:
        return self.settings.self_id

    def _on_term_added(self, payload: dict[str, Any]) -> None:
        self.reaction.reactive_behavior_update(payload["term"])

    def _on_intention_perceived(self, payload: dict[str, Any]) -> None:
        self.executor.add_intention_from_term(payload["term"], self.clock.now())

    # ── tick ─────────────────────────────────────────────────────────

    def update(self, time_in_seconds: int) -> None:
        self.clock.set(time_in_seconds)
        if time_in_seconds % self.settings.perception_frequency == self.settings.perception_frequency_offset:
            self.attention_and_perception()
        self.memory.activation_update()
        self.inference.inference_update()
        self.dialogue.conversation_update()
        self.executor.execute_intentions(self)

    def attention_and_perception(self) -> None:
        """Refresh the perception buffer from the attached world, if any."""
        if self.perception_source is None:
            return
        self.memory.clear_perception()
        for term in self.perception_source():
            self.memory.add_term_to_perception(term)

    def perceive(self, term: Term) -> None:
        """Push a single perceived term, outside the regular perception cycle."""
        self.memory.add_term_to_perception(term)

    def react_to_parse_error(self, speaker: str, error: ParseError) -> None:
        self.reaction.react_to_parse_error(speaker, error)

    def is_idle(self) -> bool:
        return self.inference.is_idle() and self.executor.is_idle()

    # ── persistence ──────────────────────────────────────────────────

    def save_to_xml(self) -> str:
        root = ET.Element("RuleBasedAI", {
            "timeInSeconds": str(self.clock.now()),
            "questionPatienceTimmer": str(self.settings.question_patience_timer),
        })
        self.memory.save_to_xml(root)
        for record in self.executor.intentions:
            record.save_to_xml(root)
        queued_xml = ET.SubElement(root, "queuedIntentions")
        for record in self.executor.queued_intentions:
            record.save_to_xml(queued_xml)
        caused_xml = ET.SubElement(root, "intentionsCausedByRequest")
        for record in self.executor.intentions_caused_by_request:
            record.save_to_xml(caused_xml)
        self.inference.save_to_xml(root)
        for context in self.dialogue.contexts:
            context.save_to_xml(root)
        self.save_properties_to_xml(root)
        ET.indent(root)
        return ET.tostring(root, encoding="unicode")

    def save_properties_to_xml(self, root: ET.Element) -> None:
        """Hook for subclasses that keep extra state."""

    def restore_from_xml(self, xml: str | ET.Element) -> None:
        root = ET.fromstring(xml) if isinstance(xml, str) else xml
        if root.tag != "RuleBasedAI":
            raise ValueError(f"Expected <RuleBasedAI> root, got <{root.tag}>")
        self.clock.set(_int_attribute(root, "timeInSeconds", 0))
        self.settings.question_patience_timer = _int_attribute(
            root, "questionPatienceTimmer", self.settings.question_patience_timer
        )

        # Contexts first: intentions refer to their performatives.
        self.dialogue.contexts = []
        for context_xml in root.findall("context"):
            try:
                context = NLContext.from_xml(
                    context_xml, self.o, self.self_id, self.settings.performative_memory_size
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping malformed conversation context: %s", exc)
                continue
            self.dialogue.contexts.append(context)

        self.memory.restore_from_xml(root)
        self.executor.intentions = self._intentions_from_xml(root)
        queued_xml = root.find("queuedIntentions")
        self.executor.queued_intentions = (
            self._intentions_from_xml(queued_xml) if queued_xml is not None else []
        )
        caused_xml = root.find("intentionsCausedByRequest")
        self.executor.intentions_caused_by_request = (
            self._intentions_from_xml(caused_xml) if caused_xml is not None else []
        )
        inference_xml = root.find("inference")
        if inference_xml is not None:
            self.inference.restore_from_xml(inference_xml)
        logger.info(
            "Restored %s at t=%d: %d contexts, %d intentions, %d inferences",
            self.self_id,
            self.clock.now(),
            len(self.dialogue.contexts),
            len(self.executor.intentions),
            len(self.inference.inference_processes),
        )

    def _intentions_from_xml(self, parent: ET.Element) -> list[IntentionRecord]:
        records: list[IntentionRecord] = []
        for record_xml in parent.findall("IntentionRecord"):
            try:
                record = IntentionRecord.from_xml(record_xml, self.o)
            except (KeyError, ValueError, TermParseError) as exc:
                logger.warning("Skipping malformed intention: %s", exc)
                continue
            if record.requesting_performative is not None and (
                self.dialogue.resolve_ref(record.requesting_performative) is None
            ):
                logger.warning("Intention %s refers to an unknown performative", record.action)
                record.requesting_performative = None
            records.append(record)
        return records
