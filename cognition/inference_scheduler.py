"""Time-slices pending inference records across simulation ticks."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any

from cognition.effects import InferenceEffect
from cognition.inference_record import InferenceRecord
from core.settings import AISettings
from logic.parser import TermParseError
from logic.sentences import Sentence
from logic.sorts import Ontology
from logic.terms import Term
from memory.belief_memory import BeliefMemory

logger = logging.getLogger("npc.inference")


class InferenceScheduler:
    """Runs one resolution step per tick for the most anxious record."""

    def __init__(
        self,
        memory: BeliefMemory,
        ontology: Ontology,
        settings: AISettings,
        on_idle: Callable[[], None] | None = None,
    ) -> None:
        self.memory = memory
        self.o = ontology
        self.settings = settings
        self.on_idle = on_idle
        self.inference_processes: list[InferenceRecord] = []
        # Object passed to effects; set by the owning character.
        self.effect_context: Any = None

    def new_record(
        self,
        targets: list[list[Sentence]],
        effect: InferenceEffect | None,
        *,
        additional_sentences: list[Sentence] | None = None,
        priority: int = 1,
        anxiety: int = 0,
        find_all_answers: bool = False,
        time_term: Term | None = None,
    ) -> InferenceRecord:
        return InferenceRecord(
            self.memory,
            additional_sentences or [],
            targets,
            priority=priority,
            anxiety=anxiety,
            find_all_answers=find_all_answers,
            time_term=time_term,
            effect=effect,
            ontology=self.o,
            settings=self.settings,
        )

    def add(self, record: InferenceRecord) -> None:
        logger.debug("New inference record with %d target(s)", len(record.targets))
        self.inference_processes.append(record)

    def is_idle(self) -> bool:
        return not self.inference_processes

    def inference_update(self) -> None:
        """Grow every record's anxiety, then advance the most anxious one by a single step."""
        if not self.inference_processes:
            return
        for record in self.inference_processes:
            record.anxiety += record.priority
        # Ties go to the oldest record.
        record = max(self.inference_processes, key=lambda r: r.anxiety)

        if record.is_complete():
            self.inference_processes.remove(record)
            if record.effect is not None:
                record.effect.execute(record, self.effect_context)
            if not self.inference_processes and self.on_idle is not None:
                self.on_idle()
            return

        process = record.inferences[len(record.completed_inferences)]
        if record.find_all_answers:
            done = process.step_accumulating_results()
        else:
            done = process.step()
        if done:
            record.completed_inferences.append(process)

    # ── persistence ──────────────────────────────────────────────────

    def save_to_xml(self, parent: ET.Element) -> ET.Element:
        xml = ET.SubElement(parent, "inference")
        for record in self.inference_processes:
            record.save_to_xml(xml)
        return xml

    def restore_from_xml(self, xml: ET.Element) -> None:
        self.inference_processes = []
        for record_xml in xml.findall("InferenceRecord"):
            try:
                record = InferenceRecord.from_xml(record_xml, self.memory, self.o, self.settings)
            except (KeyError, ValueError, TermParseError) as exc:
                logger.warning("Skipping malformed inference record: %s", exc)
                continue
            self.inference_processes.append(record)
