"""One reasoning task: several resolution processes plus what to do with the result."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from cognition.effects import InferenceEffect, effect_from_xml
from core.settings import AISettings
from logic.parser import parse_sentence, parse_term
from logic.resolution import InterruptibleResolution
from logic.sentences import Sentence
from logic.sorts import Ontology
from logic.terms import Term, VariableTermAttribute
from memory.belief_memory import BeliefMemory

logger = logging.getLogger("npc.inference")


class InferenceRecord:
    """Targets are alternative goals; each gets its own resolution process."""

    def __init__(
        self,
        memory: BeliefMemory,
        additional_sentences: list[Sentence],
        targets: list[list[Sentence]],
        priority: int,
        anxiety: int,
        find_all_answers: bool,
        time_term: Term | None,
        effect: InferenceEffect | None,
        ontology: Ontology,
        settings: AISettings,
    ) -> None:
        include_past = False
        if time_term is not None:
            if time_term.functor.name == "time.past":
                include_past = True
            elif not time_term.functor.is_a_string("time.now"):
                logger.error("Unsupported inference time term: %s", time_term)
        kb = memory.knowledge_base(include_past=include_past)

        self.targets = targets
        self.additional_sentences = additional_sentences
        self.priority = priority
        self.anxiety = anxiety
        self.find_all_answers = find_all_answers
        self.time_term = time_term
        self.effect = effect
        self.o = ontology
        self.triggered_by: Term | None = None
        self.triggered_by_speaker: str | None = None
        self.inferences = [
            InterruptibleResolution(
                kb,
                additional_sentences,
                target,
                occurs_check=True,
                max_depth=settings.resolution_max_depth,
                max_steps=settings.resolution_max_steps,
            )
            for target in targets
        ]
        self.completed_inferences: list[InterruptibleResolution] = []

    def is_complete(self) -> bool:
        return len(self.completed_inferences) >= len(self.inferences)

    def save_to_xml(self, parent: ET.Element) -> ET.Element:
        # Resolution progress is not saved; the record restarts when loaded.
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        attributes = {
            "priority": str(self.priority),
            "anxiety": str(self.anxiety),
            "findAllAnswers": "true" if self.find_all_answers else "false",
        }
        if self.time_term is not None:
            attributes["timeTerm"] = self.time_term.to_string_internal(variables, names)
        if self.triggered_by is not None:
            attributes["triggeredBy"] = self.triggered_by.to_string_internal(variables, names)
        if self.triggered_by_speaker is not None:
            attributes["triggeredBySpeaker"] = self.triggered_by_speaker
        xml = ET.SubElement(parent, "InferenceRecord", attributes)
        if self.effect is not None:
            self.effect.save_to_xml(xml, variables, names)
        if self.additional_sentences:
            additional_xml = ET.SubElement(xml, "additionalSentences")
            for sentence in self.additional_sentences:
                ET.SubElement(additional_xml, "sentence").text = sentence.to_string_internal(
                    variables, names
                )
        for target in self.targets:
            target_xml = ET.SubElement(xml, "target")
            for sentence in target:
                ET.SubElement(target_xml, "sentence").text = sentence.to_string_internal(
                    variables, names
                )
        return xml

    @classmethod
    def from_xml(
        cls,
        xml: ET.Element,
        memory: BeliefMemory,
        ontology: Ontology,
        settings: AISettings,
    ) -> InferenceRecord:
        """Raises KeyError or ValueError on malformed input."""
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        time_term = None
        triggered_by = None
        if "timeTerm" in xml.attrib:
            time_term = parse_term(xml.attrib["timeTerm"], ontology, names, variables)
        if "triggeredBy" in xml.attrib:
            triggered_by = parse_term(xml.attrib["triggeredBy"], ontology, names, variables)

        effect = None
        effect_xml = xml.find("InferenceEffect")
        if effect_xml is not None:
            effect = effect_from_xml(effect_xml, ontology, names, variables)

        additional: list[Sentence] = []
        additional_xml = xml.find("additionalSentences")
        if additional_xml is not None:
            for s_xml in additional_xml.findall("sentence"):
                additional.append(parse_sentence(s_xml.text or "", ontology, names, variables))
        targets: list[list[Sentence]] = []
        for target_xml in xml.findall("target"):
            targets.append(
                [parse_sentence(s_xml.text or "", ontology, names, variables)
                 for s_xml in target_xml.findall("sentence")]
            )

        record = cls(
            memory,
            additional,
            targets,
            priority=int(xml.attrib["priority"]),
            anxiety=int(xml.attrib["anxiety"]),
            find_all_answers=xml.get("findAllAnswers") == "true",
            time_term=time_term,
            effect=effect,
            ontology=ontology,
            settings=settings,
        )
        record.triggered_by = triggered_by
        record.triggered_by_speaker = xml.get("triggeredBySpeaker")
        return record
