"""Belief memory: short-term perceptions and long-term facts with provenance."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable

from core.event_bus import EventBus
from core.settings import AISettings
from core.sim_clock import SimClock, years_between
from logic.parser import TermParseError, parse_sentence, parse_term
from logic.sentences import Sentence
from logic.sorts import Ontology, Sort
from logic.terms import Bindings, ConstantTermAttribute, Term, TermAttribute
from memory.entries import EntryIdCounter, Provenance, SentenceEntry
from memory.sentence_container import SentenceContainer
from memory.term_container import TermContainer

logger = logging.getLogger("npc.memory")

TERM_ADDED = "term_added"
INTENTION_TERM_PERCEIVED = "intention_term_perceived"


class BeliefMemory:
    """Routes new terms to short- or long-term memory and answers direct lookups."""

    def __init__(
        self,
        ontology: Ontology,
        clock: SimClock,
        settings: AISettings,
        event_bus: EventBus,
        ids: EntryIdCounter | None = None,
        renderable: Callable[[Sort], bool] | None = None,
    ) -> None:
        self.o = ontology
        self.clock = clock
        self.settings = settings
        self.event_bus = event_bus
        self.ids = ids or EntryIdCounter()
        self.renderable = renderable or (lambda sort: True)
        self.short_term_memory = TermContainer(self.ids)
        self.long_term_memory = SentenceContainer(self.ids)
        self.perception_buffer: list[Term] = []
        self._promote_sorts = [self._sort("action.talk"), self._sort("space.at")]
        self._state_sort = self._sort("#stateSort")

    def _sort(self, name: str) -> Sort:
        sort = self.o.get_sort(name)
        if sort is None:
            raise ValueError(f"Ontology is missing required sort: {name}")
        return sort

    def is_state_term(self, term: Term) -> bool:
        return term.functor.is_a(self._state_sort)

    # ── insertion ────────────────────────────────────────────────────

    def add_long_term_term(self, term: Term, provenance: Provenance) -> bool:
        """Store a permanent fact; returns True if it was new."""
        if term.functor.name == "intention":
            self._perceive_intention(term)
            return False
        now = self.clock.now()
        sentence = Sentence.from_term(term)
        if self.is_state_term(term):
            added = self.long_term_memory.add_state_sentence_if_new(sentence, provenance, 1, now)
        else:
            added = self.long_term_memory.add_sentence_if_new(sentence, provenance, 1, now)
        if added:
            logger.debug("Long-term fact (%s): %s", provenance.value, term)
            self.event_bus.emit(
                TERM_ADDED, {"term": term, "provenance": provenance, "long_term": True}
            )
        return added

    def add_short_term_term(self, term: Term, provenance: Provenance) -> bool:
        """Store a decaying fact, unless it belongs to a class that is always kept."""
        if any(term.functor.is_a(sort) for sort in self._promote_sorts):
            return self.add_long_term_term(term, provenance)
        if term.functor.name == "intention":
            self._perceive_intention(term)
            return False
        now = self.clock.now()
        activation = self.settings.perception_memory_time + 1
        if self.is_state_term(term):
            added = self.short_term_memory.add_state_term_if_new(term, provenance, activation, now)
        else:
            added = self.short_term_memory.add_term_if_new(term, provenance, activation, now)
        if added:
            self.event_bus.emit(
                TERM_ADDED, {"term": term, "provenance": provenance, "long_term": False}
            )
        return added

    def add_long_term_rule(
        self, sentence: Sentence, provenance: Provenance, time: int | None = None
    ) -> bool:
        when = self.clock.now() if time is None else time
        return self.long_term_memory.add_sentence_if_new(sentence, provenance, 1, when)

    def remove_long_term_term_matching_with(self, term: Term) -> bool:
        for entry, _ in self.long_term_memory.single_term_matches(term):
            self.long_term_memory.remove_sentence(entry)
            logger.debug("Removed long-term fact: %s", entry.sentence)
            return True
        return False

    def _perceive_intention(self, term: Term) -> None:
        self.event_bus.emit(INTENTION_TERM_PERCEIVED, {"term": term})

    # ── perception and decay ─────────────────────────────────────────

    def add_term_to_perception(self, term: Term) -> None:
        self.perception_buffer.append(term)
        self.perception_to_short_memory_filter(term)

    def perception_to_short_memory_filter(self, term: Term) -> None:
        if term.functor.name == "time.current":
            return
        self.add_short_term_term(term, Provenance.PERCEPTION)

    def clear_perception(self) -> None:
        self.perception_buffer = []

    def activation_update(self) -> None:
        self.short_term_memory.activation_update()

    # ── queries ──────────────────────────────────────────────────────

    def no_inference_query(self, query: Term) -> Bindings | None:
        """Direct lookup without resolution: short-term first, then long-term facts."""
        match = self.short_term_memory.first_match(query)
        if match is not None:
            return match[1]
        for _, bindings in self.long_term_memory.single_term_matches(query):
            return bindings
        return None

    def no_inference_query_value(self, query: Term, variable_name: str) -> TermAttribute | None:
        bindings = self.no_inference_query(query)
        if bindings is None:
            return None
        return bindings.get_value_by_name(variable_name)

    def most_specific_matches_that_can_be_rendered(self, query: Term) -> list[Term]:
        results: list[Term] = []
        candidates = [entry.term for entry, _ in self.short_term_memory.all_matches(query)]
        candidates += [
            entry.sentence.terms[0] for entry, _ in self.long_term_memory.single_term_matches(query)
        ]
        for term in candidates:
            sort = self._renderable_sort(term.functor)
            if sort is None:
                continue
            candidate = Term(sort, term.attributes)
            if any(candidate.subsumes(existing, True, Bindings()) for existing in results):
                continue
            results = [
                existing for existing in results
                if not existing.subsumes(candidate, True, Bindings())
            ]
            results.append(candidate)
        return results

    def _renderable_sort(self, sort: Sort) -> Sort | None:
        for candidate in [sort] + sort.get_ancestors():
            if self.renderable(candidate):
                return candidate
        return None

    def knowledge_base(self, include_past: bool = False) -> list[Sentence]:
        """Clauses an inference runs against: long-term sentences plus short-term facts."""
        if include_past:
            sentences = self.long_term_memory.sentences_including_past()
        else:
            sentences = self.long_term_memory.current_sentences()
        return sentences + [Sentence.from_term(entry.term) for entry in self.short_term_memory]

    def recalculate_character_ages(self) -> None:
        born_sort = self._sort("property.born")
        age_sort = self._sort("property.age")
        year_sort = self._sort("time.year")
        now = self.clock.now()
        for entry in list(self.long_term_memory):
            sentence = entry.sentence
            if not sentence.is_single_positive_literal():
                continue
            term = sentence.terms[0]
            if not term.functor.is_a(born_sort) or len(term.attributes) != 1:
                continue
            subject = term.attributes[0]
            if not isinstance(subject, ConstantTermAttribute):
                continue
            age = years_between(entry.time, now)
            age_term = Term(age_sort, [subject, ConstantTermAttribute(str(age), year_sort)])
            # Ages keep the provenance and time of the birth entry they derive from.
            self.long_term_memory.add_state_sentence_if_new(
                Sentence.from_term(age_term), entry.provenance, 1, entry.time
            )

    # ── persistence ──────────────────────────────────────────────────

    def save_to_xml(self, parent: ET.Element) -> None:
        stm = ET.SubElement(parent, "shortTermMemory")
        for tag, entries in (
            ("term", self.short_term_memory.plain_term_list),
            ("previousTerm", self.short_term_memory.plain_previous_term_list),
        ):
            for te in entries:
                ET.SubElement(stm, tag, {
                    "activation": str(te.activation),
                    "provenance": te.provenance.value,
                    "term": te.term.to_string(),
                    "time": str(te.time),
                })

        ltm = ET.SubElement(parent, "longTermMemory")
        for se in self.long_term_memory.plain_sentence_list:
            if se.provenance == Provenance.BACKGROUND:
                continue
            element = self._sentence_entry_to_xml(ltm, "sentence", se)
            previous = se.previous
            while previous is not None:
                element = self._sentence_entry_to_xml(element, "previousSentence", previous)
                previous = previous.previous
        for se in self.long_term_memory.previous_sentences_with_no_current_sentence:
            if se.provenance != Provenance.BACKGROUND:
                self._sentence_entry_to_xml(ltm, "previousSentence", se)

    @staticmethod
    def _sentence_entry_to_xml(parent: ET.Element, tag: str, se: SentenceEntry) -> ET.Element:
        attributes = {
            "activation": str(se.activation),
            "provenance": se.provenance.value,
            "sentence": se.sentence.to_string(),
            "time": str(se.time),
        }
        if se.time_end is not None:
            attributes["timeEnd"] = str(se.time_end)
        return ET.SubElement(parent, tag, attributes)

    def restore_from_xml(self, parent: ET.Element) -> None:
        stm_xml = parent.find("shortTermMemory")
        if stm_xml is not None:
            self.short_term_memory = TermContainer(self.ids)
            for term_xml in stm_xml.findall("term"):
                loaded = self._term_entry_from_xml(term_xml)
                if loaded is not None:
                    self.short_term_memory.add_term(*loaded)
            for term_xml in stm_xml.findall("previousTerm"):
                loaded = self._term_entry_from_xml(term_xml)
                if loaded is not None:
                    entry = self.short_term_memory.add_term(*loaded)
                    self.short_term_memory.plain_term_list.remove(entry)
                    self.short_term_memory.plain_previous_term_list.append(entry)
        ltm_xml = parent.find("longTermMemory")
        if ltm_xml is not None:
            self.load_long_term_rules_from_xml(ltm_xml)

    def _term_entry_from_xml(self, xml: ET.Element) -> tuple[Term, Provenance, int, int] | None:
        try:
            term = parse_term(xml.attrib["term"], self.o)
            return (
                term,
                Provenance(xml.attrib["provenance"]),
                int(xml.attrib["activation"]),
                int(xml.attrib["time"]),
            )
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping malformed <%s> entry: %s", xml.tag, exc)
            return None

    def load_long_term_rules_from_xml(self, xml: ET.Element) -> None:
        """Load ``<sentence>`` entries (with nested history) and orphan ``<previousSentence>`` entries."""
        now = self.clock.now()
        for sentence_xml in xml.findall("sentence"):
            loaded = self._sentence_from_xml(sentence_xml)
            if loaded is None:
                continue
            sentence, provenance, activation, time, _ = loaded
            entry = self.long_term_memory.add_sentence(sentence, provenance, activation, time)
            previous_xml = sentence_xml.find("previousSentence")
            while previous_xml is not None:
                loaded = self._sentence_from_xml(previous_xml)
                if loaded is None:
                    break
                sentence, provenance, activation, time, time_end = loaded
                entry = self.long_term_memory.add_previous_sentence(
                    sentence, provenance, activation, time, now if time_end is None else time_end, entry
                )
                previous_xml = previous_xml.find("previousSentence")
        for sentence_xml in xml.findall("previousSentence"):
            loaded = self._sentence_from_xml(sentence_xml)
            if loaded is None:
                continue
            sentence, provenance, activation, time, time_end = loaded
            self.long_term_memory.add_previous_sentence(
                sentence, provenance, activation, time, now if time_end is None else time_end, None
            )

    def _sentence_from_xml(
        self, xml: ET.Element
    ) -> tuple[Sentence, Provenance, int, int, int | None] | None:
        try:
            sentence = parse_sentence(xml.attrib["sentence"], self.o)
            provenance = Provenance(xml.attrib["provenance"])
            activation = int(xml.attrib.get("activation", 1))
            time = int(xml.attrib.get("time", self.clock.now()))
            time_end = int(xml.attrib["timeEnd"]) if "timeEnd" in xml.attrib else None
        except (KeyError, ValueError, TermParseError) as exc:
            logger.warning("Skipping malformed <%s> entry: %s", xml.tag, exc)
            return None
        return sentence, provenance, activation, time, time_end
