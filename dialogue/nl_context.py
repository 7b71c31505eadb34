"""Per-interlocutor conversation state."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from logic.parser import TermParseError, parse_attribute, parse_term
from logic.sorts import Ontology
from logic.terms import Term, TermAttribute

logger = logging.getLogger("npc.dialogue")

DEFAULT_MEMORY_SIZE = 50


@dataclass
class NLContextPerformative:
    """One utterance recorded in a conversation."""

    text: str
    speaker: str
    performative: Term
    timestamp: int
    index: int = 0


@dataclass(frozen=True)
class PerformativeRef:
    """Lookup key for a performative: the context's speaker and its history index."""

    speaker: str
    index: int


def _flag(value: bool) -> str:
    return "true" if value else "false"


class NLContext:
    """Everything one character remembers about its conversation with one speaker."""

    def __init__(
        self, speaker: str, self_id: str, ontology: Ontology, memory_size: int = DEFAULT_MEMORY_SIZE
    ) -> None:
        self.speaker = speaker
        self.self_id = self_id
        self.o = ontology
        self.memory_size = memory_size
        self.performatives: list[NLContextPerformative] = []
        self.next_index = 0

        self.expecting_answer_to_question_stack: list[NLContextPerformative] = []
        self.expecting_answer_to_question_time_stack: list[int] = []
        self.expecting_confirmation_to_request_stack: list[NLContextPerformative] = []
        self.expecting_confirmation_to_request_time_stack: list[int] = []

        self.in_conversation = False
        self.expecting_greet = False
        self.expecting_farewell = False
        self.expecting_thank_you = False
        self.expecting_you_are_welcome = False
        self.last_performative_involving_this_character_was_to_us = False

        self.last_enumerated_question_answered: Term | None = None
        self.last_enumerated_question_answers: list[TermAttribute] = []
        self.last_enumerated_question_next_answer_index = 0

    @property
    def expecting_answer(self) -> bool:
        return bool(self.expecting_answer_to_question_stack)

    @property
    def expecting_confirmation(self) -> bool:
        return bool(self.expecting_confirmation_to_request_stack)

    def new_performative(
        self, speaker: str, text: str, performative: Term, timestamp: int
    ) -> NLContextPerformative:
        """Record an utterance by either party and update the expectation state."""
        cp = NLContextPerformative(
            text=text,
            speaker=speaker,
            performative=performative,
            timestamp=timestamp,
            index=self.next_index,
        )
        self.next_index += 1
        self.performatives.append(cp)
        self._forget_old_performatives()

        if speaker == self.self_id:
            functor = performative.functor
            if functor.is_a_string("perf.question"):
                self.expecting_answer_to_question_stack.append(cp)
                self.expecting_answer_to_question_time_stack.append(timestamp)
            elif functor.is_a_string("perf.request.action"):
                self.expecting_confirmation_to_request_stack.append(cp)
                self.expecting_confirmation_to_request_time_stack.append(timestamp)
            elif functor.name == "perf.greet":
                self.expecting_greet = True
            elif functor.name == "perf.farewell":
                self.expecting_farewell = True
            elif functor.name == "perf.thankyou":
                self.expecting_you_are_welcome = True
            elif functor.name == "perf.inform.answer":
                self.expecting_thank_you = True
            self.in_conversation = functor.name != "perf.farewell"
        else:
            self.in_conversation = performative.functor.name != "perf.farewell"
        return cp

    def last_performative(self) -> NLContextPerformative | None:
        return self.performatives[-1] if self.performatives else None

    def last_performative_by(self, speaker: str) -> NLContextPerformative | None:
        for cp in reversed(self.performatives):
            if cp.speaker == speaker:
                return cp
        return None

    def pop_last_question(self) -> NLContextPerformative | None:
        if not self.expecting_answer_to_question_stack:
            return None
        self.expecting_answer_to_question_time_stack.pop()
        return self.expecting_answer_to_question_stack.pop()

    def clear_expected_confirmations(self) -> None:
        self.expecting_confirmation_to_request_stack = []
        self.expecting_confirmation_to_request_time_stack = []

    def get_nl_context_performative(self, performative: Term) -> NLContextPerformative | None:
        for cp in reversed(self.performatives):
            if cp.performative is performative:
                return cp
        for cp in reversed(self.performatives):
            if cp.performative.equals_no_bindings(performative):
                return cp
        return None

    def ref_for(self, cp: NLContextPerformative) -> PerformativeRef:
        return PerformativeRef(speaker=self.speaker, index=cp.index)

    def performative_for(self, ref: PerformativeRef) -> NLContextPerformative | None:
        if ref.speaker != self.speaker:
            return None
        for cp in self.performatives:
            if cp.index == ref.index:
                return cp
        return None

    def _forget_old_performatives(self) -> None:
        """Drop the oldest utterances beyond ``memory_size``; pending questions and requests stay."""
        excess = len(self.performatives) - self.memory_size
        if excess <= 0:
            return
        pending = self.expecting_answer_to_question_stack + self.expecting_confirmation_to_request_stack
        kept: list[NLContextPerformative] = []
        for cp in self.performatives:
            if excess > 0 and all(cp is not p for p in pending):
                excess -= 1
                continue
            kept.append(cp)
        self.performatives = kept

    # ── persistence ──────────────────────────────────────────────────

    def save_to_xml(self, parent: ET.Element) -> ET.Element:
        xml = ET.SubElement(parent, "context", {
            "speaker": self.speaker,
            "inConversation": _flag(self.in_conversation),
            "expectingGreet": _flag(self.expecting_greet),
            "expectingFarewell": _flag(self.expecting_farewell),
            "expectingThankYou": _flag(self.expecting_thank_you),
            "expectingYouAreWelcome": _flag(self.expecting_you_are_welcome),
            "lastPerformativeInvolvingThisCharacterWasToUs": _flag(
                self.last_performative_involving_this_character_was_to_us
            ),
            "lastEnumeratedQuestion_next_answer_index": str(
                self.last_enumerated_question_next_answer_index
            ),
        })
        for cp in self.performatives:
            ET.SubElement(xml, "performative", {
                "index": str(cp.index),
                "speaker": cp.speaker,
                "text": cp.text,
                "performative": cp.performative.to_string(),
                "timeStamp": str(cp.timestamp),
            })
        for cp, timestamp in zip(
            self.expecting_answer_to_question_stack, self.expecting_answer_to_question_time_stack
        ):
            ET.SubElement(xml, "expectingAnswerToQuestion", {
                "performative": str(cp.index), "timeStamp": str(timestamp),
            })
        for cp, timestamp in zip(
            self.expecting_confirmation_to_request_stack,
            self.expecting_confirmation_to_request_time_stack,
        ):
            ET.SubElement(xml, "expectingConfirmationToRequest", {
                "performative": str(cp.index), "timeStamp": str(timestamp),
            })
        if self.last_enumerated_question_answered is not None:
            ET.SubElement(xml, "lastEnumeratedQuestion_answered", {
                "term": self.last_enumerated_question_answered.to_string(),
            })
        for answer in self.last_enumerated_question_answers:
            ET.SubElement(xml, "lastEnumeratedQuestion_answer", {"value": answer.to_string()})
        return xml

    @classmethod
    def from_xml(
        cls, xml: ET.Element, ontology: Ontology, self_id: str, memory_size: int = DEFAULT_MEMORY_SIZE
    ) -> NLContext:
        context = cls(xml.attrib["speaker"], self_id, ontology, memory_size)
        context.in_conversation = xml.get("inConversation") == "true"
        context.expecting_greet = xml.get("expectingGreet") == "true"
        context.expecting_farewell = xml.get("expectingFarewell") == "true"
        context.expecting_thank_you = xml.get("expectingThankYou") == "true"
        context.expecting_you_are_welcome = xml.get("expectingYouAreWelcome") == "true"
        context.last_performative_involving_this_character_was_to_us = (
            xml.get("lastPerformativeInvolvingThisCharacterWasToUs") == "true"
        )
        try:
            context.last_enumerated_question_next_answer_index = int(
                xml.get("lastEnumeratedQuestion_next_answer_index", "0")
            )
        except ValueError as exc:
            logger.warning("Resetting answer index for %s: %s", context.speaker, exc)

        # Older saves carry no index attribute; their position is the index.
        index_map: dict[int, NLContextPerformative] = {}
        for saved_index, cp_xml in enumerate(xml.findall("performative")):
            try:
                performative = parse_term(cp_xml.attrib["performative"], ontology)
                cp = NLContextPerformative(
                    text=cp_xml.get("text", ""),
                    speaker=cp_xml.attrib["speaker"],
                    performative=performative,
                    timestamp=int(cp_xml.attrib["timeStamp"]),
                    index=int(cp_xml.get("index", saved_index)),
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping malformed performative for %s: %s", context.speaker, exc)
                continue
            context.performatives.append(cp)
            index_map[cp.index] = cp
            context.next_index = max(context.next_index, cp.index + 1)

        for tag, stack, time_stack in (
            ("expectingAnswerToQuestion",
             context.expecting_answer_to_question_stack,
             context.expecting_answer_to_question_time_stack),
            ("expectingConfirmationToRequest",
             context.expecting_confirmation_to_request_stack,
             context.expecting_confirmation_to_request_time_stack),
        ):
            for entry_xml in xml.findall(tag):
                try:
                    cp = index_map[int(entry_xml.attrib["performative"])]
                    timestamp = int(entry_xml.attrib["timeStamp"])
                except (KeyError, ValueError) as exc:
                    logger.warning("Skipping malformed <%s> for %s: %s", tag, context.speaker, exc)
                    continue
                stack.append(cp)
                time_stack.append(timestamp)

        answered_xml = xml.find("lastEnumeratedQuestion_answered")
        if answered_xml is not None:
            try:
                context.last_enumerated_question_answered = parse_term(answered_xml.attrib["term"], ontology)
            except (KeyError, TermParseError) as exc:
                logger.warning("Skipping malformed enumerated question: %s", exc)
        for answer_xml in xml.findall("lastEnumeratedQuestion_answer"):
            try:
                context.last_enumerated_question_answers.append(
                    parse_attribute(answer_xml.attrib["value"], ontology)
                )
            except (KeyError, TermParseError) as exc:
                logger.warning("Skipping malformed enumerated answer: %s", exc)
        return context
