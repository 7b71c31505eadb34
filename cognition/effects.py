"""What happens when an inference record finishes."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dialogue.nl_context import NLContext
from executor.intention_record import IntentionRecord
from logic.parser import parse_term
from logic.sorts import Ontology
from logic.terms import (
    ConstantTermAttribute,
    Term,
    TermAttribute,
    TermTermAttribute,
    VariableTermAttribute,
)

if TYPE_CHECKING:
    from cognition.inference_record import InferenceRecord

logger = logging.getLogger("npc.inference")


class InferenceEffect(ABC):
    """Callback run by the scheduler with the finished record."""

    type_name = ""

    @abstractmethod
    def execute(self, record: InferenceRecord, ai: Any) -> None:
        """Act on ``record.inferences[*].end_results``."""

    @abstractmethod
    def save_to_xml(
        self, parent: ET.Element, variables: list[VariableTermAttribute], names: list[str]
    ) -> ET.Element:
        """Write one ``<InferenceEffect type=...>`` element."""

    @classmethod
    @abstractmethod
    def from_xml(
        cls,
        xml: ET.Element,
        ontology: Ontology,
        names: list[str],
        variables: list[VariableTermAttribute],
    ) -> InferenceEffect:
        """Inverse of :meth:`save_to_xml`."""


def _speaker_of(effect_parameter: Term) -> str | None:
    if len(effect_parameter.attributes) < 2:
        return None
    speaker = effect_parameter.attributes[1]
    if not isinstance(speaker, ConstantTermAttribute):
        return None
    return speaker.value


def next_enumerated_answers(context: NLContext, batch_size: int, u: Any) -> TermAttribute | None:
    """The next batch of a listed answer as an ``#and`` list, or None when none are left.

    Batches that leave answers behind end in ``etcetera``; the context's index
    moves past the batch.
    """
    answers = context.last_enumerated_question_answers
    start = context.last_enumerated_question_next_answer_index
    if start >= len(answers):
        return None
    results: TermAttribute | None = None
    if len(answers) > start + batch_size:
        results = ConstantTermAttribute("etcetera", u.sort("etcetera"))
        batch = answers[start:start + batch_size]
    else:
        batch = answers[start:]
    and_sort = u.sort("#and")
    for answer in batch:
        results = answer if results is None else TermTermAttribute(Term(and_sort, [answer, results]))
    context.last_enumerated_question_next_answer_index = start + len(batch)
    return results


def _push_talk(ai: Any, performative: Term) -> None:
    ai.executor.add_intention(
        IntentionRecord(ai.utterances.talk(performative), timestamp=ai.clock.now())
    )


class _ParameterEffect(InferenceEffect):
    """Effects whose state is the intention term that started the inference."""

    def __init__(self, effect_parameter: Term) -> None:
        self.effect_parameter = effect_parameter

    def save_to_xml(
        self, parent: ET.Element, variables: list[VariableTermAttribute], names: list[str]
    ) -> ET.Element:
        return ET.SubElement(parent, "InferenceEffect", {
            "type": self.type_name,
            "effectParameter": self.effect_parameter.to_string_internal(variables, names),
        })

    @classmethod
    def from_xml(
        cls,
        xml: ET.Element,
        ontology: Ontology,
        names: list[str],
        variables: list[VariableTermAttribute],
    ) -> InferenceEffect:
        return cls(parse_term(xml.attrib["effectParameter"], ontology, names, variables))


class AnswerHowEffect(_ParameterEffect):
    """Answers a "how" question with the binding of the ``HOW`` variable."""

    type_name = "AnswerHow_InferenceEffect"

    def execute(self, record: InferenceRecord, ai: Any) -> None:
        speaker = _speaker_of(self.effect_parameter)
        if speaker is None:
            logger.error("Cannot answer 'how': unknown speaker in %s", self.effect_parameter)
            return
        u = ai.utterances
        results = record.inferences[0].end_results
        how: Term | None = None
        if results:
            for variable, value in results[0].bindings.l:
                if variable.name == "HOW" and isinstance(value, TermTermAttribute):
                    how = value.term
                    break
        if how is None:
            _push_talk(ai, u.perf("perf.inform.answer", speaker, u.symbol("unknown")))
            return
        _push_talk(ai, u.perf("perf.inform.answer", speaker, how))


class AnswerPredicateEffect(_ParameterEffect):
    """Yes if the first target was refuted, no if the second was, else unknown."""

    type_name = "AnswerPredicate_InferenceEffect"

    def execute(self, record: InferenceRecord, ai: Any) -> None:
        speaker = _speaker_of(self.effect_parameter)
        if speaker is None:
            logger.error("Cannot answer predicate: unknown speaker in %s", self.effect_parameter)
            return
        proved = bool(record.inferences[0].end_results)
        disproved = len(record.inferences) > 1 and bool(record.inferences[1].end_results)
        if self.effect_parameter.functor.is_a_string("action.answer.predicate-negated"):
            proved, disproved = disproved, proved
        if proved:
            answer = "yes"
        elif disproved:
            answer = "no"
        else:
            answer = "unknown"
        u = ai.utterances
        _push_talk(ai, u.perf("perf.inform.answer", speaker, u.symbol(answer)))


class AnswerQueryEffect(_ParameterEffect):
    """Lists the values of the queried variable, a batch per utterance.

    ``effect_parameter`` is ``action.answer.query(self, speaker, perf.q.query(l, X, Q))``.
    The rest of the answers wait in the speaker's context for ``perf.moreresults``.
    """

    type_name = "AnswerQuery_InferenceEffect"

    def execute(self, record: InferenceRecord, ai: Any) -> None:
        speaker = _speaker_of(self.effect_parameter)
        question = self.effect_parameter.attributes[2] if len(self.effect_parameter.attributes) > 2 else None
        if (
            speaker is None
            or not isinstance(question, TermTermAttribute)
            or len(question.term.attributes) < 2
            or not isinstance(question.term.attributes[1], VariableTermAttribute)
        ):
            logger.error("Cannot answer query: malformed %s", self.effect_parameter)
            return
        variable = question.term.attributes[1]
        answers: list[TermAttribute] = []
        seen: set[str] = set()
        for result in record.inferences[0].end_results:
            value = result.bindings.get_value(variable)
            if value is None or isinstance(value, VariableTermAttribute):
                continue
            key = value.to_string()
            if key not in seen:
                seen.add(key)
                answers.append(value)

        u = ai.utterances
        if not answers:
            _push_talk(ai, u.perf("perf.inform.answer", speaker, u.symbol("unknown")))
            return
        context = ai.dialogue.context_for_speaker(speaker)
        if context is None:
            _push_talk(ai, u.perf("perf.inform.answer", speaker, answers[0]))
            return
        context.last_enumerated_question_answered = question.term
        context.last_enumerated_question_answers = answers
        context.last_enumerated_question_next_answer_index = 0
        batch = next_enumerated_answers(context, ai.settings.max_answers_at_once, u)
        if batch is None:
            logger.error("Query for %s produced no batch", speaker)
            return
        _push_talk(ai, u.perf("perf.inform.answer", speaker, batch))


class ExecuteActionEffect(InferenceEffect):
    """Carries out a requested action once its preconditions have been checked."""

    type_name = "ExecuteAction_InferenceEffect"

    def __init__(self, action: Term) -> None:
        self.action = action

    def execute(self, record: InferenceRecord, ai: Any) -> None:
        speaker = record.triggered_by_speaker
        if speaker is None:
            logger.error("Requested action %s has no requester", self.action)
            return
        u = ai.utterances
        results = record.inferences[0].end_results
        if not results:
            logger.debug("Preconditions of %s do not hold", self.action)
            _push_talk(ai, u.perf("perf.ack.denyrequest", speaker))
            return
        action = self.action.apply_bindings(results[0].bindings)
        if not ai.reaction.can_satisfy_action_request(action):
            _push_talk(ai, u.perf("perf.ack.denyrequest", speaker))
            return
        requesting = None
        context = ai.dialogue.find_context(speaker)
        if context is not None and record.triggered_by is not None:
            cp = context.get_nl_context_performative(record.triggered_by)
            if cp is not None:
                requesting = context.ref_for(cp)
        ai.executor.add_intention(
            IntentionRecord(
                action,
                requester=u.id(speaker),
                requesting_performative=requesting,
                timestamp=ai.clock.now(),
            )
        )

    def save_to_xml(
        self, parent: ET.Element, variables: list[VariableTermAttribute], names: list[str]
    ) -> ET.Element:
        return ET.SubElement(parent, "InferenceEffect", {
            "type": self.type_name,
            "action": self.action.to_string_internal(variables, names),
        })

    @classmethod
    def from_xml(
        cls,
        xml: ET.Element,
        ontology: Ontology,
        names: list[str],
        variables: list[VariableTermAttribute],
    ) -> InferenceEffect:
        return cls(parse_term(xml.attrib["action"], ontology, names, variables))


EFFECT_TYPES: dict[str, type[InferenceEffect]] = {
    cls.type_name: cls
    for cls in (AnswerHowEffect, AnswerPredicateEffect, AnswerQueryEffect, ExecuteActionEffect)
}


def effect_from_xml(
    xml: ET.Element,
    ontology: Ontology,
    names: list[str],
    variables: list[VariableTermAttribute],
) -> InferenceEffect | None:
    type_name = xml.get("type", "")
    effect_cls = EFFECT_TYPES.get(type_name)
    if effect_cls is None:
        logger.error("Unknown inference effect type: %r", type_name)
        return None
    return effect_cls.from_xml(xml, ontology, names, variables)
