"""Answering questions by starting an inference whose effect replies."""

from __future__ import annotations

from typing import Any

from cognition.effects import AnswerHowEffect, AnswerPredicateEffect, AnswerQueryEffect
from executor.intention_record import IntentionRecord
from logic.sentences import Sentence
from logic.terms import ConstantTermAttribute, Term, TermTermAttribute, VariableTermAttribute
from tools.base_action import ActionResult, IntentionAction


class AnswerPredicateAction(IntentionAction):
    """``action.answer.predicate(self, speaker, P)``: is P true, false or unknown?"""

    def can_handle(self, intention: Term, ai: Any) -> bool:
        _ = ai
        return (
            intention.functor.name in ("action.answer.predicate", "action.answer.predicate-negated")
            and len(intention.attributes) >= 3
        )

    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        query = record.action.attributes[2]
        if not isinstance(query, TermTermAttribute):
            return ActionResult.failed(f"predicate to check is not a term: {query}")
        # Refuting "not P" proves P; refuting P proves "not P".
        targets = [
            [Sentence.negated_conjunction(query.term)],
            Sentence.from_conjunction(query.term),
        ]
        ai.inference.add(
            ai.inference.new_record(
                targets,
                AnswerPredicateEffect(record.action),
                priority=int(self.settings.get("priority", 1)),
            )
        )
        return ActionResult.completed()


class AnswerHowAction(IntentionAction):
    """``action.answer.how(self, speaker, query)`` where the query mentions ``HOW``."""

    def can_handle(self, intention: Term, ai: Any) -> bool:
        _ = ai
        return intention.functor.name == "action.answer.how" and len(intention.attributes) >= 2

    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        speaker = record.action.attributes[1]
        if not isinstance(speaker, ConstantTermAttribute):
            return ActionResult.failed("don't know who asked")
        query = record.action.attributes[2] if len(record.action.attributes) > 2 else None
        if not isinstance(query, TermTermAttribute):
            u = ai.utterances
            ai.executor.add_intention(
                IntentionRecord(
                    u.say("perf.inform.answer", speaker.value, u.symbol("unknown")),
                    timestamp=ai.clock.now(),
                )
            )
            return ActionResult.completed()
        ai.inference.add(
            ai.inference.new_record(
                [[Sentence.negated_conjunction(query.term)]],
                AnswerHowEffect(record.action),
                priority=int(self.settings.get("priority", 1)),
            )
        )
        return ActionResult.completed()


class AnswerQueryAction(IntentionAction):
    """``action.answer.query(self, speaker, perf.q.query(listener, X, Q))``: every X for which Q holds."""

    def can_handle(self, intention: Term, ai: Any) -> bool:
        _ = ai
        return intention.functor.name == "action.answer.query" and len(intention.attributes) >= 3

    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        question = record.action.attributes[2]
        if (
            not isinstance(question, TermTermAttribute)
            or len(question.term.attributes) < 3
            or not isinstance(question.term.attributes[1], VariableTermAttribute)
            or not isinstance(question.term.attributes[2], TermTermAttribute)
        ):
            return ActionResult.failed(f"not a query question: {question}")
        query = question.term.attributes[2].term
        ai.inference.add(
            ai.inference.new_record(
                [[Sentence.negated_conjunction(query)]],
                AnswerQueryEffect(record.action),
                priority=int(self.settings.get("priority", 1)),
                find_all_answers=True,
            )
        )
        return ActionResult.completed()
