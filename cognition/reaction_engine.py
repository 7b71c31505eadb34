"""Reactive layer: decides what to say or do when someone talks to us."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from cognition.answer_memorization import (
    sentence_to_memorize_from_predicate_question,
    sentence_to_memorize_from_predicate_question_with_inform_answer,
    sentence_to_memorize_from_query_question,
)
from cognition.effects import ExecuteActionEffect, next_enumerated_answers
from cognition.parse_errors import ParseError, parse_error_reply
from cognition.performatives import (
    ANSWER_WITH_ALL_ARGUMENTS,
    ANSWER_WITH_FIRST_ARGUMENT,
    ANSWER_WITH_PERFORMATIVE,
    PerformativeKind,
)
from dialogue.nl_context import NLContext
from executor.intention_record import IntentionRecord
from logic.sentences import Sentence
from logic.terms import (
    ConstantTermAttribute,
    Term,
    TermAttribute,
    TermTermAttribute,
    VariableTermAttribute,
    terms_in_list,
)
from memory.entries import Provenance

logger = logging.getLogger("npc.reaction")

Handler = Callable[[Term, TermAttribute, NLContext], bool]


class ReactionEngine:
    """Turns perceived speech into intentions, one context at a time."""

    def __init__(self, ai: Any) -> None:
        self.ai = ai
        self.u = ai.utterances
        self._handlers: dict[PerformativeKind, Handler] = {
            PerformativeKind.CALL_ATTENTION: self._on_call_attention,
            PerformativeKind.GREET: self._on_greet,
            PerformativeKind.FAREWELL: self._on_farewell,
            PerformativeKind.THANK_YOU: self._on_thank_you,
            PerformativeKind.YOU_ARE_WELCOME: self._ignore,
            PerformativeKind.HOW_ARE_YOU: self._on_how_are_you,
            PerformativeKind.ACK_OK: self._ignore,
            PerformativeKind.ACK_CONTRADICT: self._on_contradict,
            PerformativeKind.ACK_DENY_REQUEST: self._on_deny_request,
            PerformativeKind.INFORM: self._on_inform,
            PerformativeKind.INFORM_ANSWER: self._ignore,
            PerformativeKind.REQUEST_ACTION: self._on_action_request,
            PerformativeKind.Q_ACTION: self._on_action_request,
            PerformativeKind.MORE_RESULTS: self._on_more_results,
        }
        for kind in ANSWER_WITH_FIRST_ARGUMENT | ANSWER_WITH_ALL_ARGUMENTS | ANSWER_WITH_PERFORMATIVE:
            self._handlers[kind] = self._on_question
        missing = [kind.value for kind in PerformativeKind if kind not in self._handlers]
        if missing:
            raise ValueError(f"No reaction defined for performatives: {', '.join(missing)}")

    @property
    def self_id(self) -> str:
        return self.ai.settings.self_id

    # ── entry points ─────────────────────────────────────────────────

    def reactive_behavior_update(self, term: Term) -> None:
        """React to ``action.talk(time, speaker, text, performative)`` facts."""
        if not term.functor.is_a_string("action.talk") or len(term.attributes) < 4:
            return
        speaker_attribute, text_attribute, performative_attribute = term.attributes[1:4]
        if not (
            isinstance(speaker_attribute, ConstantTermAttribute)
            and isinstance(text_attribute, ConstantTermAttribute)
            and isinstance(performative_attribute, TermTermAttribute)
        ):
            return
        speaker = speaker_attribute.value
        if speaker == self.self_id:
            return
        dialogue = self.ai.dialogue
        context = dialogue.context_for_speaker(speaker)
        if context is None:
            return
        performative = performative_attribute.term
        if not dialogue.talking_to_us(context, speaker, performative):
            logger.debug("%s is not talking to us: %s", speaker, performative)
            return

        performative = self.unify_listener(performative)
        executor = self.ai.executor
        first_new = len(executor.intentions)
        reaction = self.react_to_performative(performative, speaker_attribute, context)
        cp = context.new_performative(speaker, text_attribute.value, performative, self.ai.clock.now())
        ref = context.ref_for(cp)
        for record in executor.intentions[first_new:]:
            if record.requesting_performative is None:
                record.requesting_performative = ref
        for reaction_term in reaction:
            self.ai.memory.add_short_term_term(reaction_term, Provenance.REACTION)

    def react_to_parse_error(self, speaker: str, error: ParseError) -> None:
        context = self.ai.dialogue.find_context(speaker)
        if context is None:
            logger.debug("No need to react to a parse error: no context for %s", speaker)
            return
        if not self.ai.dialogue.talking_to_us(context, speaker, None):
            logger.debug("No need to react to a parse error: not talking to %s", speaker)
            return
        logger.info("Could not parse what %s said (%s)", speaker, error.kind.value)
        self._intend(self.u.talk(parse_error_reply(error, self.u, speaker)), None)

    def unify_listener(self, performative: Term) -> Term:
        """Fill an unspecified listener with ourselves."""
        if performative.attributes and isinstance(performative.attributes[0], VariableTermAttribute):
            return Term(performative.functor, [self.u.me(), *performative.attributes[1:]])
        return performative

    def can_satisfy_action_request(self, action: Term) -> bool:
        if action.functor.name == "#and":
            conjuncts = terms_in_list(action, "#and")
            if not conjuncts:
                return False
            action = conjuncts[0]
        return self.ai.executor.can_handle(action, self.ai)

    # ── performatives ────────────────────────────────────────────────

    def react_to_performative(
        self, performative: Term, speaker: TermAttribute, context: NLContext
    ) -> list[Term]:
        reaction: list[Term] = []
        handled = False
        new_expecting_thank_you = False
        functor = performative.functor

        if context.expecting_answer:
            if functor.name == "perf.inform":
                answer = self.react_to_answer_performative(performative, speaker, context)
                if answer is None:
                    if len(performative.attributes) > 1:
                        self._intend(
                            self.u.memorize(context.speaker, performative.attributes[1]), None
                        )
                    self._reject_answer(speaker, context)
                else:
                    reaction = answer
                handled = True
            elif functor.is_a_string("perf.inform.answer") or functor.is_a_string("perf.ack.ok"):
                answer = self.react_to_answer_performative(performative, speaker, context)
                if answer is None:
                    self._reject_answer(speaker, context)
                else:
                    reaction = answer
                handled = True
            elif functor.is_a_string("perf.question") or functor.is_a_string("perf.request.action"):
                pass
            else:
                self._reject_answer(speaker, context)
                handled = True

        elif context.expecting_confirmation:
            if functor.is_a_string("perf.ack.ok"):
                context.clear_expected_confirmations()
                handled = True
            elif functor.is_a_string("perf.ack.denyrequest"):
                context.clear_expected_confirmations()
                handled = True
                self._say("perf.ack.ok", context, speaker)
            # Not an elif: an inform.answer also settles a pending request.
            if functor.is_a_string("perf.inform.answer"):
                context.clear_expected_confirmations()
                handled = True
                if (
                    len(performative.attributes) >= 2
                    and isinstance(performative.attributes[1], ConstantTermAttribute)
                    and performative.attributes[1].value == "no"
                ):
                    self._say("perf.ack.ok", context, speaker)

        if not handled:
            kind = PerformativeKind.from_functor(functor.name)
            if kind is None:
                logger.error("Unknown performative: %s", performative)
            else:
                new_expecting_thank_you = self._handlers[kind](performative, speaker, context)

        context.expecting_thank_you = new_expecting_thank_you
        context.expecting_you_are_welcome = False
        context.expecting_greet = False
        context.expecting_farewell = False
        return reaction

    def react_to_answer_performative(
        self, performative: Term, speaker: TermAttribute, context: NLContext
    ) -> list[Term] | None:
        """Check an answer against our last question; None means it does not fit."""
        last_question = context.expecting_answer_to_question_stack[-1]
        question = last_question.performative
        functor = performative.functor

        if question.functor.is_a_string("perf.q.predicate"):
            if not functor.is_a_string("perf.inform") or len(performative.attributes) != 2:
                logger.error("Unsupported answer to perf.q.predicate: %s", performative)
                return None
            answer = performative.attributes[1]
            if isinstance(answer, ConstantTermAttribute):
                if answer.value in ("yes", "no"):
                    to_memorize = sentence_to_memorize_from_predicate_question(
                        question, answer.value == "yes", self.ai.o
                    )
                elif answer.value == "unknown":
                    context.pop_last_question()
                    return []
                else:
                    logger.error("Unsupported answer to perf.q.predicate: %s", performative)
                    return None
            else:
                to_memorize = sentence_to_memorize_from_predicate_question_with_inform_answer(
                    question, performative
                )
            return self._memorize_answer(to_memorize, speaker, context, question)

        if question.functor.is_a_string("perf.q.query"):
            if not functor.is_a_string("perf.inform"):
                logger.error("Unsupported answer to perf.q.query: %s", performative)
                return None
            to_memorize = sentence_to_memorize_from_query_question(question, performative)
            return self._memorize_answer(to_memorize, speaker, context, question)

        if question.functor.is_a_string("perf.q.action"):
            if (functor.is_a_string("perf.inform") and len(performative.attributes) == 2) or (
                functor.is_a_string("perf.inform.answer") and len(performative.attributes) == 3
            ):
                if len(performative.attributes) == 3:
                    answer_predicate = performative.attributes[2]
                    question_predicate = question.attributes[1] if len(question.attributes) > 1 else None
                    if not isinstance(answer_predicate, TermTermAttribute) or not isinstance(
                        question_predicate, TermTermAttribute
                    ):
                        return None
                    if not answer_predicate.term.equals_no_bindings(question_predicate.term):
                        logger.debug("Answer is about a different action than we asked about")
                        return None
                answer = performative.attributes[1]
                if isinstance(answer, ConstantTermAttribute) and answer.value in ("yes", "no", "unknown"):
                    context.pop_last_question()
                    return []
                logger.error("Unsupported answer to perf.q.action: %s", performative)
                return None
            if functor.is_a_string("perf.ack.ok"):
                context.pop_last_question()
                return []
            logger.error("Unsupported answer to perf.q.action: %s", performative)
            return None

        logger.error("Answers to questions of type %s are not supported", question.functor.name)
        return None

    # ── helpers ──────────────────────────────────────────────────────

    def _intend(self, action: Term, requester: TermAttribute | None) -> None:
        self.ai.executor.add_intention(
            IntentionRecord(action, requester=requester, timestamp=self.ai.clock.now())
        )

    def _say(
        self, functor: str, context: NLContext, speaker: TermAttribute, *attributes: TermAttribute | Term
    ) -> None:
        self._intend(self.u.say(functor, context.speaker, *attributes), speaker)

    def _reject_answer(self, speaker: TermAttribute, context: NLContext) -> None:
        """Tell the speaker their answer does not fit, then ask the question again."""
        question = context.expecting_answer_to_question_stack[-1].performative
        self._say("perf.ack.invalidanswer", context, speaker)
        self._intend(self.u.talk(question), speaker)
        context.pop_last_question()

    def _memorize_answer(
        self,
        to_memorize: list[Term] | None,
        speaker: TermAttribute,
        context: NLContext,
        question: Term,
    ) -> list[Term]:
        if to_memorize is None:
            self._say("perf.ack.invalidanswer", context, speaker)
            context.pop_last_question()
            self._intend(self.u.talk(question), speaker)
            return []
        for term in to_memorize:
            self._intend(self.u.memorize(context.speaker, term), speaker)
        context.pop_last_question()
        return []

    # ── per-performative reactions ───────────────────────────────────

    def _ignore(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        return False

    def _on_call_attention(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        # Only players get a confirmation; two characters would keep calling each other.
        if context.speaker in self.ai.settings.player_ids:
            self._say("perf.inform.answer", context, speaker, self.u.symbol("yes"))
        return False

    def _on_greet(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if not context.expecting_greet:
            self._say("perf.greet", context, speaker)
        return False

    def _on_farewell(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if not context.expecting_farewell:
            self._say("perf.farewell", context, speaker)
        context.in_conversation = False
        return False

    def _on_thank_you(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if context.expecting_thank_you:
            self._say("perf.youarewelcome", context, speaker)
        return False

    def _on_how_are_you(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        self._say("perf.inform.answer", context, speaker, self.u.symbol("fine"))
        return False

    def _on_contradict(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        logger.error("Not sure how to react to %s", performative)
        return False

    def _on_deny_request(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        self._say("perf.ack.ok", context, speaker)
        return False

    def _on_inform(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if len(performative.attributes) < 2:
            logger.error("perf.inform without content: %s", performative)
            return False
        self._intend(self.u.memorize(context.speaker, performative.attributes[1]), speaker)
        return False

    def _on_question(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        kind = PerformativeKind(performative.functor.name)
        action = self.u.term(kind.answer_action, self.u.me(), self.u.id(context.speaker))
        if kind in ANSWER_WITH_PERFORMATIVE:
            action.add_attribute(TermTermAttribute(performative))
        elif kind in ANSWER_WITH_ALL_ARGUMENTS:
            for attribute in performative.attributes[1:]:
                action.add_attribute(attribute)
        elif len(performative.attributes) > 1:
            action.add_attribute(performative.attributes[1])
        self._intend(action, speaker)
        return False

    def _on_action_request(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if len(performative.attributes) < 2 or not isinstance(performative.attributes[1], TermTermAttribute):
            self._say("perf.ack.denyrequest", context, speaker)
            return False
        action = performative.attributes[1].term
        if len(performative.attributes) >= 3 and isinstance(performative.attributes[2], TermTermAttribute):
            # Preconditions must be proved before acting.
            target = Sentence.negated_conjunction(performative.attributes[2].term)
            record = self.ai.inference.new_record([[target]], ExecuteActionEffect(action))
            record.triggered_by = performative
            record.triggered_by_speaker = context.speaker
            self.ai.inference.add(record)
        elif self.can_satisfy_action_request(action):
            self._intend(action, self.u.id(context.speaker))
        else:
            self._say("perf.ack.denyrequest", context, speaker)
        return False

    def _on_more_results(self, performative: Term, speaker: TermAttribute, context: NLContext) -> bool:
        if context.last_enumerated_question_answered is None:
            not_understood = self.u.term("#not", self.u.term("verb.understand", self.u.me()))
            self._say("perf.inform", context, speaker, not_understood)
            return False
        results = next_enumerated_answers(context, self.ai.settings.max_answers_at_once, self.u)
        if results is None:
            self._say("perf.inform.answer", context, speaker, self.u.symbol("no-matches-found"))
            return True
        self._say("perf.inform.answer", context, speaker, results)
        return True
