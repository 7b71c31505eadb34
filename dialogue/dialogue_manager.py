"""Conversation contexts, addressing and question timeouts."""

from __future__ import annotations

import logging
from collections.abc import Callable

from core.settings import AISettings
from core.sim_clock import SimClock
from dialogue.nl_context import NLContext, NLContextPerformative, PerformativeRef
from executor.intention_executor import IntentionExecutor
from executor.intention_record import IntentionRecord
from logic.sorts import Ontology
from logic.terms import (
    ConstantTermAttribute,
    Term,
    TermTermAttribute,
    elements_in_list,
)

logger = logging.getLogger("npc.dialogue")


class DialogueManager:
    """Owns one NLContext per interlocutor and decides who is being addressed."""

    def __init__(
        self,
        settings: AISettings,
        clock: SimClock,
        ontology: Ontology,
        executor: IntentionExecutor,
        can_see: Callable[[str], bool] | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.o = ontology
        self.executor = executor
        self.can_see = can_see or (lambda speaker: True)
        self.contexts: list[NLContext] = []

    @property
    def self_id(self) -> str:
        return self.settings.self_id

    # ── contexts ─────────────────────────────────────────────────────

    def context_for_speaker(self, speaker: str) -> NLContext | None:
        """Return the context for ``speaker``, creating it on first contact."""
        if speaker == self.self_id:
            logger.error("Trying to create a conversation context with ourselves (%s)", speaker)
            return None
        context = self.find_context(speaker)
        if context is None:
            context = NLContext(speaker, self.self_id, self.o, self.settings.performative_memory_size)
            self.contexts.append(context)
            logger.debug("New conversation context for %s", speaker)
        return context

    def find_context(self, speaker: str) -> NLContext | None:
        for context in self.contexts:
            if context.speaker == speaker:
                return context
        return None

    def resolve_ref(self, ref: PerformativeRef | None) -> NLContextPerformative | None:
        if ref is None:
            return None
        context = self.find_context(ref.speaker)
        if context is None:
            return None
        return context.performative_for(ref)

    # ── addressing ───────────────────────────────────────────────────

    def talking_to_us(self, context: NLContext, speaker: str, performative: Term | None) -> bool:
        """Decide whether ``performative`` from ``speaker`` is addressed to this character."""
        _ = speaker
        if performative is not None and performative.attributes:
            target_ids = [
                element.value
                for element in elements_in_list(performative.attributes[0], "#and")
                if isinstance(element, ConstantTermAttribute)
            ]
            for target_id in target_ids:
                if target_id == self.self_id:
                    context.last_performative_involving_this_character_was_to_us = True
                    return True
                self._not_in_conversation_with(target_id)
            if target_ids:
                context.last_performative_involving_this_character_was_to_us = False
                context.in_conversation = False
                for target_id in target_ids:
                    self._not_in_conversation_with(target_id)
                return False

        latest = context.last_performative()
        if latest is not None and self.clock.now() - latest.timestamp >= self.settings.conversation_timeout:
            return False
        if context.last_performative_involving_this_character_was_to_us:
            return True
        return context.in_conversation

    def _not_in_conversation_with(self, speaker: str) -> None:
        other = self.find_context(speaker)
        if other is not None:
            other.last_performative_involving_this_character_was_to_us = False
            other.in_conversation = False

    # ── timeouts ─────────────────────────────────────────────────────

    def conversation_update(self) -> None:
        self.check_overdue_questions()

    def check_overdue_questions(self) -> None:
        """Re-ask any question of ours that has gone unanswered for too long."""
        now = self.clock.now()
        for context in self.contexts:
            if not context.expecting_answer_to_question_time_stack:
                continue
            asked_at = context.expecting_answer_to_question_time_stack[-1]
            if now - asked_at > self.settings.question_patience_timer and self.can_see(context.speaker):
                logger.info("No answer from %s after %d seconds, asking again", context.speaker, now - asked_at)
                self.reask_the_last_question(context)

    def reask_the_last_question(self, context: NLContext) -> None:
        cp = context.pop_last_question()
        if cp is None:
            return
        speaker_sort = self.o.get_sort("#id")
        me = ConstantTermAttribute(self.self_id, speaker_sort)
        you = ConstantTermAttribute(context.speaker, speaker_sort)
        talk = self.o.get_sort("action.talk")
        if not context.in_conversation:
            attention = Term(self.o.get_sort("perf.callattention"), [you])
            self.executor.add_intention(
                IntentionRecord(Term(talk, [me, TermTermAttribute(attention)]), timestamp=self.clock.now())
            )
        self.executor.add_intention(
            IntentionRecord(Term(talk, [me, TermTermAttribute(cp.performative)]), timestamp=self.clock.now())
        )
