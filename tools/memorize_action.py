"""Learning from being told: ``action.memorize(self, speaker, content)``."""

from __future__ import annotations

import logging
from typing import Any

from executor.intention_record import IntentionRecord
from logic.sentences import Sentence, split_negation
from logic.terms import ConstantTermAttribute, Term, TermTermAttribute, terms_in_list
from memory.entries import Provenance
from tools.base_action import ActionResult, IntentionAction

logger = logging.getLogger("npc.memorize")


class MemorizeAction(IntentionAction):
    """Stores each conjunct of the content as a long-term belief."""

    def can_handle(self, intention: Term, ai: Any) -> bool:
        _ = ai
        return self.functor_is(intention, "action.memorize") and len(intention.attributes) >= 3

    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        speaker = record.action.attributes[1]
        content = record.action.attributes[2]
        if not isinstance(content, TermTermAttribute):
            return ActionResult.failed(f"cannot memorize non-term content {content}")

        added = 0
        for conjunct in terms_in_list(content.term, "#and"):
            literal, sign = split_negation(conjunct)
            if sign:
                new = ai.memory.add_long_term_term(literal, Provenance.MEMORIZE)
            else:
                new = ai.memory.add_long_term_rule(Sentence([literal], [False]), Provenance.MEMORIZE)
            added += int(new)
        logger.debug("Memorized %d new belief(s) from %s", added, speaker)

        if (
            self.settings.get("acknowledge", True)
            and isinstance(speaker, ConstantTermAttribute)
            and speaker.value != ai.settings.self_id
        ):
            ai.executor.add_intention(
                IntentionRecord(
                    ai.utterances.say("perf.ack.ok", speaker.value),
                    timestamp=ai.clock.now(),
                )
            )
        return ActionResult.completed()
