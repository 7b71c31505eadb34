"""Speaking: ``action.talk(self, performative)``."""

from __future__ import annotations

import logging
from typing import Any

from executor.intention_record import IntentionRecord
from logic.terms import ConstantTermAttribute, Term, TermTermAttribute, elements_in_list
from memory.entries import Provenance
from tools.base_action import ActionResult, IntentionAction

logger = logging.getLogger("npc.talk")

TALK_EVENT = "talk"


class TalkAction(IntentionAction):
    """Utters a performative, records it in the listener's context and remembers saying it."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.last_talk_time: int | None = None

    def can_handle(self, intention: Term, ai: Any) -> bool:
        return (
            self.functor_is(intention, "action.talk")
            and len(intention.attributes) == 2
            and isinstance(intention.attributes[0], ConstantTermAttribute)
            and intention.attributes[0].value == ai.settings.self_id
            and isinstance(intention.attributes[1], TermTermAttribute)
        )

    def render(self, performative: Term) -> str:
        """Text for a performative; games plug natural-language generation in here."""
        return performative.to_string()

    def cooldown(self, ai: Any) -> int:
        return int(self.settings.get("cooldown", ai.settings.talk_cooldown))

    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        now = ai.clock.now()
        cooldown = self.cooldown(ai)
        if cooldown and self.last_talk_time is not None and now - self.last_talk_time < cooldown:
            return ActionResult.blocked("still talking")

        performative_attribute = record.action.attributes[1]
        if not isinstance(performative_attribute, TermTermAttribute):
            return ActionResult.failed(f"nothing to say in {record.action}")
        performative = performative_attribute.term
        text = self.render(performative)
        self_id = ai.settings.self_id

        listeners: list[str] = []
        if performative.attributes:
            listeners = [
                element.value
                for element in elements_in_list(performative.attributes[0], "#and")
                if isinstance(element, ConstantTermAttribute) and element.value != self_id
            ]
        for listener in listeners:
            context = ai.dialogue.context_for_speaker(listener)
            if context is not None:
                context.new_performative(self_id, text, performative, now)

        u = ai.utterances
        talk_fact = u.term(
            "action.talk",
            ConstantTermAttribute(str(now), u.sort("number")),
            u.me(),
            ConstantTermAttribute(text, u.sort("symbol")),
            performative,
        )
        ai.memory.add_long_term_term(talk_fact, Provenance.PERCEPTION)
        logger.info("%s says to %s: %s", self_id, ",".join(listeners) or "nobody", text)
        ai.event_bus.emit(TALK_EVENT, {
            "speaker": self_id,
            "listeners": listeners,
            "text": text,
            "performative": performative,
            "time": now,
        })
        self.last_talk_time = now
        return ActionResult.completed()
