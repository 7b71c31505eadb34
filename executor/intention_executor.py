"""Runs pending intentions through the first capability that accepts them."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from executor.intention_record import IntentionRecord
from logic.terms import Term, TermAttribute, TermTermAttribute
from tools.action_registry import ActionRegistry
from tools.base_action import ActionResult, ActionStatus, IntentionAction

logger = logging.getLogger("npc.executor")


class IntentionExecutor:
    """Active, queued and request-caused intention lists."""

    def __init__(
        self,
        registry: ActionRegistry,
        inference_idle: Callable[[], bool] | None = None,
        request_memory_size: int = 20,
    ) -> None:
        self.registry = registry
        self.request_memory_size = request_memory_size
        self.inference_idle = inference_idle or (lambda: True)
        self.intentions: list[IntentionRecord] = []
        self.queued_intentions: list[IntentionRecord] = []
        self.intentions_caused_by_request: list[IntentionRecord] = []
        self.continuous_actions: list[IntentionAction] = []

    def add_intention(self, record: IntentionRecord) -> None:
        self.intentions.append(record)

    def queue_intention(self, record: IntentionRecord) -> None:
        """Defer an intention until everything current is finished."""
        self.queued_intentions.append(record)

    def add_intention_from_term(self, term: Term, timestamp: int) -> bool:
        """Turn ``intention(action[, requester])`` into an IntentionRecord."""
        if not term.attributes or not isinstance(term.attributes[0], TermTermAttribute):
            logger.warning("Malformed intention term: %s", term)
            return False
        requester: TermAttribute | None = term.attributes[1] if len(term.attributes) > 1 else None
        self.add_intention(
            IntentionRecord(term.attributes[0].term, requester=requester, timestamp=timestamp)
        )
        return True

    def can_handle(self, action: Term, ai: Any) -> bool:
        return self.registry.find(action, ai) is not None

    def is_idle(self) -> bool:
        return not self.intentions and not self.queued_intentions and not self.continuous_actions

    def execute_intentions(self, ai: Any) -> None:
        if not self.intentions and self.inference_idle() and self.queued_intentions:
            self.intentions = self.queued_intentions
            self.queued_intentions = []

        for action in list(self.continuous_actions):
            if action.execute_continuous(ai):
                self.continuous_actions.remove(action)

        # Handlers may append new intentions; those also run this tick.
        idx = 0
        while idx < len(self.intentions):
            record = self.intentions[idx]
            result = self.execute_intention(record, ai)
            if result.status == ActionStatus.BLOCKED:
                idx += 1
                continue
            if result.status == ActionStatus.FAILED:
                logger.warning("Unsupported intention %s: %s", record.action, result.reason)
            elif record.requester is not None:
                self.intentions_caused_by_request.append(record)
                # Only the most recent requests are kept for later "why" questions.
                del self.intentions_caused_by_request[:-self.request_memory_size]
            if idx < len(self.intentions) and self.intentions[idx] is record:
                del self.intentions[idx]
            elif record in self.intentions:
                self.intentions.remove(record)

    def execute_intention(self, record: IntentionRecord, ai: Any) -> ActionResult:
        handler = self.registry.find(record.action, ai)
        if handler is None:
            return ActionResult.failed("no capability can handle it")
        result = handler.execute(record, ai)
        if result.status == ActionStatus.COMPLETED and handler.needs_continuous_execution:
            self.continuous_actions.append(handler)
        return result
