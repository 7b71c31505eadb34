"""Base capability interface for intentions a character can carry out."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from executor.intention_record import IntentionRecord
from logic.terms import Term


class ActionStatus(str, Enum):
    COMPLETED = "completed"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one execution attempt; BLOCKED means retry next tick."""

    status: ActionStatus
    reason: str = ""

    @classmethod
    def completed(cls) -> ActionResult:
        return cls(ActionStatus.COMPLETED)

    @classmethod
    def blocked(cls, reason: str = "") -> ActionResult:
        return cls(ActionStatus.BLOCKED, reason)

    @classmethod
    def failed(cls, reason: str) -> ActionResult:
        return cls(ActionStatus.FAILED, reason)


class IntentionAction(ABC):
    """Handles one family of action terms."""

    def __init__(
        self,
        name: str,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.enabled = enabled
        self.settings = settings or {}
        self.needs_continuous_execution = False

    @abstractmethod
    def can_handle(self, intention: Term, ai: Any) -> bool:
        """Whether this capability recognises the action term."""

    @abstractmethod
    def execute(self, record: IntentionRecord, ai: Any) -> ActionResult:
        """First execution of the action."""

    def execute_continuous(self, ai: Any) -> bool:
        """Called on later ticks while the action runs; True when it is over."""
        _ = ai
        return True

    @staticmethod
    def functor_is(intention: Term, sort_name: str) -> bool:
        return intention.functor.is_a_string(sort_name)
