"""Action capability registry and default capability wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from logic.terms import Term
from tools.answer_actions import AnswerHowAction, AnswerPredicateAction, AnswerQueryAction
from tools.base_action import IntentionAction
from tools.memorize_action import MemorizeAction
from tools.talk_action import TalkAction


@dataclass
class RegisteredAction:
    """Metadata for capability listing output."""

    name: str
    enabled: bool


class ActionRegistry:
    """Ordered capability list; the first enabled match handles an action."""

    def __init__(self) -> None:
        self._actions: list[IntentionAction] = []

    def register(self, action: IntentionAction) -> None:
        self._actions.append(action)

    def get(self, name: str) -> IntentionAction | None:
        for action in self._actions:
            if action.name == name and action.enabled:
                return action
        return None

    def find(self, intention: Term, ai: Any) -> IntentionAction | None:
        for action in self._actions:
            if action.enabled and action.can_handle(intention, ai):
                return action
        return None

    def list_actions(self) -> list[RegisteredAction]:
        return [RegisteredAction(name=a.name, enabled=a.enabled) for a in self._actions]


def _action_enabled(config: dict[str, Any], action_name: str, default: bool) -> bool:
    actions_cfg = config.get("actions", {})
    action_cfg = actions_cfg.get(action_name, {})
    if not isinstance(action_cfg, dict):
        return default
    return bool(action_cfg.get("enabled", default))


def _action_settings(config: dict[str, Any], action_name: str) -> dict[str, Any]:
    actions_cfg = config.get("actions", {})
    action_cfg = actions_cfg.get(action_name, {})
    if not isinstance(action_cfg, dict):
        return {}
    return dict(action_cfg)


def build_default_registry(*, config: dict[str, Any]) -> ActionRegistry:
    """Build the default capability registry from config, in dispatch order."""
    registry = ActionRegistry()
    for name, cls in (
        ("talk", TalkAction),
        ("memorize", MemorizeAction),
        ("answer_predicate", AnswerPredicateAction),
        ("answer_how", AnswerHowAction),
        ("answer_query", AnswerQueryAction),
    ):
        registry.register(
            cls(
                name=name,
                enabled=_action_enabled(config, name, True),
                settings=_action_settings(config, name),
            )
        )
    return registry
