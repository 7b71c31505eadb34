"""In-process event bus connecting memory, reactions and the outside world."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

logger = logging.getLogger("npc.events")


class EventBus:
    """Synchronous dispatch by event name, in subscription order."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Handlers run immediately; one may emit further events before the next runs."""
        handlers = list(self._handlers.get(event_name, []))
        if not handlers:
            logger.debug("No subscribers for %s", event_name)
        for handler in handlers:
            handler(payload)
