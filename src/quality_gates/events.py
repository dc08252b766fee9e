"""Per-runner lifecycle event bus.

Each :class:`~src.quality_gates.runner.QualityRunner` owns one bus, so
listeners attached to one runner never observe another runner's events.
Handler failures are logged and swallowed so that a broken listener can
never abort a run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Any]


class EventBus:
    """Ordered subscription list keyed by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, **payload: Any) -> None:
        """Deliver *payload* to every handler subscribed to *event*."""
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception as exc:
                logger.warning(
                    "Event handler for %r failed (non-blocking): %s", event, exc
                )
