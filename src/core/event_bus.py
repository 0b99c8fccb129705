"""
In-process publish/subscribe bus for decoupled notifications.

Fire-and-forget: handlers run synchronously in emit order, a failing handler
is logged and does not stop the others.
"""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class Events:
    """Event name constants."""

    TIMER_UPDATE = "timer:update"
    SHIFT_REMINDER = "shift:reminder"
    SCHEDULE_CACHE_REFRESHED = "schedule:cacheRefreshed"
    DAILY_RESET = "daily:reset"
    COUNT_UPDATED = "count:updated"
    HISTORY_CLEARED = "history:cleared"


class EventBus:
    """Named-event subscriber registry."""

    def __init__(self):
        self._listeners: dict[str, list[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Subscribe; returns an unsubscribe function."""
        self._listeners[event].append(handler)

        def off() -> None:
            handlers = self._listeners.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return off

    def once(self, event: str, handler: Handler) -> Callable[[], None]:
        """Subscribe for a single delivery."""

        def wrapper(payload: Any) -> None:
            off()
            handler(payload)

        off = self.on(event, wrapper)
        return off

    def emit(self, event: str, payload: Any = None) -> None:
        # Copy: handlers may unsubscribe while we iterate
        for handler in list(self._listeners.get(event, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in %s handler", event)

    def clear(self, event: str | None = None) -> None:
        """Remove listeners for one event, or all of them."""
        if event:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))
