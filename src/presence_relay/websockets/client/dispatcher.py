"""
Client-side event dispatcher.

Handlers are registered per event name and return a Subscription that
removes exactly that handler when cancelled, leaving other handlers for
the same event untouched.
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class Subscription:
    """Cancellable registration of one handler for one event."""

    def __init__(self, dispatcher: "EventDispatcher", event: str, handler: EventHandler):
        self.event = event
        self.handler = handler
        self._dispatcher = dispatcher
        self.active = True

    def cancel(self) -> None:
        """Remove the handler; further calls are no-ops."""
        if not self.active:
            return
        self.active = False
        self._dispatcher._remove(self.event, self.handler)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cancel()


class EventDispatcher:
    """Routes decoded events to their registered handlers in order."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> Subscription:
        self._handlers[event].append(handler)
        return Subscription(self, event, handler)

    def _remove(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event]

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    async def dispatch(self, event: str, data: Any) -> None:
        """Run every handler for ``event``; one failing handler does not stop the rest."""
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(f"Handler for {event} failed: {e}", exc_info=True)
