"""Event Bus

Routes lifecycle events to their handlers. Handlers are side channels:
a failing handler is logged and the remaining handlers still run.
"""
import logging
from typing import Awaitable, Callable, Dict, List

from domain.enums import EventType
from domain.events import LifecycleEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[LifecycleEvent], Awaitable[None]]


class EventBus:
    """Async publish/subscribe keyed by event type (1:N)"""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler; several handlers may share an event type"""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Registered handler %s for %s", _name(handler), event_type.value)

    def handlers_for(self, event_type: EventType) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def publish(self, event: LifecycleEvent) -> None:
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            logger.debug("No handlers registered for %s", event.event_type.value)
            return

        logger.info(
            "Publishing %s for reservation %s (event %s)",
            event.event_type.value, event.reservation_id, event.event_id
        )
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event %s)",
                    _name(handler), event.event_type.value, event.event_id
                )

    async def publish_events(self, events: List[LifecycleEvent]) -> None:
        for event in events:
            await self.publish(event)


def _name(handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
