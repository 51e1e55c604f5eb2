"""
Event Dispatcher

In-process, synchronous fan-out from the scheduling services to the
handlers registered for an event type. Handlers run in registration order
after the appointment change is committed. A failing handler is logged and
skipped; it never fails the operation that raised the event.
"""

import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List

from ..observability import create_span
from .models import AppointmentEvent
from .taxonomy import AppointmentEventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[AppointmentEvent], Awaitable[None]]


class EventDispatcher:
    """
    Usage:
        dispatcher = EventDispatcher()
        dispatcher.subscribe(AppointmentEventType.BOOKED, handlers.on_booked)
        await dispatcher.dispatch(event)
    """

    def __init__(self):
        self._handlers: Dict[AppointmentEventType, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: AppointmentEventType, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: AppointmentEventType) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    async def dispatch(self, event: AppointmentEvent) -> int:
        """Run every handler for the event. Returns how many succeeded."""
        succeeded = 0
        for handler in self.handlers_for(event.event_type):
            name = getattr(handler, "__qualname__", repr(handler))
            try:
                with create_span(f"event.{event.event_type.value}", {"handler": name}):
                    await handler(event)
                succeeded += 1
            except Exception as e:
                logger.error(
                    f"Handler {name} failed for {event.event_type.value}: {e}",
                    exc_info=True,
                    extra={"correlation_id": str(event.appointment_id)}
                )
        return succeeded
