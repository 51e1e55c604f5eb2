from .dispatcher import EventDispatcher, EventHandler
from .models import AppointmentEvent
from .taxonomy import AppointmentEventType

__all__ = [
    "AppointmentEvent",
    "AppointmentEventType",
    "EventDispatcher",
    "EventHandler",
]
