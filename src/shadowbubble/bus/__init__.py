# Event bus package.

from shadowbubble.bus.adapters import BackendStreamAdapter
from shadowbubble.bus.events import SUBSCRIPTION_LOST, TRIGGER_FIRED, BackendEvent, SystemEvent
from shadowbubble.bus.queue import EventBus, Subscription, get_event_bus, reset_event_bus

__all__ = [
    "BackendEvent",
    "BackendStreamAdapter",
    "EventBus",
    "SUBSCRIPTION_LOST",
    "Subscription",
    "SystemEvent",
    "TRIGGER_FIRED",
    "get_event_bus",
    "reset_event_bus",
]
