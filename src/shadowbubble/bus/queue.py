"""
Topic-based event bus.

Backend pushes are published per event name; system events go to every
system subscriber. Subscribers are awaited in subscription order, so a
single publisher gets in-order delivery.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from shadowbubble.bus.events import BackendEvent, SystemEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], Awaitable[None]]

_SYSTEM = "__system__"


class Subscription:
    """Handle returned by ``EventBus.subscribe``; ``cancel()`` detaches it."""

    def __init__(self, bus: "EventBus", topic: str, callback: Subscriber):
        self._bus = bus
        self.topic = topic
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)


class EventBus:
    """In-process pub/sub between the backend stream and the components."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, topic: str, callback: Subscriber) -> Subscription:
        sub = Subscription(self, topic, callback)
        self._subscriptions.setdefault(topic, []).append(sub)
        return sub

    def subscribe_system(self, callback: Subscriber) -> Subscription:
        return self.subscribe(_SYSTEM, callback)

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.topic, [])
        if sub in subs:
            subs.remove(sub)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, []))

    async def _deliver(self, topic: str, event: Any) -> None:
        for sub in list(self._subscriptions.get(topic, [])):
            if not sub.active:
                continue
            try:
                await sub.callback(event)
            except Exception as e:
                logger.error("Subscriber error on %s: %s", topic, e)

    async def publish(self, event: BackendEvent) -> None:
        await self._deliver(event.event, event)

    async def publish_system(self, event: SystemEvent) -> None:
        await self._deliver(_SYSTEM, event)


_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus


def reset_event_bus() -> None:
    """Reset the event bus singleton (for testing)."""
    global _bus
    _bus = None
