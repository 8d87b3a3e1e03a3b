"""
Event types carried on the event bus.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Backend event names
TRIGGER_FIRED = "trigger-fired"

# System event types
SUBSCRIPTION_LOST = "subscription-lost"


@dataclass
class BackendEvent:
    """An event pushed by the backend (e.g. ``trigger-fired``)."""

    event: str
    payload: Any = None
    received_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass
class SystemEvent:
    """Internal lifecycle notification (e.g. the backend stream was lost)."""

    event_type: str
    data: dict[str, Any] = field(default_factory=dict)
