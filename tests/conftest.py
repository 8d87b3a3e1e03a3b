"""Shared fixtures: a scriptable backend double and controllable clocks."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from shadowbubble.models import TriggerStats


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """In-memory backend. Every call is an AsyncMock so tests can assert on it.

    Snooze state is kept so read-after-write behaves like the real backend.
    Pushed events are fed through ``events``: a dict is yielded, ``None``
    ends the stream and an exception instance is raised from it.
    """

    def __init__(self):
        self.snoozed_until: float | None = None
        self.trigger_stats = TriggerStats(allowlist=["Cursor", "Figma"])
        self.events: asyncio.Queue = asyncio.Queue()

        self.reset_user_activity = AsyncMock()
        self.start_trigger_loop = AsyncMock()
        self.set_bubble_visible = AsyncMock()
        self.record_user_interaction = AsyncMock()
        self.record_bubble_dismissed = AsyncMock()
        self.get_snooze_status = AsyncMock(side_effect=lambda: self.snoozed_until)
        self.snooze_triggers = AsyncMock(side_effect=self._snooze)
        self.unsnooze_triggers = AsyncMock(side_effect=self._unsnooze)
        self.get_trigger_stats = AsyncMock(side_effect=lambda: self.trigger_stats)
        self.add_to_allowlist = AsyncMock(side_effect=self._add)
        self.remove_from_allowlist = AsyncMock(side_effect=self._remove)
        self.close = AsyncMock()

    def _snooze(self, duration, until):
        self.snoozed_until = until

    def _unsnooze(self):
        self.snoozed_until = None

    def _add(self, app_name):
        allowlist = [*self.trigger_stats.allowlist, app_name]
        self.trigger_stats = self.trigger_stats.model_copy(update={"allowlist": allowlist})

    def _remove(self, app_name):
        allowlist = [a for a in self.trigger_stats.allowlist if a != app_name]
        self.trigger_stats = self.trigger_stats.model_copy(update={"allowlist": allowlist})

    async def stream_events(self):
        while True:
            item = await self.events.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item


def make_context_payload(context_id: str = "ctx-1", app: str = "Cursor", **overrides) -> dict:
    payload = {
        "id": context_id,
        "app": {"name": app, "bundle_id": app.lower(), "window_title": f"{app} - main.py"},
        "clipboard": None,
        "idle_seconds": 14.2,
        "timestamp": 1_700_000_000,
        "capture_duration_ms": 12,
    }
    payload.update(overrides)
    return payload


async def wait_for(predicate, timeout: float = 1.0) -> None:
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock(start=1000.0)


@pytest.fixture
def wall_clock():
    # 2023-11-14 22:13:20 UTC
    return FakeClock(start=1_700_000_000.0)
