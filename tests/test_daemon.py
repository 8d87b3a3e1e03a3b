"""
Tests for the BubbleDaemon wiring.
"""

import logging

import pytest

from conftest import FakeBackend, make_context_payload, wait_for
from shadowbubble.backend import BackendUnavailableError
from shadowbubble.bus import EventBus, get_event_bus, reset_event_bus
from shadowbubble.config import Settings
from shadowbubble.coordinator import CoordinatorState
from shadowbubble.daemon import BubbleDaemon, get_daemon, reset_daemon
from shadowbubble.models import ActivityCategory, Point, Position, SnoozeDuration


@pytest.fixture(autouse=True)
def _fresh_bus():
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def settings():
    return Settings(screen_width=1920, screen_height=1080, preferred_side="right")


@pytest.fixture
async def daemon(settings, backend):
    d = BubbleDaemon(settings=settings, backend=backend)
    yield d
    await d.stop()


class TestLifecycle:
    """Test start / stop wiring."""

    async def test_start(self, daemon, backend):
        await daemon.start()

        assert daemon.is_running is True
        assert daemon.coordinator.is_running is True
        assert daemon.snooze.is_running is True
        assert daemon.stream.running is True
        assert daemon.scheduler.running is True
        backend.start_trigger_loop.assert_awaited_once()
        backend.get_snooze_status.assert_awaited_once()
        backend.get_trigger_stats.assert_awaited_once()

    async def test_start_survives_trigger_loop_failure(self, daemon, backend, caplog):
        backend.start_trigger_loop.side_effect = BackendUnavailableError("down")

        with caplog.at_level(logging.ERROR, logger="shadowbubble.daemon"):
            await daemon.start()

        assert daemon.is_running is True
        assert "Failed to start trigger loop" in caplog.text

    async def test_auto_start_loop_disabled(self, backend):
        d = BubbleDaemon(settings=Settings(auto_start_loop=False), backend=backend)
        await d.start()
        await d.stop()

        backend.start_trigger_loop.assert_not_called()

    async def test_stop(self, daemon, backend):
        await daemon.start()
        await daemon.stop()

        assert daemon.is_running is False
        assert daemon.stream.running is False
        assert daemon.coordinator.is_running is False
        assert daemon.scheduler.get_job("snooze_status_poll") is None
        backend.close.assert_awaited_once()

    async def test_double_start_warns(self, daemon, caplog):
        await daemon.start()

        with caplog.at_level(logging.WARNING, logger="shadowbubble.daemon"):
            await daemon.start()

        assert "already started" in caplog.text


class TestEndToEnd:
    async def test_pushed_trigger_becomes_bubble(self, daemon, backend):
        shown = []
        daemon.coordinator.on_bubble(lambda session: shown.append(session))
        daemon.on_pointer_move(1900, 100)
        await daemon.start()

        await backend.events.put({"event": "trigger-fired", "payload": make_context_payload()})
        await wait_for(lambda: shown)

        assert shown[0].position == Position(1576, 124)
        assert daemon.coordinator.state is CoordinatorState.SHOWN

        assert await daemon.dismiss() is True
        backend.record_bubble_dismissed.assert_awaited_once()

    async def test_snoozed_trigger_not_shown(self, daemon, backend):
        await daemon.start()
        status = await daemon.snooze_for(SnoozeDuration.THIRTY_MINUTES)
        assert status.is_snoozed is True

        await backend.events.put({"event": "trigger-fired", "payload": make_context_payload()})
        await wait_for(lambda: daemon.coordinator.history)
        await daemon.coordinator.drain()

        assert daemon.coordinator.session is None

        status = await daemon.unsnooze()
        assert status.is_snoozed is False

    async def test_resubscribe_after_loss(self, daemon, backend):
        await daemon.start()
        assert await daemon.resubscribe() is False

        await backend.events.put(None)
        await wait_for(lambda: not daemon.stream.running)

        assert await daemon.resubscribe() is True

        await backend.events.put({"event": "trigger-fired", "payload": make_context_payload()})
        await wait_for(lambda: daemon.coordinator.session is not None)

    async def test_act_upon(self, daemon, backend):
        await daemon.start()
        await backend.events.put({"event": "trigger-fired", "payload": make_context_payload()})
        await wait_for(lambda: daemon.coordinator.session is not None)

        assert await daemon.act_upon() is True
        backend.record_user_interaction.assert_awaited_once()


class TestInput:
    async def test_on_pointer_move(self, daemon, backend):
        assert daemon.on_pointer_move(640, 480) is True
        await daemon.activity.flush()

        assert daemon.placer.last_cursor == Point(640, 480)
        backend.reset_user_activity.assert_awaited_once_with(ActivityCategory.POINTER)

    async def test_on_input(self, daemon, backend):
        assert daemon.on_input("keydown") is True
        assert daemon.on_input("resize") is False
        await daemon.activity.flush()

        backend.reset_user_activity.assert_awaited_once_with(ActivityCategory.KEYBOARD)


class TestDockPosition:
    async def test_near_cursor(self, daemon):
        daemon.on_pointer_move(500, 500)

        assert daemon.dock_position() == Position(524, 180)

    async def test_corner(self, daemon):
        assert daemon.dock_position(near_cursor=False) == Position(1476, 416)


class TestSingleton:
    async def test_get_daemon(self, settings):
        reset_daemon()
        try:
            d = get_daemon(settings=settings, backend=FakeBackend())
            assert get_daemon() is d
        finally:
            reset_daemon()

    async def test_daemon_uses_shared_bus(self, settings, backend):
        d = BubbleDaemon(settings=settings, backend=backend)
        try:
            assert d.bus is get_event_bus()
        finally:
            await d.stop()

    async def test_explicit_bus_wins(self, settings, backend):
        bus = EventBus()
        d = BubbleDaemon(settings=settings, backend=backend, bus=bus)
        try:
            assert d.bus is bus
            assert d.bus is not get_event_bus()
        finally:
            await d.stop()
