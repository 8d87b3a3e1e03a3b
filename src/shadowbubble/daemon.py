"""
BubbleDaemon - wires the orchestration components onto one event loop.

Coordinates:
- BackendStreamAdapter (pushed backend events → EventBus)
- TriggerCoordinator (trigger policy, bubble session)
- SnoozeManager (global suppression, polled)
- TriggerStatsMonitor (backend counters, polled)
- ActivityMonitor (idle-timer pulses)

The UI shell owns rendering. It registers listeners on the coordinator and
forwards input, cursor and disposition events to the daemon.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from shadowbubble.activity import ActivityMonitor
from shadowbubble.backend import BackendClient, HttpBackendClient
from shadowbubble.bus import BackendStreamAdapter, EventBus, get_event_bus
from shadowbubble.config import Settings, get_settings
from shadowbubble.coordinator import TriggerCoordinator
from shadowbubble.models import (
    ActionType,
    ActivityCategory,
    PlacementStrategy,
    Point,
    Position,
    PreferredSide,
    Size,
    SnoozeDuration,
    SnoozeStatus,
)
from shadowbubble.placement import BubblePlacer, compute_position
from shadowbubble.snooze import SnoozeManager
from shadowbubble.stats import TriggerStatsMonitor

logger = logging.getLogger(__name__)


class BubbleDaemon:
    """
    Owns one instance of every component and their shared scheduler.

    Lifecycle:
    1. start() - start the backend trigger loop, subscribe, begin polling
    2. (triggers fire) - coordinator shows / suppresses bubbles
    3. stop() - unsubscribe, stop polling, close the backend client
    """

    def __init__(
        self,
        settings: Settings | None = None,
        backend: BackendClient | None = None,
        scheduler: AsyncIOScheduler | None = None,
        bus: EventBus | None = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend or HttpBackendClient(self.settings)
        self.bus = bus or get_event_bus()

        self._own_scheduler = scheduler is None
        self.scheduler = scheduler or AsyncIOScheduler()

        self.screen = Size(self.settings.screen_width, self.settings.screen_height)
        self.placer = BubblePlacer(
            overlay=Size(self.settings.bubble_width, self.settings.bubble_height),
            screen=self.screen,
            margin=self.settings.bubble_margin,
            strategy=PlacementStrategy.NEAR_CURSOR,
            preferred_side=PreferredSide(self.settings.preferred_side),
        )
        self.activity = ActivityMonitor.from_settings(self.backend, self.settings)
        self.snooze = SnoozeManager(
            self.backend, self.scheduler, poll_seconds=self.settings.snooze_poll_seconds
        )
        self.stats = TriggerStatsMonitor(
            self.backend, self.scheduler, poll_seconds=self.settings.stats_poll_seconds
        )
        self.coordinator = TriggerCoordinator(
            self.backend,
            self.snooze,
            self.placer,
            dedup_window=self.settings.dedup_window_seconds,
        )
        self.stream = BackendStreamAdapter(self.backend)

        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            logger.warning("Daemon already started")
            return

        logger.info("Starting BubbleDaemon...")

        if self.settings.auto_start_loop:
            try:
                await self.backend.start_trigger_loop()
                logger.info("✅ Trigger loop started")
            except Exception as e:
                logger.error("❌ Failed to start trigger loop: %s", e)

        self.coordinator.attach(self.bus)
        self.coordinator.start()

        await self.snooze.start()
        await self.stats.start()
        if self._own_scheduler and not self.scheduler.running:
            self.scheduler.start()

        await self.stream.start(self.bus)

        self._started = True
        logger.info("BubbleDaemon started")

    async def stop(self) -> None:
        if not self._started:
            return

        logger.info("Stopping BubbleDaemon...")

        await self.stream.stop()
        await self.coordinator.stop()
        self.stats.stop()
        self.snooze.stop()
        await self.activity.stop()
        if self._own_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.backend.close()

        self._started = False
        logger.info("BubbleDaemon stopped")

    async def resubscribe(self) -> bool:
        """Re-open the backend event stream after it was lost.

        Returns:
            True if a new subscription was started.
        """
        if not self._started or self.stream.running:
            return False
        await self.stream.start(self.bus)
        return True

    # ==================== UI shell input ====================

    def on_input(self, event_name: str) -> bool:
        """Forward a raw keyboard / pointer / scroll UI event."""
        return self.activity.notify_event(event_name)

    def on_pointer_move(self, x: int, y: int) -> bool:
        """Track the cursor for placement and report pointer activity."""
        self.placer.track_cursor(Point(x, y))
        return self.activity.notify(ActivityCategory.POINTER)

    async def dismiss(self) -> bool:
        return await self.coordinator.dismiss()

    async def act_upon(self, action: ActionType | None = None) -> bool:
        return await self.coordinator.act_upon(action)

    async def snooze_for(self, duration: SnoozeDuration) -> SnoozeStatus:
        return await self.snooze.snooze(duration)

    async def unsnooze(self) -> SnoozeStatus:
        return await self.snooze.unsnooze()

    # ==================== Panel placement ====================

    def dock_position(self, near_cursor: bool = True) -> Position:
        """Where to put the larger docked panel."""
        overlay = Size(self.settings.dock_width, self.settings.dock_height)
        if near_cursor:
            return compute_position(
                self.placer.last_cursor,
                overlay,
                self.settings.bubble_margin,
                PlacementStrategy.DOCK_NEAR_CURSOR,
                self.screen,
            )
        return compute_position(
            None, overlay, self.settings.bubble_margin, PlacementStrategy.CORNER_SNAP, self.screen
        )


# Singleton pattern
_daemon: BubbleDaemon | None = None


def get_daemon(
    settings: Settings | None = None,
    backend: BackendClient | None = None,
    scheduler: AsyncIOScheduler | None = None,
) -> BubbleDaemon:
    """
    Get singleton BubbleDaemon instance.

    Args:
        settings: Optional settings (only used on first call)
        backend: Optional backend client (only used on first call)
        scheduler: Optional shared scheduler (only used on first call)
    """
    global _daemon
    if _daemon is None:
        _daemon = BubbleDaemon(settings=settings, backend=backend, scheduler=scheduler)
    return _daemon


def reset_daemon() -> None:
    """Reset the daemon singleton (for testing)."""
    global _daemon
    _daemon = None
