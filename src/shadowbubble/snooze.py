"""Snooze Manager.

Tracks the single global suppression deadline. The backend owns the
persisted deadline; this manager polls it every 30 seconds (APScheduler
interval job) and recomputes ``SnoozeStatus`` against wall-clock time. It
never extrapolates between polls, so ``remaining_minutes`` may lag by up to
one poll interval.
"""

import logging
import time
from collections.abc import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from shadowbubble.backend.protocol import BackendClient
from shadowbubble.models import SnoozeDuration, SnoozeStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS = 30


class SnoozeManager:
    """Global snooze state, synchronized with the backend.

    States are ``Active`` (``is_snoozed`` False) and ``Suppressed(until)``.
    Writes go to the backend first; local status only changes through a
    subsequent ``refresh()``.
    """

    def __init__(
        self,
        backend: BackendClient,
        scheduler: AsyncIOScheduler | None = None,
        poll_seconds: int = DEFAULT_POLL_SECONDS,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._backend = backend
        self._scheduler = scheduler or AsyncIOScheduler()
        self._owns_scheduler = scheduler is None
        self._poll_seconds = poll_seconds
        self._wall_clock = wall_clock
        self._status = SnoozeStatus()
        self._running = False
        self._job_id = "snooze_status_poll"

    @property
    def status(self) -> SnoozeStatus:
        return self._status

    @property
    def is_snoozed(self) -> bool:
        return self._status.is_snoozed

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Fetch the current status and start polling."""
        if self._running:
            logger.warning("SnoozeManager already running")
            return

        await self.refresh()

        self._scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=self._poll_seconds),
            id=self._job_id,
            replace_existing=True,
        )
        if self._owns_scheduler and not self._scheduler.running:
            self._scheduler.start()

        self._running = True
        logger.info("SnoozeManager started (poll: %ss)", self._poll_seconds)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        try:
            self._scheduler.remove_job(self._job_id)
        except JobLookupError:
            pass

        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        logger.info("SnoozeManager stopped")

    async def refresh(self) -> SnoozeStatus:
        """Re-read the backend deadline.

        On failure the previous status is kept so callers see stale but
        valid data.
        """
        try:
            snoozed_until = await self._backend.get_snooze_status()
        except Exception as e:
            logger.error("Failed to fetch snooze status: %s", e)
            return self._status

        self._status = SnoozeStatus.compute(snoozed_until, self._wall_clock())
        return self._status

    async def snooze(self, duration: SnoozeDuration) -> SnoozeStatus:
        """Suppress all triggers for ``duration``.

        Raises:
            Whatever the backend raised; local status is left untouched.
        """
        until = duration.deadline(self._wall_clock())
        try:
            await self._backend.snooze_triggers(duration, until)
        except Exception as e:
            logger.error("Failed to snooze: %s", e)
            raise
        logger.info("😴 Snoozed for %s (until %d)", duration.label, until)
        return await self.refresh()

    async def unsnooze(self) -> SnoozeStatus:
        """Cancel the current snooze.

        Raises:
            Whatever the backend raised; local status is left untouched.
        """
        try:
            await self._backend.unsnooze_triggers()
        except Exception as e:
            logger.error("Failed to unsnooze: %s", e)
            raise
        logger.info("⏰ Snooze cancelled")
        return await self.refresh()
