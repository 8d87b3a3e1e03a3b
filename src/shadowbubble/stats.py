"""Trigger stats monitor: cached, read-only view of backend trigger counters.

Also forwards allowlist edits. Reads that fail keep the previous value.
"""

import logging

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from shadowbubble.backend.protocol import BackendClient
from shadowbubble.models import TriggerStats

logger = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS = 300


class TriggerStatsMonitor:
    def __init__(
        self,
        backend: BackendClient,
        scheduler: AsyncIOScheduler | None = None,
        poll_seconds: int = DEFAULT_POLL_SECONDS,
    ):
        self._backend = backend
        self._scheduler = scheduler or AsyncIOScheduler()
        self._owns_scheduler = scheduler is None
        self._poll_seconds = poll_seconds
        self._stats: TriggerStats | None = None
        self._running = False
        self._job_id = "trigger_stats_poll"

    @property
    def stats(self) -> TriggerStats | None:
        return self._stats

    def is_allowlisted(self, app_name: str) -> bool:
        if self._stats is None:
            return False
        return app_name in self._stats.allowlist

    async def start(self) -> None:
        if self._running:
            logger.warning("TriggerStatsMonitor already running")
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

    async def refresh(self) -> TriggerStats | None:
        try:
            self._stats = await self._backend.get_trigger_stats()
        except Exception as e:
            logger.error("Failed to fetch trigger stats: %s", e)
        return self._stats

    async def add_to_allowlist(self, app_name: str) -> TriggerStats | None:
        await self._backend.add_to_allowlist(app_name)
        logger.info("➕ Added '%s' to allowlist", app_name)
        return await self.refresh()

    async def remove_from_allowlist(self, app_name: str) -> TriggerStats | None:
        await self._backend.remove_from_allowlist(app_name)
        logger.info("➖ Removed '%s' from allowlist", app_name)
        return await self.refresh()
