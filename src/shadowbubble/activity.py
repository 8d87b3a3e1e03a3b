"""Activity Monitor: throttled "user is still here" pulses to the backend.

Local input notifications are grouped into keyboard, pointer and scroll
categories. Each category reports at most once per throttle window; the
report itself is fire-and-forget.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from shadowbubble.backend.protocol import BackendClient
from shadowbubble.config import Settings
from shadowbubble.models import ActivityCategory

logger = logging.getLogger(__name__)

DEFAULT_THROTTLE_MS = {
    ActivityCategory.KEYBOARD: 500,
    ActivityCategory.POINTER: 300,
    ActivityCategory.SCROLL: 300,
}

# UI event name -> category
EVENT_CATEGORIES = {
    "keydown": ActivityCategory.KEYBOARD,
    "keyup": ActivityCategory.KEYBOARD,
    "mousedown": ActivityCategory.POINTER,
    "mousemove": ActivityCategory.POINTER,
    "click": ActivityCategory.POINTER,
    "contextmenu": ActivityCategory.POINTER,
    "touchstart": ActivityCategory.POINTER,
    "touchmove": ActivityCategory.POINTER,
    "scroll": ActivityCategory.SCROLL,
    "wheel": ActivityCategory.SCROLL,
}


def categorize(event_name: str) -> ActivityCategory | None:
    return EVENT_CATEGORIES.get(event_name.lower())


class ActivityMonitor:
    """Reports user activity to the backend idle tracker."""

    def __init__(
        self,
        backend: BackendClient,
        throttle_ms: dict[ActivityCategory, int] | None = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend
        self._throttle_ms = {**DEFAULT_THROTTLE_MS, **(throttle_ms or {})}
        self._clock = clock
        self._last_report: dict[ActivityCategory, float] = {}
        self._pending: set[asyncio.Task] = set()
        self.enabled = enabled

    @classmethod
    def from_settings(cls, backend: BackendClient, settings: Settings) -> "ActivityMonitor":
        return cls(
            backend,
            throttle_ms={
                ActivityCategory.KEYBOARD: settings.keyboard_throttle_ms,
                ActivityCategory.POINTER: settings.pointer_throttle_ms,
                ActivityCategory.SCROLL: settings.scroll_throttle_ms,
            },
            enabled=settings.activity_detection,
        )

    @property
    def pending_reports(self) -> int:
        return len(self._pending)

    def notify_event(self, event_name: str) -> bool:
        """Handle a raw UI input event by name. Unknown names are ignored."""
        category = categorize(event_name)
        if category is None:
            logger.debug("Ignoring unknown input event: %s", event_name)
            return False
        return self.notify(category)

    def notify(self, category: ActivityCategory) -> bool:
        """Handle one input notification.

        Returns:
            True if a report was issued, False if it was throttled or the
            monitor is disabled.
        """
        if not self.enabled:
            return False

        now = self._clock()
        last = self._last_report.get(category)
        if last is not None and (now - last) * 1000 < self._throttle_ms[category]:
            return False

        self._last_report[category] = now
        task = asyncio.create_task(self._report(category))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _report(self, category: ActivityCategory) -> None:
        try:
            await self._backend.reset_user_activity(category)
        except Exception as e:
            logger.warning("Failed to reset user activity (%s): %s", category.value, e)

    async def flush(self) -> None:
        """Wait for in-flight reports to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel in-flight reports."""
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()
