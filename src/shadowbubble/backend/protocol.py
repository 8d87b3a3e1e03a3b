"""Backend Protocol: the calls this library makes to the assistant backend.

Everything the UI layer needs from the backend goes through this interface so
components can be driven by the real HTTP client or by a test double.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from shadowbubble.models import ActivityCategory, SnoozeDuration, TriggerStats


class BackendError(Exception):
    """A backend call failed."""


class BackendUnavailableError(BackendError):
    """The backend could not be reached (connection refused, timeout, ...)."""


class BackendResponseError(BackendError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"Backend responded with HTTP {status_code}")


@runtime_checkable
class BackendClient(Protocol):
    """Protocol implemented by backend clients."""

    async def reset_user_activity(self, category: ActivityCategory) -> None: ...

    async def start_trigger_loop(self) -> None: ...

    async def set_bubble_visible(self, visible: bool) -> None: ...

    async def record_user_interaction(self) -> None: ...

    async def record_bubble_dismissed(self) -> None: ...

    async def get_snooze_status(self) -> float | None: ...

    async def snooze_triggers(self, duration: SnoozeDuration, until: int) -> None: ...

    async def unsnooze_triggers(self) -> None: ...

    async def get_trigger_stats(self) -> TriggerStats: ...

    async def add_to_allowlist(self, app_name: str) -> None: ...

    async def remove_from_allowlist(self, app_name: str) -> None: ...

    def stream_events(self) -> AsyncIterator[dict[str, Any]]: ...

    async def close(self) -> None: ...
