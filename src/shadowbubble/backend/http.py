"""HTTP backend client.

Talks to the assistant backend's REST API. Pushed events arrive on a
long-lived NDJSON stream, one ``{"event": ..., "payload": ...}`` object per line.

API (relative to ``backend_url``):
  POST   /activity/reset              body: {activity_type}
  POST   /triggers/start
  POST   /bubble/visible              body: {visible}
  POST   /triggers/interaction
  POST   /triggers/dismissed
  GET    /snooze                      → {snoozed_until}
  POST   /snooze                      body: {duration, until}
  DELETE /snooze
  GET    /triggers/stats              → TriggerStats
  POST   /triggers/allowlist/{name}
  DELETE /triggers/allowlist/{name}
  GET    /events                      → NDJSON stream
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from shadowbubble.backend.protocol import (
    BackendError,
    BackendResponseError,
    BackendUnavailableError,
)
from shadowbubble.config import Settings
from shadowbubble.models import ActivityCategory, SnoozeDuration, TriggerStats

logger = logging.getLogger(__name__)


class HttpBackendClient:
    """REST + NDJSON client for the assistant backend."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._base_url = settings.backend_url.rstrip("/")
        self._timeout = settings.request_timeout
        self._client = client
        logger.info("Backend client targeting %s", self._base_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._get_client().request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendResponseError(e.response.status_code, f"{method} {path}: {e}") from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"{method} {path}: {e}") from e
        return resp

    # ── Writes ──────────────────────────────────────────────────────────────

    async def reset_user_activity(self, category: ActivityCategory) -> None:
        await self._request("POST", "/activity/reset", json={"activity_type": category.value})

    async def start_trigger_loop(self) -> None:
        await self._request("POST", "/triggers/start")

    async def set_bubble_visible(self, visible: bool) -> None:
        await self._request("POST", "/bubble/visible", json={"visible": visible})

    async def record_user_interaction(self) -> None:
        await self._request("POST", "/triggers/interaction")

    async def record_bubble_dismissed(self) -> None:
        await self._request("POST", "/triggers/dismissed")

    async def snooze_triggers(self, duration: SnoozeDuration, until: int) -> None:
        await self._request("POST", "/snooze", json={"duration": duration.value, "until": until})

    async def unsnooze_triggers(self) -> None:
        await self._request("DELETE", "/snooze")

    async def add_to_allowlist(self, app_name: str) -> None:
        await self._request("POST", f"/triggers/allowlist/{quote(app_name, safe='')}")

    async def remove_from_allowlist(self, app_name: str) -> None:
        await self._request("DELETE", f"/triggers/allowlist/{quote(app_name, safe='')}")

    # ── Reads ───────────────────────────────────────────────────────────────

    async def get_snooze_status(self) -> float | None:
        resp = await self._request("GET", "/snooze")
        data = resp.json()
        value = data.get("snoozed_until") if isinstance(data, dict) else data
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise BackendError(f"Invalid snooze deadline: {value!r}") from e

    async def get_trigger_stats(self) -> TriggerStats:
        resp = await self._request("GET", "/triggers/stats")
        try:
            return TriggerStats.model_validate(resp.json())
        except ValueError as e:
            raise BackendError(f"Invalid trigger stats payload: {e}") from e

    # ── Event stream ────────────────────────────────────────────────────────

    async def stream_events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield pushed events until the stream ends.

        Raises:
            BackendUnavailableError: the stream could not be opened or broke.
        """
        client = self._get_client()
        try:
            async with client.stream("GET", "/events", timeout=None) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed event line: %s", line[:200])
                        continue
                    if not isinstance(event, dict) or "event" not in event:
                        logger.warning("Skipping event without a name: %s", line[:200])
                        continue
                    yield event
        except httpx.HTTPStatusError as e:
            raise BackendResponseError(e.response.status_code, f"GET /events: {e}") from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"GET /events: {e}") from e

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
