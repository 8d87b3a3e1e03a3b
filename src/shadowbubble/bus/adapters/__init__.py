"""
Backend stream adapter: pumps the backend's pushed events onto the bus.
"""

import asyncio
import contextlib
import logging

from shadowbubble.backend.protocol import BackendClient
from shadowbubble.bus.events import SUBSCRIPTION_LOST, BackendEvent, SystemEvent
from shadowbubble.bus.queue import EventBus

logger = logging.getLogger(__name__)


class BackendStreamAdapter:
    """Holds the one active subscription to the backend event stream.

    When the stream ends or fails, a ``subscription-lost`` system event is
    published and the adapter stops. It never reconnects on its own; the
    owner decides whether to call ``start()`` again.
    """

    def __init__(self, client: BackendClient):
        self._client = client
        self._bus: EventBus | None = None
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, bus: EventBus) -> None:
        if self._running:
            logger.warning("Backend stream adapter already running")
            return
        self._bus = bus
        self._running = True
        self._task = asyncio.create_task(self._pump())
        logger.info("Subscribed to backend event stream")

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def _pump(self) -> None:
        assert self._bus is not None
        reason = "stream closed by backend"
        try:
            async for raw in self._client.stream_events():
                await self._bus.publish(BackendEvent(event=raw["event"], payload=raw.get("payload")))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Backend event stream failed: %s", e)
            reason = str(e)

        self._running = False
        logger.warning("Backend event subscription lost (%s)", reason)
        await self._bus.publish_system(SystemEvent(event_type=SUBSCRIPTION_LOST, data={"reason": reason}))
