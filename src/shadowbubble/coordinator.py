"""Trigger Coordinator: decides whether a backend trigger becomes a bubble.

Per trigger cycle:

    Idle → Received → {Suppressed | Accepted} → Shown → {Dismissed | ActedUpon} → Idle

Triggers are queued in an inbox and handled one at a time, in arrival order.
A trigger is suppressed while a snooze is active or when it arrives less
than ``dedup_window`` seconds after the last shown bubble. At most one
bubble session exists; a newly accepted trigger replaces the current one
without going through its dismissal path.
"""

import asyncio
import contextlib
import inspect
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import ValidationError

from shadowbubble.backend.protocol import BackendClient
from shadowbubble.bus.events import SUBSCRIPTION_LOST, TRIGGER_FIRED, BackendEvent, SystemEvent
from shadowbubble.bus.queue import EventBus, Subscription
from shadowbubble.models import (
    ActionType,
    BubbleSession,
    Context,
    Disposition,
    PlacementStrategy,
    Position,
    TriggerOutcome,
)
from shadowbubble.placement import BubblePlacer
from shadowbubble.snooze import SnoozeManager

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = 30.0
MAX_HISTORY = 100

BubbleListener = Callable[[BubbleSession], Awaitable[None] | None]
DispositionListener = Callable[[BubbleSession, Disposition, ActionType | None], Awaitable[None] | None]


class CoordinatorState(str, Enum):
    IDLE = "idle"
    RECEIVED = "received"
    SUPPRESSED = "suppressed"
    ACCEPTED = "accepted"
    SHOWN = "shown"
    DISMISSED = "dismissed"
    ACTED_UPON = "acted_upon"


@dataclass(frozen=True)
class StateTransition:
    from_state: CoordinatorState
    to_state: CoordinatorState
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class TriggerCoordinator:
    """Owns the bubble session slot and the last-shown timestamp.

    Nothing else writes either of them; the snooze manager is only read.
    """

    def __init__(
        self,
        backend: BackendClient,
        snooze: SnoozeManager,
        placer: BubblePlacer,
        dedup_window: float = DEFAULT_DEDUP_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        if placer.strategy is not PlacementStrategy.NEAR_CURSOR:
            raise ValueError("Interrupt bubbles must use the near-cursor strategy")

        self._backend = backend
        self._snooze = snooze
        self._placer = placer
        self._dedup_window = dedup_window
        self._clock = clock

        self._session: BubbleSession | None = None
        self._last_shown_at: float | None = None
        self._state = CoordinatorState.IDLE
        self._history: deque[StateTransition] = deque(maxlen=MAX_HISTORY)

        self._inbox: asyncio.Queue[Context] = asyncio.Queue()
        self._consumer: asyncio.Task | None = None
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task] = set()

        self._bubble_listeners: list[BubbleListener] = []
        self._disposition_listeners: list[DispositionListener] = []

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def session(self) -> BubbleSession | None:
        return self._session

    @property
    def last_shown_at(self) -> float | None:
        return self._last_shown_at

    @property
    def history(self) -> list[StateTransition]:
        return list(self._history)

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def explain(self) -> str:
        """One-line human explanation of the current state."""
        if self._session is not None:
            return f"Showing a suggestion for {self._session.context.app.name}"
        if self._snooze.is_snoozed:
            minutes = self._snooze.status.remaining_minutes
            return f"Snoozed ({minutes} min remaining)"
        remaining = self._dedup_remaining()
        if remaining > 0:
            return f"Waiting {remaining:.0f}s before the next suggestion"
        return "Watching for suggestions"

    # =========================================================================
    # Listeners
    # =========================================================================

    def on_bubble(self, listener: BubbleListener) -> None:
        """Register a callback that renders a newly shown bubble."""
        self._bubble_listeners.append(listener)

    def on_disposition(self, listener: DispositionListener) -> None:
        """Register a callback for dismissed / acted-upon outcomes."""
        self._disposition_listeners.append(listener)

    async def _notify(self, listeners: list[Callable[..., Any]], *args: Any) -> None:
        for listener in list(listeners):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Bubble listener error: %s", e)

    # =========================================================================
    # Bus wiring and inbox
    # =========================================================================

    def attach(self, bus: EventBus) -> None:
        """Subscribe to trigger events and stream lifecycle on ``bus``."""
        if self._subscriptions:
            logger.warning("TriggerCoordinator already attached")
            return
        self._subscriptions = [
            bus.subscribe(TRIGGER_FIRED, self._on_trigger_event),
            bus.subscribe_system(self._on_system_event),
        ]

    def detach(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions = []

    async def _on_trigger_event(self, event: BackendEvent) -> None:
        try:
            context = Context.model_validate(event.payload)
        except ValidationError as e:
            logger.warning("Dropping malformed trigger payload: %s", e)
            return
        await self._inbox.put(context)

    async def _on_system_event(self, event: SystemEvent) -> None:
        if event.event_type == SUBSCRIPTION_LOST:
            self.reset(reason=f"subscription lost: {event.data.get('reason', 'unknown')}")

    def start(self) -> None:
        """Start consuming the inbox."""
        if self.is_running:
            logger.warning("TriggerCoordinator already running")
            return
        self._consumer = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        self.detach()
        if self._consumer and not self._consumer.done():
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
        self._consumer = None
        await self.flush()

    async def _consume(self) -> None:
        while True:
            context = await self._inbox.get()
            try:
                await self.handle_trigger(context)
            except Exception as e:
                logger.exception("Error handling trigger %s: %s", context.id, e)
            finally:
                self._inbox.task_done()

    async def drain(self) -> None:
        """Wait until every queued trigger has been handled."""
        await self._inbox.join()

    async def flush(self) -> None:
        """Wait for in-flight best-effort backend calls."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def reset(self, reason: str = "reset") -> None:
        """Drop any session and queued triggers without backend calls."""
        dropped = 0
        while not self._inbox.empty():
            self._inbox.get_nowait()
            self._inbox.task_done()
            dropped += 1
        if dropped:
            logger.info("Discarded %d queued trigger(s)", dropped)

        if self._session is not None:
            self._session.visible = False
            self._session = None
            self._placer.hide()
        self._transition(CoordinatorState.IDLE, reason)

    # =========================================================================
    # Trigger cycle
    # =========================================================================

    def _transition(self, to_state: CoordinatorState, reason: str) -> None:
        self._history.append(StateTransition(self._state, to_state, reason))
        logger.debug("Trigger state %s → %s (%s)", self._state.value, to_state.value, reason)
        self._state = to_state

    def _resting_state(self) -> CoordinatorState:
        return CoordinatorState.SHOWN if self._session is not None else CoordinatorState.IDLE

    def _dedup_remaining(self) -> float:
        if self._last_shown_at is None:
            return 0.0
        return max(0.0, self._dedup_window - (self._clock() - self._last_shown_at))

    async def handle_trigger(self, context: Context) -> TriggerOutcome:
        """Run one trigger through snooze and dedup policy and show it if accepted."""
        self._transition(CoordinatorState.RECEIVED, f"trigger from {context.app.name}")

        if self._snooze.is_snoozed:
            return self._suppress(TriggerOutcome.SUPPRESSED_SNOOZED, "snoozed")

        remaining = self._dedup_remaining()
        if remaining > 0:
            return self._suppress(
                TriggerOutcome.SUPPRESSED_DEDUP, f"dedup window ({remaining:.1f}s remaining)"
            )

        self._transition(CoordinatorState.ACCEPTED, f"accepted {context.id}")

        previous = self._session
        if previous is not None:
            # The replaced session's visibility call is not retracted; the
            # backend flag may read true for it until our own call lands.
            logger.warning(
                "Superseding bubble %s with %s without recording a disposition",
                previous.context.id,
                context.id,
            )
            previous.visible = False
            self._placer.hide()

        now = self._clock()
        position = self._placer.show()
        session = BubbleSession(context=context, position=position, created_at=now)
        self._session = session
        self._last_shown_at = now
        self._transition(CoordinatorState.SHOWN, f"bubble at ({position.x}, {position.y})")
        logger.info("🔔 Trigger shown for '%s'", context.app.name)

        self._spawn("show bubble", self._backend.set_bubble_visible, True)
        await self._notify(self._bubble_listeners, session)
        return TriggerOutcome.SHOWN

    def _suppress(self, outcome: TriggerOutcome, reason: str) -> TriggerOutcome:
        self._transition(CoordinatorState.SUPPRESSED, reason)
        logger.debug("🚫 Trigger suppressed: %s", reason)
        self._transition(self._resting_state(), "suppressed trigger dropped")
        return outcome

    async def dismiss(self) -> bool:
        """The user closed the bubble without acting on it."""
        session = self._close(CoordinatorState.DISMISSED, "dismissed by user")
        if session is None:
            return False
        await self._retract_visibility()
        await self._best_effort("record dismissal", self._backend.record_bubble_dismissed)
        await self._notify(self._disposition_listeners, session, Disposition.DISMISSED, None)
        return True

    async def act_upon(self, action: ActionType | None = None) -> bool:
        """The user interacted meaningfully with the bubble's content."""
        label = action.display_name if action else "interaction"
        session = self._close(CoordinatorState.ACTED_UPON, f"acted upon ({label})")
        if session is None:
            return False
        await self._retract_visibility()
        await self._best_effort("record interaction", self._backend.record_user_interaction)
        await self._notify(self._disposition_listeners, session, Disposition.ACTED_UPON, action)
        return True

    def _close(self, disposition_state: CoordinatorState, reason: str) -> BubbleSession | None:
        session = self._session
        if session is None:
            logger.debug("No active bubble to close (%s)", reason)
            return None
        self._session = None
        session.visible = False
        self._placer.hide()
        self._transition(disposition_state, reason)
        self._transition(CoordinatorState.IDLE, "locked until dedup window elapses")
        return session

    def reposition(self) -> Position | None:
        """Move the visible bubble next to the current cursor."""
        if self._session is None:
            return None
        position = self._placer.reposition()
        if position is not None:
            self._session.position = position
        return position

    # =========================================================================
    # Best-effort backend calls
    # =========================================================================

    async def _best_effort(self, what: str, call: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await call(*args)
        except Exception as e:
            logger.warning("Failed to %s: %s", what, e)

    async def _retract_visibility(self) -> None:
        """Clear the backend visibility flag for a just-closed bubble.

        Waits for a pending show call first so the hide cannot land before it,
        and skips the hide when a newer bubble went up in the meantime.
        """
        await self.flush()
        if self._session is not None:
            logger.debug("Bubble %s is live, not hiding", self._session.context.id)
            return
        await self._best_effort("hide bubble", self._backend.set_bubble_visible, False)

    def _spawn(self, what: str, call: Callable[..., Awaitable[None]], *args: Any) -> None:
        task = asyncio.create_task(self._best_effort(what, call, *args))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
