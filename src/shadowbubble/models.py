"""Shared data types for the trigger orchestration layer.

Wire payloads coming from the backend (``Context``, ``TriggerStats``) are
pydantic models so malformed JSON is rejected at the boundary. Everything the
library builds itself is a plain dataclass.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── Wire models ─────────────────────────────────────────────────────────────


class AppInfo(BaseModel):
    """Foreground application descriptor captured with a Context."""

    model_config = ConfigDict(frozen=True)

    name: str
    bundle_id: str = ""
    window_title: str = ""
    pid: int | None = None
    timestamp: float | None = None


class Context(BaseModel):
    """Snapshot produced by the capture service and carried by a trigger."""

    model_config = ConfigDict(frozen=True)

    id: str
    app: AppInfo
    clipboard: str | None = None
    idle_seconds: float = 0.0
    timestamp: float
    capture_duration_ms: float = 0.0


class TriggerStats(BaseModel):
    """Aggregate trigger counters owned by the backend."""

    model_config = ConfigDict(frozen=True)

    total_triggers: int = 0
    triggers_per_app: dict[str, int] = Field(default_factory=dict)
    current_cooldown_ms: int | None = None
    allowlist: list[str] = Field(default_factory=list)
    cooldown_base_ms: int = 0
    cooldown_dismiss_ms: int = 0


# ── Enumerations ────────────────────────────────────────────────────────────


class ActivityCategory(str, Enum):
    KEYBOARD = "keyboard"
    POINTER = "pointer"
    SCROLL = "scroll"


class PlacementStrategy(str, Enum):
    CORNER_SNAP = "corner-snap"
    NEAR_CURSOR = "near-cursor"
    DOCK_NEAR_CURSOR = "dock-near-cursor"


class PreferredSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class Disposition(str, Enum):
    DISMISSED = "dismissed"
    ACTED_UPON = "acted_upon"


class TriggerOutcome(str, Enum):
    SHOWN = "shown"
    SUPPRESSED_SNOOZED = "suppressed_snoozed"
    SUPPRESSED_DEDUP = "suppressed_dedup"


class SnoozeDuration(str, Enum):
    """Fixed snooze lengths offered to the user."""

    THIRTY_MINUTES = "30min"
    TWO_HOURS = "2h"
    TODAY = "today"

    @property
    def label(self) -> str:
        return {
            SnoozeDuration.THIRTY_MINUTES: "30 minutes",
            SnoozeDuration.TWO_HOURS: "2 hours",
            SnoozeDuration.TODAY: "until end of day",
        }[self]

    def deadline(self, now: float) -> int:
        """Absolute suppression deadline (epoch seconds) for a snooze started at ``now``.

        ``TODAY`` ends at the next UTC midnight.
        """
        now_s = int(now)
        if self is SnoozeDuration.THIRTY_MINUTES:
            return now_s + 30 * 60
        if self is SnoozeDuration.TWO_HOURS:
            return now_s + 2 * 60 * 60
        day = datetime.fromtimestamp(now_s, tz=UTC).date()
        midnight = datetime(day.year, day.month, day.day, tzinfo=UTC) + timedelta(days=1)
        return int(midnight.timestamp())


# ── Personalization action payloads ─────────────────────────────────────────


class ActionKind(str, Enum):
    APP_SWITCH = "app_switch"
    WINDOW_FOCUS = "window_focus"
    FILE_OPEN = "file_open"
    FILE_SAVE = "file_save"
    TYPING = "typing"
    CLICK = "click"
    SCROLL = "scroll"
    COPY = "copy"
    PASTE = "paste"
    COMMAND = "command"
    OTHER = "other"


_ACTION_DISPLAY_NAMES = {
    ActionKind.APP_SWITCH: "Switch App",
    ActionKind.WINDOW_FOCUS: "Focus Window",
    ActionKind.FILE_OPEN: "Open File",
    ActionKind.FILE_SAVE: "Save File",
    ActionKind.TYPING: "Type",
    ActionKind.CLICK: "Click",
    ActionKind.SCROLL: "Scroll",
    ActionKind.COPY: "Copy",
    ActionKind.PASTE: "Paste",
    ActionKind.COMMAND: "Command",
}


@dataclass(frozen=True)
class ActionType:
    """Action performed on a suggestion: a known kind or ``other(label)``.

    On the wire known kinds are bare strings and custom actions are
    ``{"custom": "<label>"}``.
    """

    kind: ActionKind
    label: str = ""

    def __post_init__(self) -> None:
        if self.kind is ActionKind.OTHER and not self.label:
            raise ValueError("ActionType.other requires a label")
        if self.kind is not ActionKind.OTHER and self.label:
            raise ValueError(f"ActionType {self.kind.value} takes no label")

    @classmethod
    def other(cls, label: str) -> ActionType:
        return cls(ActionKind.OTHER, label)

    @classmethod
    def from_wire(cls, value: Any) -> ActionType:
        if isinstance(value, str):
            try:
                kind = ActionKind(value)
            except ValueError:
                return cls.other(value)
            if kind is ActionKind.OTHER:
                raise ValueError("'other' is not a valid wire action; use {'custom': label}")
            return cls(kind)
        if isinstance(value, dict) and isinstance(value.get("custom"), str):
            return cls.other(value["custom"])
        raise ValueError(f"Unrecognized action type payload: {value!r}")

    def to_wire(self) -> str | dict[str, str]:
        if self.kind is ActionKind.OTHER:
            return {"custom": self.label}
        return self.kind.value

    @property
    def display_name(self) -> str:
        if self.kind is ActionKind.OTHER:
            return self.label
        return _ACTION_DISPLAY_NAMES[self.kind]


# ── Geometry ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Size:
    width: int
    height: int


@dataclass(frozen=True)
class Position:
    """Top-left corner of an overlay in screen coordinates."""

    x: int
    y: int


# ── Derived state ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SnoozeStatus:
    snoozed_until: float | None = None
    is_snoozed: bool = False
    remaining_minutes: int | None = None

    @classmethod
    def compute(cls, snoozed_until: float | None, now: float) -> SnoozeStatus:
        """Derive the status for a backend deadline as seen at ``now``."""
        if snoozed_until is None:
            return cls()
        remaining = snoozed_until - now
        if remaining > 0:
            return cls(snoozed_until, True, math.ceil(remaining / 60))
        return cls(snoozed_until, False, None)


@dataclass
class BubbleSession:
    """The single live bubble: its trigger, frozen position and visibility."""

    context: Context
    position: Position
    created_at: float
    visible: bool = True
