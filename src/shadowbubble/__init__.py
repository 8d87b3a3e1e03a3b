"""
shadowbubble - proactive suggestion bubble orchestration.

Decides whether, when and where to surface an unsolicited suggestion
bubble, and suppresses repeated or unwanted interruptions.
"""

from shadowbubble.activity import ActivityMonitor
from shadowbubble.coordinator import CoordinatorState, TriggerCoordinator
from shadowbubble.daemon import BubbleDaemon, get_daemon
from shadowbubble.placement import BubblePlacer, compute_position
from shadowbubble.snooze import SnoozeManager
from shadowbubble.stats import TriggerStatsMonitor

__version__ = "0.1.0"

__all__ = [
    "ActivityMonitor",
    "BubbleDaemon",
    "BubblePlacer",
    "CoordinatorState",
    "SnoozeManager",
    "TriggerCoordinator",
    "TriggerStatsMonitor",
    "compute_position",
    "get_daemon",
]
