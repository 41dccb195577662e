"""Core timer logic for To Concentrate."""

from to_concentrate.core.clock import Clock
from to_concentrate.core.engine import TimerEngine, TimerSnapshot, TimerStatus
from to_concentrate.core.stages import Notification, Stage, StageSequencer

__all__ = [
    "Clock",
    "Notification",
    "Stage",
    "StageSequencer",
    "TimerEngine",
    "TimerSnapshot",
    "TimerStatus",
]
