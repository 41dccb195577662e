"""Stage cycle and per-stage settings."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Stage(Enum):
    """Stages of the focus cycle, in cycle order."""

    PREPARATION = "preparation"
    CONCENTRATION = "concentration"
    RELAXATION = "relaxation"

    @classmethod
    def initial(cls) -> "Stage":
        """Stage a freshly started timer begins in."""
        return cls.PREPARATION

    def next(self) -> "Stage":
        """Return the stage following this one."""
        return _NEXT_STAGE[self]

    @property
    def title(self) -> str:
        """Human-readable stage name."""
        return self.value.capitalize()


_NEXT_STAGE = {
    Stage.PREPARATION: Stage.CONCENTRATION,
    Stage.CONCENTRATION: Stage.RELAXATION,
    Stage.RELAXATION: Stage.PREPARATION,
}


@dataclass(frozen=True)
class Notification:
    """Desktop notification shown when a stage ends."""

    summary: str
    body: Optional[str] = None


class StageSequencer:
    """Lookup of stage order, durations and notifications.

    Stateless once built: every stage always has a positive duration and a
    notification, so lookups cannot fail.
    """

    def __init__(
        self,
        durations: dict[Stage, int],
        notifications: dict[Stage, Notification],
    ):
        """Initialize sequencer.

        Args:
            durations: Duration in seconds for every stage
            notifications: Notification shown at the end of every stage

        Raises:
            ValueError: If a stage is missing or a duration is not positive
        """
        for stage in Stage:
            if stage not in durations or stage not in notifications:
                raise ValueError(f"Missing settings for stage: {stage.value}")
            if durations[stage] <= 0:
                raise ValueError(f"Duration of {stage.value} must be positive")

        self._durations = dict(durations)
        self._notifications = dict(notifications)

    @classmethod
    def from_config(cls, config: Any) -> "StageSequencer":
        """Build a sequencer from a validated ConfigManager.

        Args:
            config: Configuration manager (anything with a dotted ``get``)

        Returns:
            StageSequencer instance
        """
        durations = {}
        notifications = {}
        for stage in Stage:
            durations[stage] = int(config.get(f"duration.{stage.value}"))
            notifications[stage] = Notification(
                summary=config.get(f"notification.{stage.value}.summary"),
                body=config.get(f"notification.{stage.value}.body"),
            )
        return cls(durations, notifications)

    def next(self, stage: Stage) -> Stage:
        return stage.next()

    def duration(self, stage: Stage) -> int:
        return self._durations[stage]

    def notification(self, stage: Stage) -> Notification:
        return self._notifications[stage]

    def config(self, stage: Stage) -> tuple[int, Notification]:
        """Return the (duration, notification) pair of a stage."""
        return self._durations[stage], self._notifications[stage]
