"""Stage timer state machine.

The engine owns the only mutable timer state in the daemon. All access goes
through one ``threading.Condition``: command threads mutate the state while
holding it, and the timer thread sleeps on it until the running stage's
deadline. Each mutation notifies the condition in the same critical section,
so the timer thread always re-arms from the current state.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from to_concentrate.core.clock import Clock
from to_concentrate.core.stages import Notification, Stage, StageSequencer

logger = logging.getLogger(__name__)

NotificationSink = Callable[[str, Optional[str]], None]


class TimerStatus(Enum):
    """Whether the current stage is counting down."""

    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimerSnapshot:
    """Consistent view of the timer at one instant."""

    stage: Stage
    status: TimerStatus
    remaining_seconds: float
    total_seconds: int

    @property
    def past_seconds(self) -> float:
        """Time already spent in the current stage."""
        return max(0.0, self.total_seconds - self.remaining_seconds)

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to a JSON-serializable dictionary.

        Returns:
            Snapshot as dictionary
        """
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "remaining_seconds": self.remaining_seconds,
            "total_seconds": self.total_seconds,
            "past_seconds": self.past_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSnapshot":
        """Create snapshot from dictionary.

        Args:
            data: Snapshot dictionary, as produced by ``to_dict``

        Returns:
            TimerSnapshot instance

        Raises:
            ValueError: If a field is missing or has an unknown value
        """
        try:
            return cls(
                stage=Stage(data["stage"]),
                status=TimerStatus(data["status"]),
                remaining_seconds=float(data["remaining_seconds"]),
                total_seconds=int(data["total_seconds"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed timer snapshot: {e}")


class TimerEngine:
    """Cyclic three-stage countdown controlled by pause, resume and skip.

    The timer starts running in the initial stage. When a running stage's
    duration elapses the stage's notification is sent, the next stage starts
    with its full duration and the timer keeps running. The state machine has
    no terminal state; ``shutdown`` only stops the timer thread.
    """

    def __init__(
        self,
        sequencer: StageSequencer,
        notify: Optional[NotificationSink] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize engine.

        Args:
            sequencer: Stage order and per-stage settings
            notify: Called with (summary, body) when a stage ends naturally
            clock: Time source (default: monotonic system clock)
        """
        self.sequencer = sequencer
        self.clock = clock or Clock()
        self._notify = notify
        self._condition = threading.Condition()

        self._stage = Stage.initial()
        self._status = TimerStatus.RUNNING
        self._remaining = float(sequencer.duration(self._stage))
        self._last_resume: Optional[float] = self.clock.now()

        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    # Timer thread

    def start(self) -> None:
        """Start the timer thread."""
        if self._thread is not None:
            logger.warning("Timer thread already started")
            return

        self._thread = threading.Thread(target=self.run, name="timer", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Wait for stage expiries until ``shutdown`` is called."""
        logger.info(f"Timer started in stage {self._stage.value}")
        with self._condition:
            while not self._stopped:
                if self._is_due():
                    self._complete_stage()
                    continue
                self.clock.wait_until(self._condition, self._deadline())
        logger.info("Timer stopped")

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the timer thread and wait for it to exit."""
        with self._condition:
            self._stopped = True
            self._condition.notify_all()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    def tick(self) -> bool:
        """Handle the running stage's expiry if it is due.

        Returns:
            True if a stage was completed
        """
        with self._condition:
            if not self._is_due():
                return False
            self._complete_stage()
            self._condition.notify_all()
            return True

    # Commands

    def pause(self) -> None:
        """Freeze the countdown. No-op when already paused."""
        with self._condition:
            if self._status is TimerStatus.PAUSED:
                logger.debug("Pause ignored, timer already paused")
                return

            self._remaining = self._effective_remaining()
            if self._remaining <= 0:
                # The stage ran out before the timer thread noticed
                self._complete_stage()

            self._status = TimerStatus.PAUSED
            self._last_resume = None
            self._condition.notify_all()
            logger.info(f"Paused in stage {self._stage.value} ({self._remaining:.1f}s left)")

    def resume(self) -> None:
        """Continue the countdown. No-op when already running."""
        with self._condition:
            if self._status is TimerStatus.RUNNING:
                logger.debug("Resume ignored, timer already running")
                return

            self._status = TimerStatus.RUNNING
            self._last_resume = self.clock.now()
            self._condition.notify_all()
            logger.info(f"Resumed in stage {self._stage.value} ({self._remaining:.1f}s left)")

    def skip(self) -> None:
        """End the current stage immediately without a notification."""
        with self._condition:
            skipped = self._stage
            self._enter_stage(skipped.next())
            self._condition.notify_all()
            logger.info(f"Skipped {skipped.value}, now in {self._stage.value}")

    def query(self) -> TimerSnapshot:
        """Return the current stage, status and remaining time."""
        with self._condition:
            return TimerSnapshot(
                stage=self._stage,
                status=self._status,
                remaining_seconds=self._effective_remaining(),
                total_seconds=self.sequencer.duration(self._stage),
            )

    # Internals, all called with the condition held

    def _elapsed(self) -> float:
        if self._last_resume is None:
            return 0.0
        # A backwards clock must never add time back
        return max(0.0, self.clock.now() - self._last_resume)

    def _effective_remaining(self) -> float:
        if self._status is TimerStatus.PAUSED:
            return self._remaining
        return max(0.0, self._remaining - self._elapsed())

    def _deadline(self) -> Optional[float]:
        if self._status is TimerStatus.PAUSED or self._last_resume is None:
            return None
        return self._last_resume + self._remaining

    def _is_due(self) -> bool:
        return self._status is TimerStatus.RUNNING and self._effective_remaining() <= 0

    def _enter_stage(self, stage: Stage) -> None:
        self._stage = stage
        self._remaining = float(self.sequencer.duration(stage))
        if self._status is TimerStatus.RUNNING:
            self._last_resume = self.clock.now()

    def _complete_stage(self) -> None:
        completed = self._stage
        logger.info(f"Stage {completed.value} completed")
        self._send(self.sequencer.notification(completed))
        self._enter_stage(completed.next())

    def _send(self, notification: Notification) -> None:
        if self._notify is None:
            return
        try:
            self._notify(notification.summary, notification.body)
        except Exception as e:
            logger.error(f"Failed to send notification: {e}")
