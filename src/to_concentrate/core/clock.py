"""Monotonic clock used by the timer engine."""

import threading
import time
from typing import Optional


class Clock:
    """Monotonic time source with an interruptible wait.

    The engine never reads wall-clock time, so changes to the system clock do
    not affect stage accounting.
    """

    def now(self) -> float:
        """Return the current monotonic instant in seconds."""
        return time.monotonic()

    def wait_until(self, condition: threading.Condition, deadline: Optional[float]) -> bool:
        """Block on ``condition`` until ``deadline`` passes or it is notified.

        The caller must hold the condition's lock.

        Args:
            condition: Condition guarding the timer state
            deadline: Monotonic instant to wake at, or None to wait for a notify

        Returns:
            True if the deadline was reached, False if the wait was interrupted
        """
        if deadline is None:
            condition.wait()
            return False

        timeout = deadline - self.now()
        if timeout > 0:
            condition.wait(timeout=timeout)
        return self.now() >= deadline
