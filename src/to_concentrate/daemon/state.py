"""Daemon PID file bookkeeping."""

import logging
import os
from pathlib import Path
from typing import Optional

import psutil  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


class PIDFileManager:
    """Manages daemon PID file."""

    def __init__(self, pid_file: Path):
        """Initialize PID file manager.

        Args:
            pid_file: Path to PID file
        """
        self.pid_file = pid_file
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)

    def write(self, pid: Optional[int] = None) -> None:
        """Write PID to file.

        Args:
            pid: Process ID to write (default: current process)
        """
        pid = pid if pid is not None else os.getpid()
        try:
            with open(self.pid_file, "w") as f:
                f.write(str(pid))
            logger.debug(f"PID {pid} written to {self.pid_file}")
        except OSError as e:
            logger.error(f"Failed to write PID file: {e}")

    def read(self) -> Optional[int]:
        """Read PID from file.

        Returns:
            PID or None if file doesn't exist or is invalid
        """
        if not self.pid_file.exists():
            return None

        try:
            with open(self.pid_file, "r") as f:
                pid = int(f.read().strip())
            return pid
        except (ValueError, OSError) as e:
            logger.error(f"Failed to read PID file: {e}")
            return None

    def remove(self) -> None:
        """Remove PID file."""
        if self.pid_file.exists():
            try:
                self.pid_file.unlink()
                logger.debug(f"PID file {self.pid_file} removed")
            except OSError as e:
                logger.error(f"Failed to remove PID file: {e}")

    def is_running(self, name: Optional[str] = None) -> bool:
        """Check if the process recorded in the PID file is alive.

        Args:
            name: If given, the process name must contain it. Guards against
                a recycled PID belonging to an unrelated process.

        Returns:
            True if process is running, False otherwise
        """
        pid = self.read()
        if pid is None:
            return False

        try:
            process = psutil.Process(pid)
            if name is None:
                return True
            return name in process.name() or name in " ".join(process.cmdline())
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Owned by another user, so not our daemon
            return False
