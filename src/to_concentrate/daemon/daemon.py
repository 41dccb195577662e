"""Main daemon implementation."""

import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from to_concentrate.core.clock import Clock
from to_concentrate.core.config import ConfigManager
from to_concentrate.core.engine import TimerEngine
from to_concentrate.core.stages import StageSequencer
from to_concentrate.daemon.ipc import AlreadyRunningError, IPCClient, IPCError, IPCServer
from to_concentrate.daemon.notifier import Notifier
from to_concentrate.daemon.platform import (
    get_ipc_socket_path,
    get_log_file_path,
    get_pid_file_path,
    is_daemon_supported,
)
from to_concentrate.daemon.protocol import CommandRequest
from to_concentrate.daemon.state import PIDFileManager

logger = logging.getLogger(__name__)

DAEMON_NAME = "to-concentrate-daemon"


class DaemonError(Exception):
    """Daemon-related error."""

    pass


class ConcentrateDaemon:
    """Background process owning the stage timer.

    Provides:
    - The stage timer and its expiry thread
    - Desktop notifications at the end of each stage
    - IPC interface for CLI communication
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        socket_path: Optional[Path] = None,
        pid_file: Optional[Path] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize daemon.

        Args:
            config: Configuration manager (default: load from default location)
            socket_path: Control socket path (default: config, then runtime dir)
            pid_file: PID file path (default: config, then runtime dir)
            notifier: Notification sink (default: desktop notifications per config)
            clock: Time source for the timer

        Raises:
            DaemonError: If daemon is not supported on this platform
        """
        # Check platform support
        supported, reason = is_daemon_supported()
        if not supported:
            raise DaemonError(reason)

        self.config = config or ConfigManager()
        self.sequencer = StageSequencer.from_config(self.config)

        # Absolute paths survive the chdir in _daemonize
        configured_socket = self.config.get("runtime.socket")
        configured_pid = self.config.get("runtime.pid_file")
        if socket_path is None:
            socket_path = Path(configured_socket) if configured_socket else get_ipc_socket_path()
        self.socket_path = socket_path.expanduser().absolute()
        if pid_file is None:
            pid_file = (
                Path(configured_pid) if configured_pid else get_pid_file_path(self.socket_path)
            )
        pid_path = pid_file.expanduser().absolute()

        self.notifier = notifier or Notifier(
            enabled=self.config.get("notifications.enabled", True),
            app_name=self.config.get("notifications.app_name", "To Concentrate"),
        )
        self.clock = clock
        self.pid_manager = PIDFileManager(pid_path)
        self.ipc_server = IPCServer(self.socket_path)
        self.engine: Optional[TimerEngine] = None

        # Control flags
        self.running = False
        self._shutdown_event = threading.Event()
        self._stop_lock = threading.RLock()

    def start(self, foreground: bool = True, log_level: Optional[str] = None) -> None:
        """Start the daemon and block until it is stopped.

        Args:
            foreground: Run in foreground (don't daemonize)
            log_level: Logging level name (default: from config)

        Raises:
            AlreadyRunningError: If another daemon serves the control socket
            DaemonError: If the daemon fails to start
        """
        self._check_not_running()

        # Setup logging
        self._setup_logging(log_level or self.config.get("advanced.log_level", "INFO"))

        logger.info("Starting To Concentrate daemon...")

        # Daemonize if not in foreground
        if not foreground:
            self._daemonize()

        self.serve()

        # Setup signal handlers
        self._setup_signal_handlers()

        logger.info(f"Daemon started (PID: {os.getpid()})")

        # Wait for shutdown signal
        while not self._shutdown_event.wait(timeout=1.0):
            pass

    def serve(self) -> None:
        """Start the timer and the IPC server without blocking.

        Raises:
            AlreadyRunningError: If another daemon serves the control socket
            DaemonError: If the IPC server cannot be started
        """
        self.engine = TimerEngine(self.sequencer, notify=self.notifier.notify, clock=self.clock)
        self._register_ipc_handlers()

        try:
            self.ipc_server.start()
        except AlreadyRunningError:
            raise
        except IPCError as e:
            logger.error(f"Failed to start IPC server: {e}")
            raise DaemonError(f"Failed to start IPC server: {e}")

        self.pid_manager.write(os.getpid())
        self.engine.start()
        self.running = True

    def stop(self) -> None:
        """Stop the daemon gracefully."""
        with self._stop_lock:
            if not self.running:
                self._shutdown_event.set()
                return

            logger.info("Stopping daemon...")
            self.running = False

            self.ipc_server.stop()
            if self.engine:
                self.engine.shutdown()
            self.pid_manager.remove()

            self._shutdown_event.set()
            logger.info("Daemon stopped")

    def _check_not_running(self) -> None:
        """Fail fast when another daemon answers on the socket."""
        client = IPCClient(self.socket_path, timeout=1.0)
        if client.is_daemon_running() or self.pid_manager.is_running(DAEMON_NAME):
            raise AlreadyRunningError(f"Daemon is already running on {self.socket_path}")

    def _setup_logging(self, level_name: str) -> None:
        """Setup daemon logging."""
        log_file = get_log_file_path()
        log_level = getattr(logging, level_name.upper(), logging.INFO)

        # Create logger
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # File handler
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Console handler (for foreground mode)
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    def _daemonize(self) -> None:
        """Daemonize the process (Unix double-fork)."""
        try:
            # First fork
            pid = os.fork()
            if pid > 0:
                os._exit(0)

            # Decouple from parent environment
            os.chdir("/")
            os.setsid()
            os.umask(0o077)

            # Second fork
            pid = os.fork()
            if pid > 0:
                os._exit(0)

            # Redirect standard file descriptors
            sys.stdout.flush()
            sys.stderr.flush()
            with open(os.devnull, "r") as devnull:
                os.dup2(devnull.fileno(), sys.stdin.fileno())
            with open(os.devnull, "a+") as devnull:
                os.dup2(devnull.fileno(), sys.stdout.fileno())
            with open(os.devnull, "a+") as devnull:
                os.dup2(devnull.fileno(), sys.stderr.fileno())

        except OSError as e:
            logger.error(f"Failed to daemonize: {e}")
            sys.exit(1)

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame: Any) -> None:
        """Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()

    def _register_ipc_handlers(self) -> None:
        """Register IPC request handlers."""
        self.ipc_server.register_handler(CommandRequest.INIT, self._handle_init)
        self.ipc_server.register_handler(CommandRequest.PAUSE, self._handle_pause)
        self.ipc_server.register_handler(CommandRequest.RESUME, self._handle_resume)
        self.ipc_server.register_handler(CommandRequest.QUERY, self._handle_query)
        self.ipc_server.register_handler(CommandRequest.SKIP, self._handle_skip)
        self.ipc_server.register_handler(CommandRequest.STOP, self._handle_stop)

    def _timer(self) -> TimerEngine:
        if self.engine is None:
            raise DaemonError("Timer is not started")
        return self.engine

    def _handle_init(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Answer liveness checks from ``init``."""
        return {}

    def _handle_pause(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._timer().pause()
        return {}

    def _handle_resume(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._timer().resume()
        return {}

    def _handle_query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._timer().query().to_dict()

    def _handle_skip(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._timer().skip()
        return {}

    def _handle_stop(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Handle stop request.

        Args:
            params: Request parameters

        Returns:
            Empty result, sent before the daemon shuts down
        """
        # Schedule stop in separate thread to avoid blocking IPC response
        threading.Thread(target=self.stop, daemon=True).start()
        return {}
