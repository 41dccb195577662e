"""Platform-specific utilities for daemon operations."""

import os
import platform
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

APP_DIR = "to-concentrate"


class Platform(Enum):
    """Supported platforms."""

    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


def get_platform() -> Platform:
    """Detect the current platform.

    Returns:
        Platform enum value
    """
    system = platform.system().lower()
    if system == "linux":
        return Platform.LINUX
    elif system == "darwin":
        return Platform.MACOS
    elif system == "windows":
        return Platform.WINDOWS
    else:
        return Platform.UNKNOWN


def get_runtime_dir() -> Path:
    """Get the per-user runtime directory, creating it if needed.

    Uses ``$XDG_RUNTIME_DIR/to-concentrate`` and falls back to a private
    directory under the system temp dir when XDG_RUNTIME_DIR is unset.

    Returns:
        Path to the runtime directory
    """
    xdg_runtime = os.environ.get("XDG_RUNTIME_DIR")
    if xdg_runtime:
        runtime_dir = Path(xdg_runtime) / APP_DIR
    else:
        runtime_dir = Path(tempfile.gettempdir()) / f"{APP_DIR}-{os.getuid()}"
    runtime_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    return runtime_dir


def get_ipc_socket_path() -> Path:
    """Get the default Unix socket path.

    Returns:
        Path to the daemon's control socket
    """
    return get_runtime_dir() / "daemon.sock"


def get_pid_file_path(socket_path: Optional[Path] = None) -> Path:
    """Get the PID file path for the daemon serving a socket.

    The PID file sits next to the socket, so daemons on different sockets
    never share one.

    Args:
        socket_path: Control socket path (default: runtime directory socket)

    Returns:
        Path to PID file
    """
    return (socket_path or get_ipc_socket_path()).with_suffix(".pid")


def get_log_file_path() -> Path:
    """Get the daemon log file path.

    Returns:
        Path to daemon log file
    """
    state_home = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    log_dir = Path(state_home) / APP_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "daemon.log"


def is_daemon_supported() -> Tuple[bool, str]:
    """Check if daemon is supported on this platform.

    Returns:
        Tuple of (is_supported, reason)
    """
    plat = get_platform()

    if plat in (Platform.LINUX, Platform.MACOS):
        return True, "Platform supported"

    return False, f"Unix domain sockets are not available on {platform.system()}"
