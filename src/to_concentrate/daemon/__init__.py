"""
To Concentrate Daemon - Background service owning the stage timer.

The daemon provides:
- The stage timer and its expiry thread
- Desktop notifications at the end of each stage
- IPC interface for CLI communication
"""

from to_concentrate.daemon.daemon import ConcentrateDaemon, DaemonError
from to_concentrate.daemon.ipc import IPCClient, IPCServer
from to_concentrate.daemon.protocol import (
    AlreadyRunningError,
    CommandRequest,
    ErrorKind,
    IPCError,
    NotRunningError,
    ProtocolError,
)

__all__ = [
    "AlreadyRunningError",
    "CommandRequest",
    "ConcentrateDaemon",
    "DaemonError",
    "ErrorKind",
    "IPCClient",
    "IPCError",
    "IPCServer",
    "NotRunningError",
    "ProtocolError",
]
