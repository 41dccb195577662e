"""IPC (Inter-Process Communication) for daemon-client communication.

Uses newline-delimited JSON-RPC 2.0 over a Unix domain socket. Each
connection carries one request and one response.
"""

import errno
import logging
import socket
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from to_concentrate.daemon.platform import get_ipc_socket_path
from to_concentrate.daemon.protocol import (
    DELIMITER,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    MAX_MESSAGE_SIZE,
    METHOD_NOT_FOUND,
    AlreadyRunningError,
    CommandRequest,
    ErrorKind,
    IPCError,
    NotRunningError,
    ProtocolError,
    build_request,
    decode_message,
    encode_message,
    error_from_response,
    error_response,
    parse_request,
    success_response,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AlreadyRunningError",
    "IPCClient",
    "IPCError",
    "IPCServer",
    "NotRunningError",
    "ProtocolError",
]


def _read_message(sock: socket.socket) -> Optional[bytes]:
    """Read bytes up to the first delimiter or EOF.

    Returns:
        The message without its delimiter, or None if the peer closed the
        connection without sending a single byte

    Raises:
        ProtocolError: If the message exceeds MAX_MESSAGE_SIZE
    """
    data = b""
    while DELIMITER not in data:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
        if len(data) > MAX_MESSAGE_SIZE:
            raise ProtocolError("Message too large")
    if not data:
        return None
    return data.split(DELIMITER, 1)[0]


def _is_socket_live(socket_path: Path, timeout: float = 1.0) -> bool:
    """Check whether something accepts connections on a socket path."""
    probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    probe.settimeout(timeout)
    try:
        probe.connect(str(socket_path))
        return True
    except OSError:
        return False
    finally:
        probe.close()


class IPCServer:
    """IPC server for handling client requests.

    Implements JSON-RPC 2.0 over a Unix socket. Requests are decoded and
    validated before their handler runs, so a bad request never reaches the
    timer.
    """

    def __init__(self, socket_path: Optional[Path] = None, client_timeout: float = 5.0):
        """Initialize IPC server.

        Args:
            socket_path: Path to the Unix socket (default: runtime directory)
            client_timeout: Seconds to wait for a client's request
        """
        self.socket_path = socket_path or get_ipc_socket_path()
        self.client_timeout = client_timeout
        self.socket: Optional[socket.socket] = None
        self.running = False
        self.handlers: dict[CommandRequest, Callable[[dict[str, Any]], Any]] = {}
        self._server_thread: Optional[threading.Thread] = None

    def register_handler(
        self, command: CommandRequest, handler: Callable[[dict[str, Any]], Any]
    ) -> None:
        """Register a handler for a request.

        Args:
            command: Request the handler answers
            handler: Callable taking the request params and returning the result
        """
        self.handlers[command] = handler
        logger.debug(f"Registered handler for method: {command.value}")

    def start(self) -> None:
        """Bind the socket and start accepting connections.

        Raises:
            AlreadyRunningError: If a live daemon already serves the socket path
            IPCError: If the socket cannot be bound
        """
        if self.running:
            logger.warning("IPC server already running")
            return

        if self.socket_path.exists():
            if _is_socket_live(self.socket_path):
                raise AlreadyRunningError(f"Daemon is already running on {self.socket_path}")
            logger.info(f"Removing stale socket {self.socket_path}")
            self.socket_path.unlink()

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(self.socket_path))
            sock.listen(5)
            # Set socket permissions (owner only)
            self.socket_path.chmod(0o600)
        except OSError as e:
            sock.close()
            if e.errno == errno.EADDRINUSE:
                raise AlreadyRunningError(f"Daemon is already running on {self.socket_path}")
            raise IPCError(f"Could not bind {self.socket_path}: {e}")

        self.socket = sock
        self.running = True
        self._server_thread = threading.Thread(
            target=self._accept_loop, name="ipc-accept", daemon=True
        )
        self._server_thread.start()
        logger.info(f"IPC server started on {self.socket_path}")

    def _accept_loop(self) -> None:
        """Accept client connections."""
        while self.running:
            try:
                if self.socket is None:
                    break

                self.socket.settimeout(1.0)  # Allow periodic checks of self.running
                try:
                    client_socket, _ = self.socket.accept()
                except socket.timeout:
                    continue

                # Handle client in separate thread
                client_thread = threading.Thread(
                    target=self._handle_client, args=(client_socket,), daemon=True
                )
                client_thread.start()
            except Exception as e:
                if self.running:  # Only log if not shutting down
                    logger.error(f"Error in accept loop: {e}")

    def _handle_client(self, client_socket: socket.socket) -> None:
        """Answer exactly one request on a client connection.

        Args:
            client_socket: Client socket
        """
        try:
            client_socket.settimeout(self.client_timeout)
            try:
                data = _read_message(client_socket)
            except ProtocolError as e:
                response = error_response(None, e.code, str(e), e.kind)
                client_socket.sendall(encode_message(response))
                return

            if data is None:
                # Liveness probes connect and hang up without a request
                return

            response = self._process_request(data)
            client_socket.sendall(encode_message(response))
        except OSError as e:
            logger.error(f"Error handling client: {e}")
        finally:
            client_socket.close()

    def _process_request(self, data: bytes) -> dict[str, Any]:
        """Decode a request, run its handler and build the response.

        Args:
            data: Raw request line

        Returns:
            JSON-RPC response dictionary
        """
        request_id = None
        if not data.strip():
            logger.warning("Rejected empty request")
            return error_response(
                request_id, INVALID_REQUEST, "Invalid Request", ErrorKind.PROTOCOL
            )

        try:
            request = decode_message(data)
            request_id = request.get("id")
            command = parse_request(request)
        except ProtocolError as e:
            logger.warning(f"Rejected request: {e}")
            return error_response(request_id, e.code, str(e), e.kind)

        handler = self.handlers.get(command)
        if handler is None:
            return error_response(
                request_id, METHOD_NOT_FOUND, f"Method not found: {command.value}", ErrorKind.PROTOCOL
            )

        params = request.get("params") or {}
        logger.debug(f"Received request: {command.value}")
        try:
            result = handler(params)
        except Exception as e:
            logger.error(f"Error in handler for {command.value}: {e}")
            return error_response(request_id, INTERNAL_ERROR, str(e), ErrorKind.IO)

        return success_response(request_id, result if result is not None else {})

    def stop(self) -> None:
        """Stop the IPC server and remove the socket file."""
        if not self.running:
            return

        logger.info("Stopping IPC server...")
        self.running = False

        # Close socket
        if self.socket:
            self.socket.close()
            self.socket = None

        # Wait for server thread
        if self._server_thread and self._server_thread is not threading.current_thread():
            self._server_thread.join(timeout=2.0)

        # Clean up socket file
        if self.socket_path.exists():
            self.socket_path.unlink()

        logger.info("IPC server stopped")


class IPCClient:
    """IPC client for communicating with daemon."""

    def __init__(self, socket_path: Optional[Path] = None, timeout: float = 5.0):
        """Initialize IPC client.

        Args:
            socket_path: Path to the Unix socket (default: runtime directory)
            timeout: Connection timeout in seconds
        """
        self.socket_path = socket_path or get_ipc_socket_path()
        self.timeout = timeout
        self._request_id = 0

    def call(self, command: CommandRequest) -> Any:
        """Send one request and return its result.

        Args:
            command: Request to send

        Returns:
            Result member of the response

        Raises:
            NotRunningError: If no daemon listens on the socket
            ProtocolError: If the response cannot be decoded
            IPCError: If communication fails or the daemon returns an error
        """
        self._request_id += 1
        request = build_request(command, self._request_id)

        response = self._send_request(request)

        if "error" in response:
            raise error_from_response(response["error"])
        if "result" not in response:
            raise ProtocolError("Response carries neither result nor error")

        return response["result"]

    def _send_request(self, request: dict[str, Any]) -> dict[str, Any]:
        """Send request via Unix socket and receive the response.

        Args:
            request: JSON-RPC request

        Returns:
            JSON-RPC response
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)

        try:
            try:
                sock.connect(str(self.socket_path))
            except (FileNotFoundError, ConnectionRefusedError):
                raise NotRunningError(f"Daemon is not running (no socket at {self.socket_path})")
            except OSError as e:
                raise IPCError(f"Failed to communicate with daemon: {e}")

            try:
                sock.sendall(encode_message(request))
                response_data = _read_message(sock)
            except OSError as e:
                raise IPCError(f"Failed to communicate with daemon: {e}")

            if not response_data:
                raise IPCError("Failed to communicate with daemon: connection closed")

            return decode_message(response_data)

        finally:
            sock.close()

    def is_daemon_running(self) -> bool:
        """Check if daemon is running.

        Returns:
            True if daemon is accessible, False otherwise
        """
        try:
            self.call(CommandRequest.INIT)
            return True
        except IPCError:
            return False
