"""Wire format shared by the daemon and its clients.

Messages are JSON-RPC 2.0 objects, one per line. A connection carries exactly
one request followed by exactly one response.
"""

import json
from enum import Enum
from typing import Any, Optional

JSONRPC_VERSION = "2.0"
DELIMITER = b"\n"
MAX_MESSAGE_SIZE = 64 * 1024

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class CommandRequest(Enum):
    """Requests a client can send to the daemon."""

    INIT = "init"
    PAUSE = "pause"
    RESUME = "resume"
    QUERY = "query"
    SKIP = "skip"
    STOP = "stop"


class ErrorKind(Enum):
    """Failure categories reported to clients."""

    ALREADY_RUNNING = "AlreadyRunning"
    NOT_RUNNING = "NotRunning"
    PROTOCOL = "Protocol"
    IO = "Io"


class IPCError(Exception):
    """IPC communication error."""

    kind = ErrorKind.IO

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class AlreadyRunningError(IPCError):
    """Another daemon already serves the control socket."""

    kind = ErrorKind.ALREADY_RUNNING


class NotRunningError(IPCError):
    """No daemon answers on the control socket."""

    kind = ErrorKind.NOT_RUNNING


class ProtocolError(IPCError):
    """Malformed or unknown message."""

    kind = ErrorKind.PROTOCOL

    def __init__(self, message: str, code: int = INVALID_REQUEST):
        super().__init__(message)
        self.code = code


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize a message into one delimited line."""
    return json.dumps(message).encode("utf-8") + DELIMITER


def decode_message(data: bytes) -> dict[str, Any]:
    """Parse one delimited line into a message object.

    Args:
        data: Raw bytes, with or without the trailing delimiter

    Returns:
        Decoded JSON object

    Raises:
        ProtocolError: If the data is not a JSON object
    """
    try:
        message = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Parse error: {e}", code=PARSE_ERROR)

    if not isinstance(message, dict):
        raise ProtocolError("Invalid Request")
    return message


def build_request(command: CommandRequest, request_id: int) -> dict[str, Any]:
    """Build a JSON-RPC request for a command."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": command.value,
        "params": {},
    }


def parse_request(message: dict[str, Any]) -> CommandRequest:
    """Validate a decoded request and return its command.

    Raises:
        ProtocolError: If the request is invalid or names an unknown method
    """
    method = message.get("method")
    if message.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str):
        raise ProtocolError("Invalid Request")

    try:
        return CommandRequest(method)
    except ValueError:
        raise ProtocolError(f"Method not found: {method}", code=METHOD_NOT_FOUND)


def success_response(request_id: Optional[Any], result: Any) -> dict[str, Any]:
    """Create a JSON-RPC success response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(
    request_id: Optional[Any], code: int, message: str, kind: ErrorKind
) -> dict[str, Any]:
    """Create a JSON-RPC error response."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message, "data": {"kind": kind.value}},
    }


def error_from_response(error: dict[str, Any]) -> IPCError:
    """Turn the ``error`` member of a response into an exception."""
    message = f"RPC error {error.get('code')}: {error.get('message')}"
    data = error.get("data")
    kind_name = data.get("kind") if isinstance(data, dict) else None

    try:
        kind = ErrorKind(kind_name)
    except ValueError:
        kind = ErrorKind.PROTOCOL

    if kind is ErrorKind.ALREADY_RUNNING:
        return AlreadyRunningError(message)
    if kind is ErrorKind.NOT_RUNNING:
        return NotRunningError(message)
    if kind is ErrorKind.PROTOCOL:
        return ProtocolError(message, code=error.get("code", INVALID_REQUEST))
    return IPCError(message, kind)
