"""Error taxonomy for the MCP client.

Every failure surfaced to a caller derives from :class:`McpLinkError`:

- TransportError: the byte channel failed (spawn, send, receive, close)
- Disconnected: the dispatch loop is not running, so no response can arrive
- MalformedFrame: an inbound frame could not be decoded
- RpcError: the peer answered with a JSON-RPC error object
- ProtocolError: a message had an unexpected shape
"""

from __future__ import annotations

from typing import Any


class McpLinkError(Exception):
    """Base class for all client errors."""


class TransportError(McpLinkError):
    """Sending, receiving or spawning failed on the underlying channel."""


class TransportClosed(TransportError):
    """The peer closed its end of the stream (EOF)."""


class Disconnected(McpLinkError):
    """The engine stopped while a call was pending, or a call came after it stopped."""


class MalformedFrame(McpLinkError):
    """An inbound frame is not a valid JSON-RPC envelope."""

    def __init__(self, message: str, frame: str | None = None) -> None:
        super().__init__(message)
        self.frame = frame


class ProtocolError(McpLinkError):
    """A message or payload did not have the expected shape."""


class RequestTimeout(McpLinkError):
    """No response arrived within the per-call timeout."""

    def __init__(self, method: str, request_id: int, timeout: float) -> None:
        super().__init__(f"Request {request_id} ({method}) timed out after {timeout}s")
        self.method = method
        self.request_id = request_id
        self.timeout = timeout


class RpcError(McpLinkError):
    """Error object returned by the peer."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(f"MCP Error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class ShutdownError(McpLinkError):
    """Both the shutdown request and the transport close failed."""

    def __init__(self, call_error: BaseException, close_error: BaseException) -> None:
        super().__init__(
            f"MCP shutdown request failed: {call_error}; transport close failed: {close_error}"
        )
        self.call_error = call_error
        self.close_error = close_error
