"""Transport capability consumed by the correlation engine.

A transport moves whole frames (one serialized JSON-RPC message each) over
some duplex byte channel. The engine only needs three operations:

- send: write one complete frame; concurrent sends never interleave
- receive: block until one complete frame is available (single reader)
- close: best-effort, idempotent, bounded shutdown
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable


class TransportState(str, Enum):
    """Connection state machine."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@runtime_checkable
class Transport(Protocol):
    """Protocol for frame transports.

    Implementations handle the framing (newline-delimited JSON for stdio)
    and the lifetime of the underlying channel.
    """

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        ...

    async def send(self, frame: str) -> None:
        """Write one complete frame.

        Raises:
            TransportError: If the channel is closed or the write fails
        """
        ...

    async def receive(self) -> str:
        """Return the next complete frame.

        Must only be called from one place (the dispatch loop).

        Raises:
            TransportClosed: On EOF
            TransportError: On any other read failure
        """
        ...

    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...
