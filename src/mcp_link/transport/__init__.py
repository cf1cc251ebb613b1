"""Frame transports.

- stdio: child process stdin/stdout, newline-delimited JSON (reference)
- memory: in-process queues, for tests and embedding

Any object satisfying the :class:`Transport` protocol can back the engine.
"""

from .base import Transport, TransportState
from .memory import MemoryTransport
from .stdio import StdioTransport

__all__ = [
    "Transport",
    "TransportState",
    "MemoryTransport",
    "StdioTransport",
]
