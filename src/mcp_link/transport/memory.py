"""In-memory transport for testing and embedding.

No actual I/O - frames are passed through asyncio queues.

Usage:
    transport = MemoryTransport()
    engine = CorrelationEngine(transport)
    await engine.start()

    task = asyncio.create_task(engine.call("tools/list"))
    request = await transport.next_sent()
    transport.feed({"jsonrpc": "2.0", "id": request["id"], "result": {"tools": []}})
    assert await task == {"tools": []}

A ``responder`` callable can script a whole fake server: it receives every
decoded outbound message and returns a reply (or list of replies, or None).
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Union

from ..errors import TransportClosed, TransportError
from .base import TransportState

logger = logging.getLogger(__name__)

Reply = Union[dict[str, Any], str, list[Union[dict[str, Any], str]], None]
Responder = Callable[[dict[str, Any]], Union[Reply, Awaitable[Reply]]]


class MemoryTransport:
    """Transport backed by in-memory queues."""

    def __init__(self, responder: Responder | None = None) -> None:
        self._responder = responder
        self._state = TransportState.OPEN
        self._inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self._sent_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._sent: list[dict[str, Any]] = []
        self._send_failure: Exception | None = None
        self._close_failure: Exception | None = None
        self.close_calls = 0

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def sent(self) -> list[dict[str, Any]]:
        """All messages sent through this transport, decoded."""
        return self._sent.copy()

    def feed(self, message: dict[str, Any] | str) -> None:
        """Queue an inbound frame, as if the peer had written it."""
        frame = message if isinstance(message, str) else json.dumps(message)
        self._inbound.put_nowait(frame)

    def feed_eof(self) -> None:
        """Signal end of stream to the reader."""
        self._inbound.put_nowait(None)

    def fail_next_send(self, error: Exception | None = None) -> None:
        """Make the next send raise ``error`` (a TransportError by default)."""
        self._send_failure = error or TransportError("Simulated send failure")

    def fail_close(self, error: Exception | None = None) -> None:
        """Make close raise ``error`` (a TransportError by default)."""
        self._close_failure = error or TransportError("Simulated close failure")

    async def next_sent(self) -> dict[str, Any]:
        """Wait for the next outbound message."""
        return await self._sent_queue.get()

    async def send(self, frame: str) -> None:
        if self._state != TransportState.OPEN:
            raise TransportError("Transport is closed")

        if self._send_failure is not None:
            error, self._send_failure = self._send_failure, None
            raise error

        message = json.loads(frame)
        self._sent.append(message)
        self._sent_queue.put_nowait(message)

        if self._responder is None:
            return

        reply = self._responder(message)
        if inspect.isawaitable(reply):
            reply = await reply
        if reply is None:
            return
        for item in reply if isinstance(reply, list) else [reply]:
            self.feed(item)

    async def receive(self) -> str:
        frame = await self._inbound.get()
        if frame is None:
            # Keep EOF sticky for any later reader
            self._inbound.put_nowait(None)
            raise TransportClosed("Memory transport closed (EOF)")
        return frame

    async def close(self) -> None:
        self.close_calls += 1
        if self._state == TransportState.CLOSED:
            return
        self._state = TransportState.CLOSED
        self.feed_eof()
        logger.debug("Memory transport closed")

        if self._close_failure is not None:
            error, self._close_failure = self._close_failure, None
            raise error
