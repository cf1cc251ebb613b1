"""Request/response correlation over a single frame transport.

The engine turns a transport that delivers whole frames into an async call
interface. Each outbound request gets a fresh integer id and a pending
future; one background dispatch task reads every inbound frame and resolves
the future whose id matches.

Architecture:
- Ids come from a per-engine counter starting at 1, independent of the lock
- The pending registry (id -> future) is the only shared mutable state and
  is guarded by one lock, never held across I/O
- Entries are registered before the request is sent, and removed from the
  registry before they are resolved
- When the dispatch loop exits for any reason, every pending caller fails
  with Disconnected and later calls fail fast

Lifecycle:
    IDLE --start()--> RUNNING --(EOF | malformed frame | aclose())--> STOPPED
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Union

from .errors import Disconnected, MalformedFrame, RequestTimeout, TransportClosed, TransportError
from .protocol.envelope import (
    InboundMessage,
    JsonRpcErrorCode,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_frame,
    encode_error_response,
    encode_notification,
    encode_request,
)
from .transport.base import Transport

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, Any], Union[Awaitable[None], None]]


class EngineState(str, Enum):
    """Dispatch loop state machine."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class CorrelationEngine:
    """Matches JSON-RPC responses to the calls that caused them.

    Example:
        >>> async with CorrelationEngine(transport) as engine:
        ...     tools = await engine.call("tools/list")
        ...     await engine.notify("notifications/initialized")

    Args:
        transport: Frame transport; the engine becomes its only reader
        request_timeout: Default per-call timeout in seconds. ``None`` waits
            until a response arrives or the engine stops.
    """

    def __init__(self, transport: Transport, *, request_timeout: float | None = None) -> None:
        self._transport = transport
        self._request_timeout = request_timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[JsonRpcResponse]] = {}
        self._lock = asyncio.Lock()
        self._state = EngineState.IDLE
        self._dispatch_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._termination_cause: BaseException | None = None
        self._notification_handlers: list[NotificationHandler] = []
        self._handler_tasks: set[asyncio.Task[None]] = set()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == EngineState.RUNNING

    @property
    def pending_count(self) -> int:
        """Number of calls currently awaiting a response."""
        return len(self._pending)

    @property
    def termination_cause(self) -> BaseException | None:
        """Why the dispatch loop ended (EOF, malformed frame, ...), if it has."""
        return self._termination_cause

    def has_pending(self, request_id: int) -> bool:
        return request_id in self._pending

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the background dispatch task. No-op unless the engine is idle."""
        if self._state != EngineState.IDLE:
            return
        self._state = EngineState.RUNNING
        self._dispatch_task = asyncio.create_task(
            self._dispatch_loop(), name="mcp-link-dispatch"
        )
        logger.info(f"{self.__class__.__name__} started")

    async def aclose(self) -> None:
        """Stop the dispatch task and fail every pending call.

        When this returns the dispatch loop has exited. Idempotent.
        """
        if self._dispatch_task is None:
            await self._stop(None)
            return

        if not self._dispatch_task.done():
            self._dispatch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._dispatch_task

    async def wait_closed(self) -> None:
        """Wait until the dispatch loop has exited."""
        await self._stopped.wait()

    async def __aenter__(self) -> CorrelationEngine:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # =========================================================================
    # Outbound
    # =========================================================================

    async def call(
        self,
        method: str,
        params: Any | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its response.

        Args:
            method: JSON-RPC method name
            params: Request parameters (omitted from the wire when empty)
            timeout: Seconds to wait, overriding the engine default

        Returns:
            The response's ``result`` payload (may be ``None``)

        Raises:
            Disconnected: The engine is not running, or stopped before a
                response arrived
            TransportError: The request could not be sent
            RpcError: The peer answered with an error object
            ProtocolError: The response had neither or both of result/error
            RequestTimeout: No response within ``timeout``
        """
        if self._state != EngineState.RUNNING:
            raise self._disconnected()

        request_id = next(self._ids)
        future: asyncio.Future[JsonRpcResponse] = asyncio.get_running_loop().create_future()

        async with self._lock:
            # Re-checked under the lock: the loop may have drained meanwhile
            if self._state != EngineState.RUNNING:
                raise self._disconnected()
            self._pending[request_id] = future

        try:
            await self._transport.send(encode_request(request_id, method, params))
        except BaseException as e:
            async with self._lock:
                self._pending.pop(request_id, None)
            if isinstance(e, TransportError) or not isinstance(e, Exception):
                raise
            raise TransportError(f"Failed to send {method} request: {e}") from e

        logger.debug(f"Sent request {request_id}: {method}")

        effective_timeout = timeout if timeout is not None else self._request_timeout
        try:
            if effective_timeout is None:
                response = await future
            else:
                response = await asyncio.wait_for(future, timeout=effective_timeout)
        except TimeoutError:
            raise RequestTimeout(method, request_id, effective_timeout) from None
        finally:
            # Timed out or cancelled callers must not leave an entry behind
            async with self._lock:
                self._pending.pop(request_id, None)

        return response.unwrap()

    async def notify(self, method: str, params: Any | None = None) -> None:
        """Send a notification. No id, no registry entry, no reply.

        Raises:
            TransportError: The notification could not be sent
        """
        try:
            await self._transport.send(encode_notification(method, params))
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Failed to send {method} notification: {e}") from e
        logger.debug(f"Sent notification: {method}")

    # =========================================================================
    # Inbound
    # =========================================================================

    def on_notification(self, handler: NotificationHandler) -> None:
        """Register a handler for peer notifications.

        Handlers receive ``(method, params)``; they may be coroutines. Each
        notification is handled in its own task, so a handler may issue
        calls on this engine. Handler tasks still running when the engine
        stops are cancelled.
        """
        self._notification_handlers.append(handler)

    def remove_notification_handler(self, handler: NotificationHandler) -> None:
        with contextlib.suppress(ValueError):
            self._notification_handlers.remove(handler)

    async def _dispatch_loop(self) -> None:
        """Background task reading frames and routing them."""
        cause: BaseException | None = None
        try:
            while True:
                frame = await self._transport.receive()
                message = decode_frame(frame)
                await self._dispatch(message)
        except TransportClosed as e:
            logger.info(f"Transport closed: {e}")
            cause = e
        except (TransportError, MalformedFrame) as e:
            logger.error(f"Dispatch loop terminated: {e}")
            cause = e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Dispatch loop error: {e}")
            cause = e
        finally:
            await self._stop(cause)

    async def _dispatch(self, message: InboundMessage) -> None:
        if isinstance(message, JsonRpcResponse):
            await self._resolve(message)
        elif isinstance(message, JsonRpcNotification):
            await self._handle_notification(message)
        elif isinstance(message, JsonRpcRequest):
            await self._refuse_request(message)

    async def _resolve(self, response: JsonRpcResponse) -> None:
        request_id = response.id
        # Only integer ids are ever issued; bool is an int subclass
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            logger.debug(f"Discarding response with foreign id: {request_id!r}")
            return

        async with self._lock:
            future = self._pending.pop(request_id, None)

        if future is None or future.done():
            logger.debug(f"Discarding response for unknown request {request_id}")
            return

        future.set_result(response)
        logger.debug(f"Resolved request {request_id}")

    async def _handle_notification(self, notification: JsonRpcNotification) -> None:
        logger.debug(f"Received notification: {notification.method}")
        if not self._notification_handlers:
            return
        # Off the dispatch task: the handler's own calls need the loop reading
        task = asyncio.create_task(
            self._run_handlers(notification, list(self._notification_handlers)),
            name=f"mcp-link-notification-{notification.method}",
        )
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def _run_handlers(
        self,
        notification: JsonRpcNotification,
        handlers: list[NotificationHandler],
    ) -> None:
        for handler in handlers:
            try:
                result = handler(notification.method, notification.params)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Notification handler failed for {notification.method}: {e}")

    async def _refuse_request(self, request: JsonRpcRequest) -> None:
        """Answer a peer-initiated request; the client exposes no methods."""
        logger.debug(f"Refusing peer request {request.id}: {request.method}")
        frame = encode_error_response(
            request.id,
            JsonRpcErrorCode.METHOD_NOT_FOUND,
            f"Method not found: {request.method}",
        )
        try:
            await self._transport.send(frame)
        except TransportError as e:
            logger.warning(f"Failed to refuse peer request {request.id}: {e}")

    # =========================================================================
    # Teardown
    # =========================================================================

    async def _stop(self, cause: BaseException | None) -> None:
        """Enter STOPPED and fail every pending call with Disconnected."""
        async with self._lock:
            self._state = EngineState.STOPPED
            if self._termination_cause is None:
                self._termination_cause = cause
            pending = list(self._pending.values())
            self._pending.clear()

        for future in pending:
            if not future.done():
                future.set_exception(self._disconnected())

        current = asyncio.current_task()
        for task in list(self._handler_tasks):
            if task is not current and not task.done():
                task.cancel()

        if not self._stopped.is_set():
            self._stopped.set()
            logger.info(
                f"{self.__class__.__name__} stopped ({len(pending)} pending call(s) failed)"
            )

    def _disconnected(self) -> Disconnected:
        if self._state == EngineState.IDLE:
            return Disconnected("Engine not started")
        error = Disconnected("MCP connection closed")
        if self._termination_cause is not None:
            error.__cause__ = self._termination_cause
        return error
