"""MCP client facade.

Sequences the protocol-level interactions on top of the correlation engine:

    initialize -> notifications/initialized -> tools/list, tools/call ...
    -> shutdown -> exit -> transport close

Example:
    >>> client = await create_stdio_client("python", ["server.py"])
    >>> async with client:
    ...     tools = await client.list_tools()
    ...     result = await client.call_tool("echo", {"text": "hi"})
    ...     print(result.as_text())
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .config import ClientConfig
from .engine import CorrelationEngine, NotificationHandler
from .errors import McpLinkError, ProtocolError, ShutdownError, TransportError
from .protocol.types import (
    CallToolRequest,
    CallToolResult,
    ClientInfo,
    InitializeParams,
    InitializeResult,
    ListToolsResult,
    McpMethod,
    ServerInfo,
    ToolDefinition,
)
from .transport.base import Transport
from .transport.memory import MemoryTransport, Responder
from .transport.stdio import StdioTransport

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class McpClient:
    """Client for an MCP server reachable through a frame transport.

    The client owns its engine; the transport is closed by :meth:`shutdown`.

    Attributes:
        config: The configuration used for the handshake and timeouts.
    """

    def __init__(self, transport: Transport, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig()
        self._transport = transport
        self._engine = CorrelationEngine(transport, request_timeout=self.config.request_timeout)
        self._initialize_result: InitializeResult | None = None
        self._shut_down = False

    @property
    def engine(self) -> CorrelationEngine:
        return self._engine

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def is_connected(self) -> bool:
        return self._engine.is_running

    @property
    def initialize_result(self) -> InitializeResult | None:
        """What the server answered to initialize, once the handshake is done."""
        return self._initialize_result

    @property
    def server_info(self) -> ServerInfo | None:
        if self._initialize_result is None:
            return None
        return self._initialize_result.serverInfo

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Start the background dispatcher."""
        await self._engine.start()

    async def initialize(self) -> InitializeResult:
        """Run the handshake: initialize request, then the initialized notification."""
        params = InitializeParams(
            protocolVersion=self.config.protocol_version,
            capabilities=self.config.capabilities,
            clientInfo=ClientInfo(
                name=self.config.client_name,
                version=self.config.client_version,
            ),
        )
        result = await self.call(McpMethod.INITIALIZE.value, params.model_dump(mode="json"))
        self._initialize_result = _parse(InitializeResult, result, McpMethod.INITIALIZE.value)

        await self.notify(McpMethod.INITIALIZED.value)

        server = self.server_info
        logger.info(
            f"Initialized MCP session with {server.name if server else 'unknown server'} "
            f"(protocol {self._initialize_result.protocolVersion})"
        )
        return self._initialize_result

    async def shutdown(self) -> None:
        """Shut the session down and close the transport.

        The transport is closed even when the shutdown request fails or
        times out. If both steps fail a :class:`ShutdownError` carries both
        errors; if only one fails, that error is raised. Idempotent.
        """
        if self._shut_down:
            return
        self._shut_down = True

        call_error: Exception | None = None
        close_error: Exception | None = None
        try:
            try:
                await self._engine.call(
                    McpMethod.SHUTDOWN.value, timeout=self.config.shutdown_timeout
                )
            except McpLinkError as e:
                logger.warning(f"Shutdown request failed: {e}")
                call_error = e

            try:
                await self._engine.notify(McpMethod.EXIT.value)
            except McpLinkError as e:
                logger.warning(f"Failed to send exit notification: {e}")
        finally:
            # Also reached on cancellation
            try:
                close_error = await self._close_transport()
            finally:
                await self._engine.aclose()

        if call_error is not None and close_error is not None:
            raise ShutdownError(call_error, close_error)
        if call_error is not None:
            raise call_error
        if close_error is not None:
            raise close_error

    async def __aenter__(self) -> McpClient:
        await self.connect()
        try:
            await self.initialize()
        except BaseException:
            await self._abort()
            raise
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await self.shutdown()
        except McpLinkError as e:
            if exc_type is None:
                raise
            # Don't mask the exception raised inside the block
            logger.warning(f"Shutdown failed during error handling: {e}")

    async def _abort(self) -> None:
        """Tear down without the shutdown handshake (failed initialize)."""
        self._shut_down = True
        try:
            await self._close_transport()
        finally:
            await self._engine.aclose()

    async def _close_transport(self) -> McpLinkError | None:
        """Close the transport, returning the failure instead of raising it."""
        try:
            await self._transport.close()
        except McpLinkError as e:
            logger.warning(f"Transport close failed: {e}")
            return e
        except Exception as e:
            logger.warning(f"Transport close failed: {e}")
            error = TransportError(f"Failed to close transport: {e}")
            error.__cause__ = e
            return error
        return None

    # =========================================================================
    # Requests
    # =========================================================================

    async def call(
        self,
        method: str,
        params: Any | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a raw request and return its result payload."""
        return await self._engine.call(method, params, timeout=timeout)

    async def notify(self, method: str, params: Any | None = None) -> None:
        """Send a raw notification."""
        await self._engine.notify(method, params)

    def on_notification(self, handler: NotificationHandler) -> None:
        """Register a handler for server notifications."""
        self._engine.on_notification(handler)

    async def ping(self) -> None:
        """Check the server is responsive."""
        await self.call(McpMethod.PING.value)

    async def list_tools(self, cursor: str | None = None) -> ListToolsResult:
        """Fetch one page of the server's tools."""
        params = {"cursor": cursor} if cursor else None
        result = await self.call(McpMethod.TOOLS_LIST.value, params)
        return _parse(ListToolsResult, result, McpMethod.TOOLS_LIST.value)

    async def list_all_tools(self) -> list[ToolDefinition]:
        """Fetch every page of tools, following ``next_cursor``."""
        tools: list[ToolDefinition] = []
        seen: set[str] = set()
        cursor: str | None = None
        while True:
            page = await self.list_tools(cursor)
            tools.extend(page.tools)
            cursor = page.next_cursor
            if not cursor or cursor in seen:
                return tools
            seen.add(cursor)

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> CallToolResult:
        """Invoke a tool.

        A tool-level failure is reported through ``is_error`` on the result,
        not raised; protocol-level failures raise :class:`RpcError`.
        """
        request = CallToolRequest(name=name, arguments=arguments or {})
        result = await self.call(
            McpMethod.TOOLS_CALL.value,
            request.model_dump(mode="json"),
            timeout=timeout,
        )
        return _parse(CallToolResult, result, McpMethod.TOOLS_CALL.value)


def _parse(model: type[ModelT], payload: Any, method: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ProtocolError(f"Invalid {method} result: {e}") from e


# =============================================================================
# Factory functions
# =============================================================================


async def create_stdio_client(
    command: str,
    args: Sequence[str] = (),
    *,
    config: ClientConfig | None = None,
) -> McpClient:
    """Spawn an MCP server process and return a client for it.

    The client is not connected yet; use it as an async context manager or
    call :meth:`McpClient.connect` and :meth:`McpClient.initialize`.

    Raises:
        TransportError: If the process cannot be started
    """
    config = config or ClientConfig()
    transport = await StdioTransport.spawn(
        command,
        args,
        env=config.env,
        cwd=config.cwd,
        close_timeout=config.close_timeout,
    )
    return McpClient(transport, config)


def create_memory_client(
    responder: Responder | None = None,
    config: ClientConfig | None = None,
) -> McpClient:
    """Create a client over an in-memory transport, for testing."""
    return McpClient(MemoryTransport(responder), config)
