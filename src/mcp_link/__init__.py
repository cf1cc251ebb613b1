"""mcp-link - async client for MCP tool servers.

Provides:
- CorrelationEngine: matches JSON-RPC responses to concurrent calls by id
- McpClient: initialize / tools/list / tools/call / shutdown on top of it
- Transports: stdio subprocess (newline-delimited JSON) and in-memory
"""

__version__ = "0.1.0"

from .client import McpClient, create_memory_client, create_stdio_client  # noqa: E402
from .config import ClientConfig  # noqa: E402
from .engine import CorrelationEngine, EngineState  # noqa: E402
from .errors import (  # noqa: E402
    Disconnected,
    MalformedFrame,
    McpLinkError,
    ProtocolError,
    RequestTimeout,
    RpcError,
    ShutdownError,
    TransportClosed,
    TransportError,
)
from .protocol import (  # noqa: E402
    CallToolResult,
    ListToolsResult,
    ToolDefinition,
)
from .transport import MemoryTransport, StdioTransport, Transport, TransportState  # noqa: E402

__all__ = [
    "__version__",
    # Client
    "McpClient",
    "ClientConfig",
    "create_stdio_client",
    "create_memory_client",
    # Engine
    "CorrelationEngine",
    "EngineState",
    # Transports
    "Transport",
    "TransportState",
    "StdioTransport",
    "MemoryTransport",
    # Types
    "ToolDefinition",
    "ListToolsResult",
    "CallToolResult",
    # Errors
    "McpLinkError",
    "TransportError",
    "TransportClosed",
    "Disconnected",
    "MalformedFrame",
    "ProtocolError",
    "RequestTimeout",
    "RpcError",
    "ShutdownError",
]
