"""Wire protocol layer.

- envelope: JSON-RPC 2.0 envelopes and the frame codec
- types: MCP payloads (initialize, tools/list, tools/call)
"""

from .envelope import (
    JSONRPC_VERSION,
    InboundMessage,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_frame,
    encode_error_response,
    encode_notification,
    encode_request,
)
from .types import (
    DEFAULT_PROTOCOL_VERSION,
    CallToolRequest,
    CallToolResult,
    ClientInfo,
    Content,
    EmbeddedResourceContent,
    ImageContent,
    InitializeParams,
    InitializeResult,
    ListToolsResult,
    McpMethod,
    ServerInfo,
    TextContent,
    ToolDefinition,
)

__all__ = [
    # Envelope
    "JSONRPC_VERSION",
    "InboundMessage",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "decode_frame",
    "encode_error_response",
    "encode_notification",
    "encode_request",
    # Payloads
    "DEFAULT_PROTOCOL_VERSION",
    "CallToolRequest",
    "CallToolResult",
    "ClientInfo",
    "Content",
    "EmbeddedResourceContent",
    "ImageContent",
    "InitializeParams",
    "InitializeResult",
    "ListToolsResult",
    "McpMethod",
    "ServerInfo",
    "TextContent",
    "ToolDefinition",
]
