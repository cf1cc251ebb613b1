"""MCP payload types.

Models for the payloads carried inside JSON-RPC envelopes: the initialize
handshake, tools/list and tools/call.

Outbound payloads serialize with snake_case names (``input_schema``,
``next_cursor``, ``is_error``, ``mime_type``). Inbound payloads also accept
the camelCase spellings most servers emit. The initialize handshake keeps the
protocol's camelCase keys as field names, do not change them to snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class McpMethod(str, Enum):
    """Protocol methods used by the client."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    SHUTDOWN = "shutdown"
    EXIT = "exit"


class McpModel(BaseModel):
    """Base model for protocol payloads.

    Payloads are immutable once parsed. Unknown keys are kept so newer
    servers can add fields without breaking validation.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


# =============================================================================
# Initialize
# =============================================================================


class ClientInfo(McpModel):
    """Identity the client announces during the handshake."""

    name: str
    version: str


class ServerInfo(McpModel):
    """Identity the server reports in its initialize result."""

    name: str
    version: str | None = None


class InitializeParams(McpModel):
    """Parameters for the initialize request."""

    protocolVersion: str = DEFAULT_PROTOCOL_VERSION
    capabilities: dict[str, Any] = Field(default_factory=dict)
    clientInfo: ClientInfo


class InitializeResult(McpModel):
    """Result of the initialize request."""

    protocolVersion: str | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)
    serverInfo: ServerInfo | None = None
    instructions: str | None = None


# =============================================================================
# Tools
# =============================================================================


class ToolDefinition(McpModel):
    """A tool the server can invoke."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(
        validation_alias=AliasChoices("input_schema", "inputSchema"),
    )


class ListToolsResult(McpModel):
    """Result of tools/list."""

    tools: list[ToolDefinition] = Field(default_factory=list)
    next_cursor: str | None = Field(
        default=None,
        validation_alias=AliasChoices("next_cursor", "nextCursor"),
    )

    def names(self) -> list[str]:
        return [tool.name for tool in self.tools]

    def get(self, name: str) -> ToolDefinition | None:
        """Look up a tool by name."""
        return next((tool for tool in self.tools if tool.name == name), None)


class CallToolRequest(McpModel):
    """Parameters for tools/call."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class TextContent(McpModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(McpModel):
    type: Literal["image"] = "image"
    data: str
    mime_type: str = Field(validation_alias=AliasChoices("mime_type", "mimeType"))


class EmbeddedResourceContent(McpModel):
    # "resource" is the tag current MCP servers use for the same variant
    type: Literal["embedded_resource", "resource"] = "embedded_resource"
    resource: Any


Content = Annotated[
    Union[TextContent, ImageContent, EmbeddedResourceContent],
    Field(discriminator="type"),
]


class CallToolResult(McpModel):
    """Result of tools/call: ordered content items plus an error flag."""

    content: list[Content] = Field(default_factory=list)
    is_error: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_error", "isError"),
    )

    def as_text(self) -> str:
        """Flatten the content into text.

        Text items are kept verbatim, images and embedded resources are
        replaced by a short placeholder line.
        """
        lines: list[str] = []
        for item in self.content:
            if isinstance(item, TextContent):
                lines.append(item.text)
            elif isinstance(item, ImageContent):
                lines.append(f"[image content: {item.mime_type}]")
            else:
                lines.append("[embedded resource]")
        return "\n".join(lines).strip()
