"""Unit tests for MCP payload types."""

import pytest
from pydantic import ValidationError

from mcp_link.protocol.types import (
    CallToolRequest,
    CallToolResult,
    ClientInfo,
    EmbeddedResourceContent,
    ImageContent,
    InitializeParams,
    InitializeResult,
    ListToolsResult,
    TextContent,
    ToolDefinition,
)


class TestListToolsResult:
    def test_snake_case_payload(self):
        result = ListToolsResult.model_validate(
            {"tools": [{"name": "echo", "input_schema": {}}], "next_cursor": "c1"}
        )

        assert result.names() == ["echo"]
        assert result.tools[0].input_schema == {}
        assert result.tools[0].description is None
        assert result.next_cursor == "c1"

    def test_camel_case_payload(self):
        """Servers following the published schema send camelCase keys."""
        result = ListToolsResult.model_validate(
            {
                "tools": [{"name": "echo", "description": "d", "inputSchema": {"type": "object"}}],
                "nextCursor": "c2",
            }
        )

        assert result.tools[0].input_schema == {"type": "object"}
        assert result.next_cursor == "c2"

    def test_dumps_snake_case(self):
        tool = ToolDefinition(name="echo", input_schema={"type": "object"})

        assert tool.model_dump(mode="json", exclude_none=True) == {
            "name": "echo",
            "input_schema": {"type": "object"},
        }

    def test_missing_input_schema_is_invalid(self):
        with pytest.raises(ValidationError):
            ToolDefinition.model_validate({"name": "echo"})

    def test_unknown_fields_are_kept(self):
        tool = ToolDefinition.model_validate(
            {"name": "echo", "inputSchema": {}, "annotations": {"readOnlyHint": True}}
        )

        assert tool.model_extra == {"annotations": {"readOnlyHint": True}}

    def test_get(self):
        result = ListToolsResult(
            tools=[
                ToolDefinition(name="a", input_schema={}),
                ToolDefinition(name="b", input_schema={}),
            ]
        )

        assert result.get("b").name == "b"
        assert result.get("missing") is None


class TestCallToolResult:
    def test_content_variants(self):
        result = CallToolResult.model_validate(
            {
                "content": [
                    {"type": "text", "text": "hello"},
                    {"type": "image", "data": "aGk=", "mime_type": "image/png"},
                    {"type": "embedded_resource", "resource": {"uri": "file:///x"}},
                ],
                "is_error": False,
            }
        )

        assert isinstance(result.content[0], TextContent)
        assert isinstance(result.content[1], ImageContent)
        assert isinstance(result.content[2], EmbeddedResourceContent)
        assert result.content[1].mime_type == "image/png"

    def test_camel_case_and_resource_tag(self):
        result = CallToolResult.model_validate(
            {
                "content": [
                    {"type": "image", "data": "aGk=", "mimeType": "image/jpeg"},
                    {"type": "resource", "resource": {"uri": "file:///y"}},
                ],
                "isError": True,
            }
        )

        assert result.is_error is True
        assert result.content[0].mime_type == "image/jpeg"
        assert isinstance(result.content[1], EmbeddedResourceContent)

    def test_is_error_defaults_false(self):
        result = CallToolResult.model_validate({"content": []})

        assert result.is_error is False

    def test_unknown_content_type_is_invalid(self):
        with pytest.raises(ValidationError):
            CallToolResult.model_validate({"content": [{"type": "audio", "data": "x"}]})

    def test_as_text(self):
        result = CallToolResult(
            content=[
                TextContent(text="line one"),
                ImageContent(data="aGk=", mime_type="image/png"),
                TextContent(text="line two"),
                EmbeddedResourceContent(resource={"uri": "file:///z"}),
            ]
        )

        assert result.as_text() == (
            "line one\n[image content: image/png]\nline two\n[embedded resource]"
        )

    def test_results_are_immutable(self):
        result = CallToolResult(content=[TextContent(text="x")])

        with pytest.raises(ValidationError):
            result.is_error = True


class TestRequests:
    def test_call_tool_request_defaults(self):
        assert CallToolRequest(name="echo").model_dump() == {"name": "echo", "arguments": {}}

    def test_initialize_params_use_protocol_keys(self):
        params = InitializeParams(
            protocolVersion="2024-11-05",
            clientInfo=ClientInfo(name="mcp-link", version="0.1.0"),
        )

        assert params.model_dump(mode="json") == {
            "protocolVersion": "2024-11-05",
            "capabilities": {},
            "clientInfo": {"name": "mcp-link", "version": "0.1.0"},
        }

    def test_initialize_result_tolerates_sparse_payload(self):
        result = InitializeResult.model_validate({"protocolVersion": "2024-11-05"})

        assert result.serverInfo is None
        assert result.capabilities == {}
