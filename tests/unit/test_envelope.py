"""Unit tests for the JSON-RPC envelope codec."""

import json

import pytest

from mcp_link.errors import MalformedFrame, ProtocolError, RpcError
from mcp_link.protocol.envelope import (
    JsonRpcErrorCode,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_frame,
    encode_error_response,
    encode_notification,
    encode_request,
)


class TestEncode:
    """Test outbound envelopes."""

    def test_request_without_params(self):
        """Empty params are dropped from the wire."""
        frame = encode_request(1, "tools/list", {})

        assert json.loads(frame) == {"jsonrpc": "2.0", "id": 1, "method": "tools/list"}

    def test_request_with_params(self):
        frame = encode_request(7, "tools/call", {"name": "echo", "arguments": {"text": "hi"}})
        data = json.loads(frame)

        assert data["id"] == 7
        assert data["method"] == "tools/call"
        assert data["params"] == {"name": "echo", "arguments": {"text": "hi"}}

    def test_request_keeps_null_argument_values(self):
        """None inside params is data, not an absent field."""
        frame = encode_request(1, "tools/call", {"name": "x", "arguments": {"opt": None}})

        assert json.loads(frame)["params"]["arguments"] == {"opt": None}

    def test_notification_has_no_id(self):
        frame = encode_notification("notifications/initialized")
        data = json.loads(frame)

        assert data == {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert "id" not in data

    def test_frames_are_single_line(self):
        """Newlines in content are escaped so a frame is one line."""
        frame = encode_request(1, "tools/call", {"arguments": {"text": "a\nb\r\nc"}})

        assert "\n" not in frame
        assert json.loads(frame)["params"]["arguments"]["text"] == "a\nb\r\nc"

    def test_unicode_is_preserved(self):
        frame = encode_notification("log", {"message": "Hello 世界 🌍"})

        assert json.loads(frame)["params"]["message"] == "Hello 世界 🌍"

    def test_error_response(self):
        frame = encode_error_response(5, JsonRpcErrorCode.METHOD_NOT_FOUND, "nope")

        assert json.loads(frame) == {
            "jsonrpc": "2.0",
            "id": 5,
            "error": {"code": -32601, "message": "nope"},
        }


class TestDecode:
    """Test inbound frame classification."""

    def test_success_response(self):
        message = decode_frame('{"jsonrpc":"2.0","id":1,"result":{"tools":[]}}')

        assert isinstance(message, JsonRpcResponse)
        assert message.id == 1
        assert message.unwrap() == {"tools": []}

    def test_error_response(self):
        message = decode_frame(
            '{"jsonrpc":"2.0","id":2,"error":{"code":-32601,"message":"method not found"}}'
        )

        assert isinstance(message, JsonRpcResponse)
        with pytest.raises(RpcError) as exc_info:
            message.unwrap()
        assert exc_info.value.code == -32601
        assert exc_info.value.message == "method not found"

    def test_null_result_is_a_result(self):
        message = decode_frame('{"jsonrpc":"2.0","id":3,"result":null}')

        assert message.has_result
        assert message.unwrap() is None

    def test_response_without_result_or_error(self):
        message = decode_frame('{"jsonrpc":"2.0","id":4}')

        with pytest.raises(ProtocolError):
            message.unwrap()

    def test_response_with_both_result_and_error(self):
        message = decode_frame(
            '{"jsonrpc":"2.0","id":4,"result":1,"error":{"code":1,"message":"x"}}'
        )

        with pytest.raises(ProtocolError):
            message.unwrap()

    def test_string_id(self):
        message = decode_frame('{"jsonrpc":"2.0","id":"abc","result":true}')

        assert message.id == "abc"

    def test_notification(self):
        message = decode_frame(
            '{"jsonrpc":"2.0","method":"notifications/progress","params":{"progress":1}}'
        )

        assert isinstance(message, JsonRpcNotification)
        assert message.params == {"progress": 1}

    def test_peer_request(self):
        message = decode_frame('{"jsonrpc":"2.0","id":9,"method":"roots/list"}')

        assert isinstance(message, JsonRpcRequest)
        assert message.method == "roots/list"

    def test_bytes_frame(self):
        message = decode_frame(b'{"jsonrpc":"2.0","id":1,"result":"ok"}')

        assert message.unwrap() == "ok"

    def test_invalid_utf8_bytes(self):
        with pytest.raises(MalformedFrame, match="UTF-8") as exc_info:
            decode_frame(b'{"jsonrpc":"2.0","id":1,"result":"\xff"}')

        assert exc_info.value.frame is not None

    @pytest.mark.parametrize("raw_id, expected", [("true", True), ("1.0", 1.0)])
    def test_response_id_is_not_coerced(self, raw_id, expected):
        message = decode_frame(f'{{"jsonrpc":"2.0","id":{raw_id},"result":1}}')

        assert isinstance(message, JsonRpcResponse)
        assert type(message.id) is type(expected)
        assert message.id == expected

    def test_peer_request_with_boolean_id_is_malformed(self):
        with pytest.raises(MalformedFrame):
            decode_frame('{"jsonrpc":"2.0","id":true,"method":"roots/list"}')

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "[1, 2, 3]",
            '"just a string"',
            '{"jsonrpc":"1.0","id":1,"result":1}',
            '{"jsonrpc":"2.0","id":1,"error":{"message":"missing code"}}',
            '{"jsonrpc":"2.0","id":{"nested":true},"result":1}',
        ],
    )
    def test_malformed_frames(self, frame):
        with pytest.raises(MalformedFrame) as exc_info:
            decode_frame(frame)
        assert exc_info.value.frame == frame
