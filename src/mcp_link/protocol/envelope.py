"""JSON-RPC 2.0 envelope codec.

Pure, stateless mapping between wire frames (one JSON object per frame) and
typed envelope models. Framing itself (newlines) belongs to the transport.

Wire format:
    request:      {"jsonrpc": "2.0", "id": 1, "method": "tools/list"}
    notification: {"jsonrpc": "2.0", "method": "notifications/initialized"}
    response:     {"jsonrpc": "2.0", "id": 1, "result": {...}}
                  {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "..."}}
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError

from ..errors import MalformedFrame, ProtocolError, RpcError

JSONRPC_VERSION = "2.0"

RequestId = Union[StrictInt, StrictStr]

# Echoed back exactly as the peer sent it, never coerced; only integer ids
# are ever issued, so anything else is left for the engine to discard.
ResponseId = Union[StrictInt, StrictStr, StrictFloat, StrictBool, None]


class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId
    method: str
    params: Any | None = None


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: Any | None = None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response.

    ``result`` may legitimately be ``null`` on the wire, so presence is
    tracked through the fields that were actually set rather than by value.
    """

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: ResponseId = None
    result: Any | None = None
    error: JsonRpcError | None = None

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Any:
        """Return the result payload or raise the error it carries.

        Raises:
            RpcError: The response carries an error object
            ProtocolError: The response has neither or both of result/error
        """
        if self.error is not None:
            if self.has_result:
                raise ProtocolError(f"Response {self.id} carries both result and error")
            raise RpcError(self.error.code, self.error.message, self.error.data)
        if not self.has_result:
            raise ProtocolError(f"Response {self.id} carries neither result nor error")
        return self.result


InboundMessage = Union[JsonRpcResponse, JsonRpcRequest, JsonRpcNotification]


def _normalize_params(params: Any | None) -> Any | None:
    # An empty params object is dropped from the wire entirely.
    if params is None or params == {}:
        return None
    return params


def _dump(message: BaseModel) -> str:
    payload = message.model_dump(mode="json")
    if payload.get("params") is None:
        payload.pop("params", None)
    return json.dumps(payload, ensure_ascii=False)


def encode_request(request_id: int | str, method: str, params: Any | None = None) -> str:
    """Serialize a request envelope to a single frame."""
    return _dump(JsonRpcRequest(id=request_id, method=method, params=_normalize_params(params)))


def encode_notification(method: str, params: Any | None = None) -> str:
    """Serialize a notification envelope (no id) to a single frame."""
    return _dump(JsonRpcNotification(method=method, params=_normalize_params(params)))


def encode_error_response(
    request_id: int | str | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> str:
    """Serialize an error response, used to refuse peer-initiated requests."""
    response = JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=code, message=message, data=data),
    )
    payload = response.model_dump(mode="json", exclude={"result"})
    if data is None:
        payload["error"].pop("data", None)
    return json.dumps(payload, ensure_ascii=False)


def decode_frame(frame: str | bytes) -> InboundMessage:
    """Parse one inbound frame into a response, request or notification.

    Raises:
        MalformedFrame: The frame is not UTF-8 or not JSON, is not an
            object, or is not a valid JSON-RPC 2.0 envelope
    """
    if isinstance(frame, bytes):
        try:
            text = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrame(
                f"Frame is not valid UTF-8: {e}", frame=frame.decode("utf-8", errors="replace")
            ) from e
    else:
        text = frame

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedFrame(f"Failed to parse MCP message: {e}", frame=text) from e

    if not isinstance(data, dict):
        raise MalformedFrame(
            f"Expected a JSON object, got {type(data).__name__}", frame=text
        )

    try:
        if "method" in data:
            if data.get("id") is not None:
                return JsonRpcRequest.model_validate(data)
            return JsonRpcNotification.model_validate(data)
        return JsonRpcResponse.model_validate(data)
    except ValidationError as e:
        raise MalformedFrame(f"Invalid JSON-RPC envelope: {e}", frame=text) from e
