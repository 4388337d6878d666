"""Newline-delimited JSON-RPC frames exchanged with the tool server."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from ..models import ActionResult, ErrorKind, RequestId

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
TOOL_ERROR = -32000

METHOD_INITIALIZE = "initialize"
METHOD_LIST_TOOLS = "tools/list"
METHOD_CALL_TOOL = "tools/call"


class FrameError(ValueError):
    """Raised when a line is not a JSON object frame."""


class RpcRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_notification(self) -> bool:
        return self.id is None


class RpcError(BaseModel):
    code: int
    message: str
    data: Optional[dict[str, Any]] = None


class RpcResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    result: Optional[dict[str, Any]] = None
    error: Optional[RpcError] = None


def encode_frame(message: Mapping[str, Any] | BaseModel) -> str:
    """Serialize *message* as a single line terminated by ``\\n``."""

    if isinstance(message, BaseModel):
        payload: Any = message.model_dump(mode="json", exclude_none=True)
    else:
        payload = dict(message)
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")) + "\n"


def decode_frame(line: str | bytes) -> dict[str, Any]:
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameError(f"Frame is not valid UTF-8: {exc}") from exc
    text = line.strip()
    if not text:
        raise FrameError("Empty frame")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FrameError(f"Frame is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise FrameError("Frame must be a JSON object")
    return payload


def tool_call_request(
    request_id: RequestId, name: str, arguments: Mapping[str, Any]
) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": METHOD_CALL_TOOL,
        "params": {"name": name, "arguments": dict(arguments)},
    }


def success_response(request_id: RequestId, result: Mapping[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": dict(result)}


def error_response(
    request_id: RequestId,
    code: int,
    message: str,
    data: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = dict(data)
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def action_response(result: ActionResult) -> dict[str, Any]:
    """Frame an :class:`ActionResult` as a JSON-RPC result or error."""

    if result.success:
        return success_response(result.id, result.model_dump(mode="json", exclude={"error"}))
    assert result.error is not None
    data: dict[str, Any] = {"kind": result.error.kind.value, "tool": result.tool}
    if result.error.selectors is not None:
        data["selectors"] = result.error.selectors
    code = INVALID_PARAMS if result.error.kind == ErrorKind.VALIDATION_ERROR else TOOL_ERROR
    return error_response(result.id, code, result.error.message, data)


def response_to_result(response: RpcResponse, tool: str) -> ActionResult:
    """Convert a JSON-RPC response back into an :class:`ActionResult`."""

    if response.error is None:
        payload = dict(response.result or {})
        payload.setdefault("tool", tool)
        payload.setdefault("success", True)
        payload["id"] = response.id
        return ActionResult.model_validate(payload)
    data = response.error.data or {}
    kind = data.get("kind", ErrorKind.INTERNAL_ERROR.value)
    try:
        error_kind = ErrorKind(kind)
    except ValueError:
        error_kind = ErrorKind.INTERNAL_ERROR
    return ActionResult.model_validate(
        {
            "id": response.id,
            "tool": data.get("tool", tool),
            "success": False,
            "error": {
                "kind": error_kind,
                "message": response.error.message,
                "selectors": data.get("selectors"),
            },
        }
    )
