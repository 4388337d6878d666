"""Stdio tool server: one JSON-RPC frame per line in, one per line out."""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Callable, Optional, TextIO

from pydantic import ValidationError

from .. import __version__
from ..models import ActionRequest, ActionResult, ErrorKind
from ..tools.dispatcher import describe_tools
from .codec import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    FrameError,
    RpcRequest,
    action_response,
    decode_frame,
    encode_frame,
    error_response,
    success_response,
)

LOGGER = logging.getLogger(__name__)

Dispatch = Callable[[ActionRequest], ActionResult]

SERVER_NAME = "ekyte-tools"


class StdioToolServer:
    """Serve tool calls over a pair of text streams.

    Only frames are written to *stdout*; diagnostics go through logging, which
    the CLI points at stderr.
    """

    def __init__(
        self,
        dispatch: Dispatch,
        *,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        self._dispatch = dispatch
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._write_lock = threading.Lock()
        self._stopped = threading.Event()

    def serve_forever(self) -> None:
        """Process frames until end of input or :meth:`stop`."""

        LOGGER.info("Tool server listening on stdio")
        for line in self._stdin:
            if self._stopped.is_set():
                break
            if not line.strip():
                continue
            response = self.handle_line(line)
            if response is not None:
                self._write(response)
        LOGGER.info("Tool server input closed")

    def stop(self) -> None:
        self._stopped.set()

    def handle_line(self, line: str) -> Optional[dict[str, Any]]:
        """Return the response frame for *line*, or ``None`` for notifications."""

        try:
            message = decode_frame(line)
        except FrameError as exc:
            LOGGER.warning("Discarding undecodable frame: %s", exc)
            return error_response(None, PARSE_ERROR, f"Parse error: {exc}")
        try:
            request = RpcRequest.model_validate(message)
        except ValidationError as exc:
            request_id = message.get("id")
            if not isinstance(request_id, (int, str)):
                request_id = None
            return error_response(request_id, INVALID_REQUEST, f"Invalid request: {exc}")
        if request.is_notification:
            LOGGER.debug("Ignoring notification %s", request.method)
            return None
        try:
            return self._handle(request)
        except Exception as exc:  # noqa: BLE001 - keep the loop alive
            LOGGER.exception("Unexpected failure handling %s", request.method)
            return error_response(
                request.id,
                INTERNAL_ERROR,
                f"Internal error: {exc}",
                {"kind": ErrorKind.INTERNAL_ERROR.value},
            )

    def _handle(self, request: RpcRequest) -> dict[str, Any]:
        if request.method == METHOD_INITIALIZE:
            return success_response(
                request.id,
                {
                    "protocolVersion": JSONRPC_VERSION,
                    "serverInfo": {"name": SERVER_NAME, "version": __version__},
                    "capabilities": {"tools": {}},
                },
            )
        if request.method == METHOD_LIST_TOOLS:
            return success_response(request.id, {"tools": describe_tools()})
        if request.method == METHOD_CALL_TOOL:
            name = request.params.get("name")
            arguments = request.params.get("arguments") or {}
            if not isinstance(name, str) or not isinstance(arguments, dict):
                return error_response(
                    request.id,
                    INVALID_PARAMS,
                    "tools/call requires a string 'name' and an object 'arguments'",
                    {"kind": ErrorKind.VALIDATION_ERROR.value},
                )
            result = self._dispatch(ActionRequest(tool=name, arguments=arguments, id=request.id))
            return action_response(result)
        return error_response(request.id, METHOD_NOT_FOUND, f"Unknown method: {request.method}")

    def _write(self, message: dict[str, Any]) -> None:
        frame = encode_frame(message)
        with self._write_lock:
            self._stdout.write(frame)
            self._stdout.flush()
