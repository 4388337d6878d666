"""Clients that invoke tools in-process, over stdio or through a subprocess."""

from __future__ import annotations

import itertools
import json
import logging
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import IO, Any, Callable, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..browser.base import error_for_kind
from ..models import ActionRequest, ActionResult
from .codec import (
    FrameError,
    RpcResponse,
    decode_frame,
    encode_frame,
    response_to_result,
    tool_call_request,
)

LOGGER = logging.getLogger(__name__)


class ToolTransportError(RuntimeError):
    """The channel to the tool server is unavailable."""


class ToolTimeoutError(ToolTransportError):
    """A tool call received no response in time."""


def unwrap(result: ActionResult) -> dict[str, Any]:
    """Return ``result.data`` or raise the classified error it carries."""

    if result.success:
        return result.data
    error = result.error
    if error is None:
        raise error_for_kind("InternalError", f"{result.tool} failed without an error")
    raise error_for_kind(error.kind, error.message, selectors=error.selectors)


class ToolClient(ABC):
    """Interface shared by every way of reaching the tools."""

    @abstractmethod
    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        """Run *name* and return its result, successful or not."""

    def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Run *name* and return its data, raising on failure."""

        return unwrap(self.invoke(name, arguments))

    def close(self) -> None:
        """Release transport resources."""

    def __enter__(self) -> "ToolClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class LocalToolClient(ToolClient):
    """Call a dispatch function in the same process."""

    def __init__(self, dispatch: Callable[[ActionRequest], ActionResult]) -> None:
        self._dispatch = dispatch
        self._ids = itertools.count(1)

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        request = ActionRequest(tool=name, arguments=dict(arguments or {}), id=next(self._ids))
        return self._dispatch(request)


class _PendingCall:
    def __init__(self) -> None:
        self._done = threading.Event()
        self.response: Optional[RpcResponse] = None
        self.error: Optional[ToolTransportError] = None

    def resolve(self, response: RpcResponse) -> None:
        self.response = response
        self._done.set()

    def fail(self, error: ToolTransportError) -> None:
        self.error = error
        self._done.set()

    def wait(self, timeout: float) -> bool:
        return self._done.wait(timeout)


class StdioToolClient(ToolClient):
    """Talk to a long-running ``serve`` process over its stdin/stdout.

    Requests carry increasing integer ids and wait in a pending table; a
    reader thread resolves them as responses arrive, in any order.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        timeout: float = 30.0,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self._command = list(command)
        self._timeout = timeout
        self._popen = popen
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._pending: dict[int, _PendingCall] = {}
        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._eof = threading.Event()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def start(self) -> None:
        with self._lock:
            if self._process is not None and not self._eof.is_set():
                return
            LOGGER.info("Starting tool server: %s", " ".join(self._command))
            try:
                process = self._popen(
                    self._command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    bufsize=1,
                )
            except OSError as exc:
                raise ToolTransportError(f"Could not start tool server: {exc}") from exc
            self._process = process
            self._eof = threading.Event()
            self._reader = threading.Thread(
                target=self._read_loop,
                args=(process.stdout, self._eof),
                name="tool-client-reader",
                daemon=True,
            )
            self._reader.start()

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        self.start()
        request_id = next(self._ids)
        pending = _PendingCall()
        with self._lock:
            if self._eof.is_set():
                raise ToolTransportError("Tool server is not running")
            self._pending[request_id] = pending
        try:
            self._send(tool_call_request(request_id, name, arguments or {}))
            if not pending.wait(self._timeout):
                raise ToolTimeoutError(f"{name} got no response within {self._timeout}s")
        finally:
            with self._lock:
                self._pending.pop(request_id, None)
        if pending.error is not None:
            raise pending.error
        assert pending.response is not None
        return response_to_result(pending.response, name)

    def close(self) -> None:
        with self._lock:
            process, self._process = self._process, None
            reader, self._reader = self._reader, None
        if process is None:
            return
        try:
            if process.stdin:
                process.stdin.close()
        except OSError as exc:
            LOGGER.debug("Closing tool server stdin failed: %s", exc)
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            LOGGER.warning("Tool server did not exit; killing it")
            process.kill()
            process.wait()
        if reader is not None:
            reader.join(timeout=2)

    def _send(self, message: dict[str, Any]) -> None:
        process = self._process
        if process is None or process.stdin is None:
            raise ToolTransportError("Tool server is not running")
        with self._write_lock:
            try:
                process.stdin.write(encode_frame(message))
                process.stdin.flush()
            except (OSError, ValueError) as exc:
                raise ToolTransportError(f"Could not write to tool server: {exc}") from exc

    def _read_loop(self, stream: Optional[IO[str]], eof: threading.Event) -> None:
        if stream is not None:
            for line in stream:
                self._handle_line(line)
        with self._lock:
            eof.set()
            pending = list(self._pending.values())
        for call in pending:
            call.fail(ToolTransportError("Tool server closed the connection"))
        LOGGER.info("Tool server output closed")

    def _handle_line(self, line: str) -> None:
        try:
            response = RpcResponse.model_validate(decode_frame(line))
        except (FrameError, ValidationError) as exc:
            LOGGER.debug("Discarding unreadable frame: %s", exc)
            return
        with self._lock:
            pending = self._pending.get(response.id) if isinstance(response.id, int) else None
        if pending is None:
            LOGGER.debug("Discarding response for unknown id %r", response.id)
            return
        pending.resolve(response)


def last_json_object(output: str) -> Optional[dict[str, Any]]:
    """Return the last line of *output* that decodes to a JSON object."""

    for line in reversed(output.splitlines()):
        if not line.strip().startswith("{"):
            continue
        try:
            return decode_frame(line)
        except FrameError:
            continue
    return None


class OneShotToolClient(ToolClient):
    """Run ``<command> call [options] <tool> <json>`` once per invocation."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        timeout: float = 120.0,
        options: Sequence[str] = (),
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._command = list(command)
        self._options = list(options)
        self._timeout = timeout
        self._run = run

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        argv = [*self._command, "call", *self._options, name, json.dumps(dict(arguments or {}))]
        LOGGER.info("Running one-shot tool call %s", name)
        try:
            completed = self._run(
                argv,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ToolTimeoutError(f"{name} did not finish within {self._timeout}s") from exc
        except OSError as exc:
            raise ToolTransportError(f"Could not run tool command: {exc}") from exc
        payload = last_json_object(completed.stdout or "")
        if payload is None:
            stderr_tail = (completed.stderr or "").strip().splitlines()[-5:]
            raise ToolTransportError(
                f"{name} exited with status {completed.returncode} without a result: "
                + " | ".join(stderr_tail)
            )
        try:
            return ActionResult.model_validate(payload)
        except ValidationError as exc:
            raise ToolTransportError(f"{name} printed an invalid result: {exc}") from exc


class FallbackToolClient(ToolClient):
    """Prefer *primary*; switch to *fallback* when its channel is unavailable.

    Timeouts are not retried: the call may still be running on the server.
    """

    def __init__(self, primary: ToolClient, fallback: ToolClient) -> None:
        self._primary = primary
        self._fallback = fallback

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        try:
            return self._primary.invoke(name, arguments)
        except ToolTimeoutError:
            raise
        except ToolTransportError as exc:
            LOGGER.warning("Primary transport failed for %s (%s); retrying once", name, exc)
        return self._fallback.invoke(name, arguments)

    def close(self) -> None:
        try:
            self._primary.close()
        finally:
            self._fallback.close()
