"""HTTP service exposing the tool catalogue, and a matching httpx client."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
from fastapi import Body, FastAPI
from pydantic import ValidationError

from .. import __version__
from ..models import ActionRequest, ActionResult
from ..tools.dispatcher import describe_tools
from .client import ToolClient, ToolTimeoutError, ToolTransportError

LOGGER = logging.getLogger(__name__)

Dispatch = Callable[[ActionRequest], ActionResult]
StatusProvider = Callable[[], Dict[str, Any]]


def create_app(dispatch: Dispatch, status: Optional[StatusProvider] = None) -> FastAPI:
    app = FastAPI(title="eKyte Tools", version=__version__)
    request_ids = itertools.count(1)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": "ok"}
        if status is not None:
            payload["session"] = status()
        return payload

    @app.get("/tools")
    def list_tools() -> Dict[str, Any]:
        return {"tools": describe_tools()}

    @app.post("/tools/{name}", response_model=ActionResult)
    def call_tool(
        name: str,
        arguments: Optional[Dict[str, Any]] = Body(default=None),
    ) -> ActionResult:
        request = ActionRequest(tool=name, arguments=arguments or {}, id=next(request_ids))
        return dispatch(request)

    return app


class HttpToolClient(ToolClient):
    """Call tools on a running ``ekyte-tools http`` service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ActionResult:
        try:
            response = self._client.post(f"/tools/{name}", json=dict(arguments or {}))
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ToolTimeoutError(f"{name} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ToolTransportError(f"HTTP call to {name} failed: {exc}") from exc
        try:
            return ActionResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ToolTransportError(f"Invalid response for {name}: {exc}") from exc

    def health(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/health")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ToolTransportError(f"Health check failed: {exc}") from exc
        return response.json()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
