"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Callable, Literal, Optional, Sequence

from .browser.session import BrowserSessionManager
from .browser.worker import BrowserWorker
from .config import BrowserConfig, ToolsConfig, TransportConfig
from .models import ActionRequest, ActionResult
from .notifications.base import ConsoleNotifier, Notifier, SilentNotifier
from .tools.dispatcher import ActionDispatcher
from .transport.client import (
    FallbackToolClient,
    LocalToolClient,
    OneShotToolClient,
    StdioToolClient,
    ToolClient,
)
from .transport.http import HttpToolClient

ClientMode = Literal["stdio", "oneshot", "http", "local"]
Dispatch = Callable[[ActionRequest], ActionResult]


def build_session_manager(config: BrowserConfig) -> BrowserSessionManager:
    return BrowserSessionManager(config)


def build_worker(config: ToolsConfig) -> BrowserWorker:
    return BrowserWorker(build_session_manager(config.browser))


def build_dispatcher(worker: BrowserWorker, config: ToolsConfig) -> Dispatch:
    """Return a dispatch callable that runs every action on the worker thread."""

    dispatcher = ActionDispatcher(worker.session, config)
    config.artifacts.ensure()

    def dispatch(request: ActionRequest) -> ActionResult:
        return worker.call(dispatcher.dispatch, request)

    return dispatch


def build_notifier(quiet: bool = False) -> Notifier:
    if quiet:
        return SilentNotifier()
    return ConsoleNotifier()


def build_client(
    config: TransportConfig,
    mode: ClientMode = "stdio",
    *,
    dispatch: Optional[Dispatch] = None,
    server_options: Sequence[str] = (),
) -> ToolClient:
    """Build a client for *mode*.

    *server_options* are passed to the spawned ``serve`` or ``call`` command so
    the child process loads the same configuration as the caller.
    """

    if mode == "local":
        if dispatch is None:
            raise ValueError("The local client needs a dispatch function")
        return LocalToolClient(dispatch)
    if mode == "http":
        return HttpToolClient(
            f"http://{config.host}:{config.port}", timeout=config.request_timeout
        )
    oneshot = OneShotToolClient(
        config.command, timeout=config.oneshot_timeout, options=server_options
    )
    if mode == "oneshot":
        return oneshot
    if mode == "stdio":
        stdio = StdioToolClient(
            [*config.command, "serve", *server_options], timeout=config.request_timeout
        )
        return FallbackToolClient(stdio, oneshot)
    raise ValueError(f"Unsupported client mode: {mode}")
