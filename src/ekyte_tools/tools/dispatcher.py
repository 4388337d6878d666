"""Tool catalogue and the dispatcher that executes validated calls."""

from __future__ import annotations

import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from playwright.sync_api import Error
from pydantic import ValidationError

from ..browser.base import BrowserActionError, InternalToolError
from ..browser.session import BrowserSessionManager
from ..config import ToolsConfig
from ..models import ActionRequest, ActionResult, ErrorKind, RequestId, ToolName
from .actions import PageActions
from .flows import EkyteFlows
from .schemas import (
    AnalyzeMetricsArguments,
    ClickArguments,
    ExploreSectionArguments,
    LoginAndNavigateArguments,
    LoginArguments,
    ManageTaskArguments,
    NavigateAndScreenshotArguments,
    NoArguments,
    ProcessNotificationsArguments,
    ScreenshotArguments,
    SmartSearchArguments,
    ToolArguments,
    TypeArguments,
    UrlArguments,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    """Catalogue entry describing one tool."""

    name: ToolName
    description: str
    arguments: type[ToolArguments]


CATALOGUE: dict[str, ToolSpec] = {
    spec.name.value: spec
    for spec in (
        ToolSpec(ToolName.NAVIGATE, "Navigate the shared page to a URL.", UrlArguments),
        ToolSpec(ToolName.SCREENSHOT, "Capture the current page.", ScreenshotArguments),
        ToolSpec(ToolName.CLICK, "Click an element by CSS selector.", ClickArguments),
        ToolSpec(ToolName.TYPE, "Fill a field by CSS selector.", TypeArguments),
        ToolSpec(ToolName.GET_CONTENT, "Return the full HTML of the page.", NoArguments),
        ToolSpec(ToolName.NEW_TAB, "Open a URL in a new tab.", UrlArguments),
        ToolSpec(
            ToolName.OPEN_IN_SYSTEM_BROWSER,
            "Open a URL in the host's default browser.",
            UrlArguments,
        ),
        ToolSpec(
            ToolName.NAVIGATE_AND_SCREENSHOT,
            "Navigate to a URL and capture it.",
            NavigateAndScreenshotArguments,
        ),
        ToolSpec(ToolName.LOGIN, "Log in to eKyte.", LoginArguments),
        ToolSpec(
            ToolName.LOGIN_AND_NAVIGATE,
            "Log in and capture a page of the application.",
            LoginAndNavigateArguments,
        ),
        ToolSpec(
            ToolName.PROCESS_NOTIFICATIONS,
            "Log in and open each pending notification.",
            ProcessNotificationsArguments,
        ),
        ToolSpec(
            ToolName.EXPLORE_SECTION,
            "Log in and open a section of the navigation menu.",
            ExploreSectionArguments,
        ),
        ToolSpec(
            ToolName.MANAGE_TASK,
            "Log in and list, open, comment on or update a task.",
            ManageTaskArguments,
        ),
        ToolSpec(
            ToolName.ANALYZE_METRICS,
            "Log in and extract dashboard metrics.",
            AnalyzeMetricsArguments,
        ),
        ToolSpec(
            ToolName.SMART_SEARCH,
            "Log in and search, falling back to scanning page text.",
            SmartSearchArguments,
        ),
    )
}


def describe_tools() -> list[dict[str, Any]]:
    """Return catalogue entries with their camelCase JSON schemas."""

    return [
        {
            "name": spec.name.value,
            "description": spec.description,
            "inputSchema": spec.arguments.model_json_schema(by_alias=True),
        }
        for spec in CATALOGUE.values()
    ]


def summarize_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


class ActionDispatcher:
    """Validate tool calls and run them against the shared session."""

    def __init__(
        self,
        session: BrowserSessionManager,
        config: ToolsConfig,
        *,
        open_url: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._session = session
        self._config = config
        self._open_url = open_url
        self._handlers: dict[ToolName, Callable[[Any], dict[str, Any]]] = {
            ToolName.NAVIGATE: self._navigate,
            ToolName.SCREENSHOT: self._screenshot,
            ToolName.CLICK: self._click,
            ToolName.TYPE: self._type,
            ToolName.GET_CONTENT: self._get_content,
            ToolName.NEW_TAB: self._new_tab,
            ToolName.OPEN_IN_SYSTEM_BROWSER: self._open_in_system_browser,
            ToolName.NAVIGATE_AND_SCREENSHOT: self._navigate_and_screenshot,
            ToolName.LOGIN: lambda args: self._flows().login(args),
            ToolName.LOGIN_AND_NAVIGATE: lambda args: self._flows().login_and_navigate(args),
            ToolName.PROCESS_NOTIFICATIONS: lambda args: self._flows().process_notifications(args),
            ToolName.EXPLORE_SECTION: lambda args: self._flows().explore_section(args),
            ToolName.MANAGE_TASK: lambda args: self._flows().manage_task(args),
            ToolName.ANALYZE_METRICS: lambda args: self._flows().analyze_metrics(args),
            ToolName.SMART_SEARCH: lambda args: self._flows().smart_search(args),
        }

    @property
    def session(self) -> BrowserSessionManager:
        return self._session

    def call(
        self,
        tool: str,
        arguments: Optional[Mapping[str, Any]] = None,
        request_id: RequestId = None,
    ) -> ActionResult:
        return self.dispatch(
            ActionRequest(tool=tool, arguments=dict(arguments or {}), id=request_id)
        )

    def dispatch(self, request: ActionRequest) -> ActionResult:
        spec = CATALOGUE.get(request.tool)
        if spec is None:
            LOGGER.warning("Rejected unknown tool %r", request.tool)
            return ActionResult.failure(
                request, ErrorKind.VALIDATION_ERROR, f"Unknown tool: {request.tool}"
            )
        try:
            arguments = spec.arguments.model_validate(request.arguments)
        except ValidationError as exc:
            message = f"Invalid arguments for {request.tool}: {summarize_validation_error(exc)}"
            LOGGER.warning(message)
            return ActionResult.failure(request, ErrorKind.VALIDATION_ERROR, message)

        LOGGER.info("Executing %s", request.tool)
        try:
            data = self._handlers[spec.name](arguments)
        except BrowserActionError as exc:
            LOGGER.warning("%s failed (%s): %s", request.tool, exc.kind.value, exc)
            return ActionResult.failure(request, exc.kind, str(exc), exc.selectors)
        except Error as exc:
            LOGGER.warning("%s failed with a browser error: %s", request.tool, exc)
            return ActionResult.failure(request, ErrorKind.INTERNAL_ERROR, str(exc))
        LOGGER.debug("%s completed: %s", request.tool, sorted(data))
        return ActionResult(id=request.id, tool=request.tool, success=True, data=data)

    # Primitives ----------------------------------------------------------

    def _actions(self) -> PageActions:
        page = self._session.ensure_session()
        return PageActions(page, self._config.browser, self._config.artifacts.screenshots_dir)

    def _flows(self) -> EkyteFlows:
        return EkyteFlows(self._actions(), self._config.app)

    def _navigate(self, args: UrlArguments) -> dict[str, Any]:
        return {"url": self._actions().navigate(args.url)}

    def _screenshot(self, args: ScreenshotArguments) -> dict[str, Any]:
        return self._actions().screenshot(args.path, full_page=args.full_page)

    def _click(self, args: ClickArguments) -> dict[str, Any]:
        self._actions().click(args.selector, timeout=args.timeout)
        return {"selector": args.selector}

    def _type(self, args: TypeArguments) -> dict[str, Any]:
        self._actions().fill(args.selector, args.text, timeout=args.timeout)
        return {"selector": args.selector}

    def _get_content(self, args: NoArguments) -> dict[str, Any]:
        return {"content": self._session.ensure_session().content()}

    def _new_tab(self, args: UrlArguments) -> dict[str, Any]:
        primary = self._session.ensure_session()
        tab = primary.context.new_page()
        self._session.configure_page(tab)
        actions = PageActions(tab, self._config.browser, self._config.artifacts.screenshots_dir)
        try:
            url = actions.navigate(args.url)
        except BrowserActionError:
            tab.close()
            raise
        tab.bring_to_front()
        return {"url": url}

    def _open_in_system_browser(self, args: UrlArguments) -> dict[str, Any]:
        try:
            opened = self._open_url(args.url)
        except webbrowser.Error as exc:
            raise InternalToolError(f"Could not open {args.url}: {exc}") from exc
        if not opened:
            raise InternalToolError(f"No system browser available to open {args.url}")
        return {"url": args.url}

    def _navigate_and_screenshot(self, args: NavigateAndScreenshotArguments) -> dict[str, Any]:
        actions = self._actions()
        actions.navigate(args.url, wait_until="domcontentloaded")
        shot = actions.screenshot(args.path, full_page=args.full_page)
        return {"url": shot["currentUrl"], "path": shot["path"], "title": shot["title"]}
