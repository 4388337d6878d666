"""Execute scenarios through a tool client and record the session log."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from ..analysis import analyze_content, learnings_from
from ..browser.base import BrowserActionError
from ..browser.selectors import resolve_with_fallback
from ..models import NotificationEvent, NotificationLevel
from ..notifications.base import Notifier, SilentNotifier
from ..session_log import SessionLog, SessionRecorder
from ..transport.client import ToolClient, ToolTransportError
from .models import Scenario, ScenarioStep

LOGGER = logging.getLogger(__name__)


class ScenarioRunner:
    """Run every step, record the outcome, and keep going after failures."""

    def __init__(
        self,
        client: ToolClient,
        *,
        recorder: Optional[SessionRecorder] = None,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        selector_timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._recorder = recorder or SessionRecorder()
        self._notifier = notifier or SilentNotifier()
        self._sleep = sleep
        self._selector_timeout = selector_timeout

    @property
    def recorder(self) -> SessionRecorder:
        return self._recorder

    def run(self, scenario: Scenario) -> SessionLog:
        log = self._recorder.log
        log.scenario = scenario.name
        self._notify("scenario_started", f"Running scenario {scenario.name}")
        for step in scenario.steps:
            succeeded = self._run_step(step)
            if not succeeded and not scenario.continue_on_failure:
                self._notify(
                    "scenario_aborted",
                    f"Stopping after failed step: {step.label}",
                    level=NotificationLevel.WARNING,
                )
                break
            if step.wait_seconds:
                self._sleep(step.wait_seconds)
        failed = len(log.failed_steps)
        self._notify(
            "scenario_finished",
            f"{len(log.steps) - failed}/{len(log.steps)} steps succeeded",
            level=NotificationLevel.SUCCESS if not failed else NotificationLevel.WARNING,
            data={"screenshots": len(log.screenshots), "learnings": len(log.learnings)},
        )
        return log

    def _run_step(self, step: ScenarioStep) -> bool:
        try:
            data = self._execute(step)
        except BrowserActionError as exc:
            details = {"kind": exc.kind.value}
            if exc.selectors:
                details["selectors"] = exc.selectors
            self._recorder.add_step(step.label, False, details=details, error=str(exc))
            self._notify("step_failed", f"{step.label}: {exc}", level=NotificationLevel.ERROR)
            return False
        except ToolTransportError as exc:
            self._recorder.add_step(step.label, False, error=str(exc))
            self._notify("step_failed", f"{step.label}: {exc}", level=NotificationLevel.ERROR)
            return False

        self._collect_screenshots(data)
        details = self._details(step, data)
        self._recorder.add_step(step.label, True, details=details)
        self._notify("step_succeeded", step.label, level=NotificationLevel.SUCCESS)
        return True

    def _execute(self, step: ScenarioStep) -> dict[str, Any]:
        if not step.selectors:
            return self._client.call(step.tool, step.arguments)

        results: dict[str, dict[str, Any]] = {}

        def attempt(selector: str) -> None:
            arguments = {**step.arguments, "selector": selector}
            if self._selector_timeout is not None:
                # A miss must come back before the transport gives up on the call.
                arguments.setdefault("timeout", self._selector_timeout)
            results[selector] = self._client.call(step.tool, arguments)

        outcome = resolve_with_fallback(
            step.selectors,
            attempt,
            target=step.label,
            on_attempt=self._report_attempt,
        )
        return {
            **results[outcome.selector],
            "selector": outcome.selector,
            "attempted": outcome.attempted,
        }

    def _report_attempt(
        self, selector: str, succeeded: bool, error: Optional[BrowserActionError]
    ) -> None:
        if succeeded:
            self._notify("selector_matched", f"Selector {selector} worked")
        else:
            self._notify(
                "selector_missed",
                f"Selector {selector} failed: {error}",
                level=NotificationLevel.WARNING,
            )

    def _collect_screenshots(self, data: dict[str, Any]) -> None:
        for key in ("path", "screenshotPath"):
            value = data.get(key)
            if isinstance(value, str):
                self._recorder.add_screenshot(value)
        for value in data.get("screenshots") or []:
            if isinstance(value, str):
                self._recorder.add_screenshot(value)

    def _details(self, step: ScenarioStep, data: dict[str, Any]) -> dict[str, Any]:
        content = data.get("content")
        if not isinstance(content, str):
            return data
        details = {key: value for key, value in data.items() if key != "content"}
        if step.analyze:
            analysis = analyze_content(content)
            for learning in learnings_from(analysis):
                self._recorder.add_learning(learning)
            details["analysis"] = analysis
        else:
            details["contentLength"] = len(content)
        return details

    def _notify(
        self,
        kind: str,
        message: str,
        *,
        level: NotificationLevel = NotificationLevel.INFO,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        LOGGER.debug("%s: %s", kind, message)
        self._notifier.notify(
            NotificationEvent(type=kind, message=message, level=level, data=data or {})
        )
