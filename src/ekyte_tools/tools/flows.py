"""Composite eKyte flows built on the shared login sequence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from playwright.sync_api import Error

from ..artifacts import derive_screenshot_path
from ..browser.base import BrowserActionError, ElementNotFoundError, PageLoadFailedError
from ..browser.selectors import SelectorTable, SelectorTarget, resolve_with_fallback
from ..config import AppConfig
from ..models import TaskAction
from .actions import PageActions, _ms
from .schemas import (
    AnalyzeMetricsArguments,
    CredentialArguments,
    ExploreSectionArguments,
    LoginAndNavigateArguments,
    LoginArguments,
    ManageTaskArguments,
    ProcessNotificationsArguments,
    SmartSearchArguments,
)

LOGGER = logging.getLogger(__name__)

MAX_LISTED_TASKS = 10
TASK_TEXT_LIMIT = 200

_CLICK_LINK_BY_TEXT = """
(needles) => {
  const links = Array.from(document.querySelectorAll('a, .nav-link'));
  const link = links.find((el) => {
    const text = (el.textContent || '').toLowerCase();
    return needles.some((needle) => text.includes(needle));
  });
  if (!link) return false;
  link.click();
  return true;
}
"""

_EXTRACT_METRICS = """
() => {
  const firstNumber = (text) => {
    const match = (text || '').match(/\\d+/);
    return match ? parseInt(match[0], 10) : 0;
  };
  const tickets = document.querySelector('[class*="ticket"], .metric-tickets');
  const tasks = document.querySelector('[class*="task"], .metric-tasks');
  const times = document.querySelectorAll('[class*="time"], [class*="hour"]');
  return {
    tickets: tickets ? firstNumber(tickets.textContent) : 0,
    tasks: tasks ? firstNumber(tasks.textContent) : 0,
    timeToday: Array.from(times)
      .map((el) => (el.textContent || '').trim())
      .filter((text) => text.includes('%')),
    timestamp: new Date().toISOString(),
  };
}
"""

_MANUAL_SEARCH = """
(term) => {
  const needle = term.toLowerCase();
  return document.body.innerText
    .toLowerCase()
    .split(/[.!?]/)
    .filter((sentence) => sentence.includes(needle))
    .slice(0, 5)
    .map((sentence) => sentence.trim());
}
"""


@dataclass
class LoginOutcome:
    """Selectors that completed the login form."""

    email_selector: str
    password_selector: str
    submit_selector: str
    before_screenshot: Optional[str] = None


class EkyteFlows:
    """Multi-step eKyte workflows executed on the primary page."""

    def __init__(self, actions: PageActions, config: AppConfig) -> None:
        self._actions = actions
        self._config = config

    @property
    def _page(self):
        return self._actions.page

    @property
    def _selectors(self) -> SelectorTable:
        return self._config.selectors

    # Shared sequence -----------------------------------------------------

    def sign_in(
        self, credentials: CredentialArguments, *, before_screenshot: Optional[str] = None
    ) -> LoginOutcome:
        """Fill and submit the login form, then wait until the app leaves it."""

        actions = self._actions
        actions.navigate(self._config.login_url)
        email_candidates = self._selectors.candidates(SelectorTarget.EMAIL_INPUT)
        actions.wait_for_any(email_candidates, timeout=self._config.field_timeout)
        email = actions.fill_first(
            email_candidates,
            credentials.email,
            target="email field",
            timeout=self._config.selector_timeout,
        )
        password = actions.fill_first(
            self._selectors.candidates(SelectorTarget.PASSWORD_INPUT),
            credentials.password.get_secret_value(),
            target="password field",
            timeout=self._config.selector_timeout,
        )
        before_path = None
        if before_screenshot:
            before_path = actions.screenshot(before_screenshot, full_page=True)["path"]
        before = self._page.url
        submit = actions.click_first(
            self._selectors.candidates(SelectorTarget.SUBMIT_BUTTON),
            target="login button",
            timeout=self._config.selector_timeout,
        )
        self._wait_for_redirect(before)
        actions.settle()
        LOGGER.info("Logged in as %s; now at %s", credentials.email, self._page.url)
        return LoginOutcome(email.selector, password.selector, submit.selector, before_path)

    def _wait_for_redirect(self, before: str) -> None:
        timeout = self._config.post_submit_timeout
        try:
            self._page.wait_for_url(lambda url: url != before, timeout=_ms(timeout))
        except Error as exc:
            raise PageLoadFailedError(
                f"Login did not leave {before} within {timeout}s"
            ) from exc

    # Flows ---------------------------------------------------------------

    def login(self, args: LoginArguments) -> dict[str, Any]:
        before = after = None
        if args.screenshot_path:
            before = derive_screenshot_path(args.screenshot_path, "before-login")
            after = derive_screenshot_path(args.screenshot_path, "after-login")
        outcome = self.sign_in(args, before_screenshot=before)
        data: dict[str, Any] = {
            "email": args.email,
            "submitSelector": outcome.submit_selector,
        }
        if after:
            shot = self._actions.screenshot(after, full_page=True)
            data["screenshots"] = [outcome.before_screenshot, shot["path"]]
        data.update(self._state())
        return data

    def login_and_navigate(self, args: LoginAndNavigateArguments) -> dict[str, Any]:
        self.sign_in(args)
        self._actions.navigate(args.target_url)
        shot = self._actions.screenshot(args.screenshot_path, full_page=args.full_page)
        return {
            "email": args.email,
            "targetUrl": args.target_url,
            "currentUrl": shot["currentUrl"],
            "title": shot["title"],
            "screenshotPath": shot["path"],
        }

    def process_notifications(self, args: ProcessNotificationsArguments) -> dict[str, Any]:
        self.sign_in(args)
        base = args.screenshot_path
        screenshots = [
            self._actions.screenshot(derive_screenshot_path(base, "initial"), full_page=True)["path"]
        ]
        selector, total = self._first_present(
            self._selectors.candidates(SelectorTarget.NOTIFICATION_ITEM)
        )
        processed: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []
        for index in range(min(total, args.max_notifications)):
            number = index + 1
            try:
                item = self._page.locator(selector).nth(index)
                text = (item.text_content(timeout=self._selector_ms()) or "").strip()
                item.click(timeout=self._selector_ms())
                self._actions.settle()
                shot = self._actions.screenshot(
                    derive_screenshot_path(base, f"notification-{number}"), full_page=True
                )
                self._page.go_back(wait_until="domcontentloaded")
                self._actions.settle()
            except (Error, BrowserActionError) as exc:
                LOGGER.warning("Notification %s could not be processed: %s", number, exc)
                failed.append({"index": number, "error": str(exc)})
                continue
            screenshots.append(shot["path"])
            processed.append({"index": number, "text": text, "screenshot": shot["path"]})
        screenshots.append(
            self._actions.screenshot(derive_screenshot_path(base, "final"), full_page=True)["path"]
        )
        return {
            "totalNotifications": total,
            "processedCount": len(processed),
            "processed": processed,
            "failed": failed,
            "screenshots": screenshots,
        }

    def explore_section(self, args: ExploreSectionArguments) -> dict[str, Any]:
        self.sign_in(args)
        section = args.section
        candidates = self._selectors.candidates(
            SelectorTarget.SECTION_LINK, fragment=section.href_fragment, label=section.label
        )
        selector: Optional[str] = None
        try:
            selector = self._actions.click_first(
                candidates,
                target=f"section {section.value}",
                timeout=self._config.selector_timeout,
            ).selector
            method = "selector"
        except ElementNotFoundError as exc:
            LOGGER.info("Section links missed; matching link text for %s", section.value)
            needles = sorted({section.value, section.label.lower()})
            if not self._page.evaluate(_CLICK_LINK_BY_TEXT, needles):
                raise ElementNotFoundError(
                    f"No link found for section {section.value}", selectors=exc.selectors
                ) from exc
            method = "text"
        self._actions.settle()
        shot = self._actions.screenshot(args.screenshot_path, full_page=True)
        data: dict[str, Any] = {
            "section": section.value,
            "currentUrl": shot["currentUrl"],
            "title": shot["title"],
            "screenshotPath": shot["path"],
            "method": method,
        }
        if selector:
            data["selector"] = selector
        return data

    def manage_task(self, args: ManageTaskArguments) -> dict[str, Any]:
        self.sign_in(args)
        self._open_tasks()
        data: dict[str, Any] = {"action": args.action.value}
        if args.action == TaskAction.LIST:
            data.update(self._list_tasks())
        else:
            assert args.task_id is not None
            data["taskId"] = args.task_id
            data["selector"] = self._open_task(args.task_id)
            if args.action == TaskAction.COMMENT:
                assert args.comment is not None
                self._comment(args.comment)
                data["comment"] = args.comment
            elif args.action == TaskAction.UPDATE_STATUS:
                assert args.status is not None
                self._update_status(args.status)
                data["status"] = args.status
        shot = self._actions.screenshot(args.screenshot_path, full_page=True)
        data["screenshotPath"] = shot["path"]
        data["currentUrl"] = shot["currentUrl"]
        return data

    def analyze_metrics(self, args: AnalyzeMetricsArguments) -> dict[str, Any]:
        self.sign_in(args)
        metrics = self._page.evaluate(_EXTRACT_METRICS)
        shot = self._actions.screenshot(args.screenshot_path, full_page=True)
        LOGGER.info("Extracted metrics: %s", metrics)
        return {
            "metrics": metrics,
            "screenshotPath": shot["path"],
            "analysisDate": datetime.now(timezone.utc).isoformat(),
        }

    def smart_search(self, args: SmartSearchArguments) -> dict[str, Any]:
        self.sign_in(args)
        timeout = self._config.selector_timeout

        def submit(selector: str) -> None:
            self._actions.fill(selector, args.search_term, timeout=timeout)
            self._actions.press(selector, "Enter", timeout=timeout)

        data: dict[str, Any] = {"searchTerm": args.search_term}
        try:
            outcome = resolve_with_fallback(
                self._selectors.candidates(SelectorTarget.SEARCH_INPUT),
                submit,
                target="search field",
            )
        except ElementNotFoundError:
            LOGGER.info("No search field; scanning page text for %r", args.search_term)
            data["method"] = "manual"
            data["results"] = self._page.evaluate(_MANUAL_SEARCH, args.search_term)
        else:
            self._actions.settle()
            data["method"] = "search_field"
            data["selector"] = outcome.selector
        shot = self._actions.screenshot(args.screenshot_path, full_page=True)
        data["screenshotPath"] = shot["path"]
        return data

    # Helpers -------------------------------------------------------------

    def _open_tasks(self) -> None:
        try:
            self._actions.click_first(
                self._selectors.candidates(SelectorTarget.TASKS_NAVIGATION),
                target="tasks menu",
                timeout=self._config.selector_timeout,
            )
        except ElementNotFoundError:
            LOGGER.info("Tasks menu not found; opening %s directly", self._config.tasks_url)
            self._actions.navigate(self._config.tasks_url)
            return
        self._actions.settle()

    def _list_tasks(self) -> dict[str, Any]:
        selector, total = self._first_present(self._selectors.candidates(SelectorTarget.TASK_ITEM))
        tasks: list[dict[str, Any]] = []
        for index in range(min(total, MAX_LISTED_TASKS)):
            text = self._page.locator(selector).nth(index).text_content(
                timeout=self._selector_ms()
            )
            tasks.append({"index": index + 1, "text": (text or "").strip()[:TASK_TEXT_LIMIT]})
        return {"totalTasks": total, "tasks": tasks}

    def _open_task(self, task_id: str) -> str:
        outcome = self._actions.click_first(
            self._selectors.candidates(SelectorTarget.TASK_LINK, task_id=task_id),
            target=f"task {task_id}",
            timeout=self._config.selector_timeout,
        )
        self._actions.settle()
        return outcome.selector

    def _comment(self, comment: str) -> None:
        self._actions.fill_first(
            self._selectors.candidates(SelectorTarget.COMMENT_INPUT),
            comment,
            target="comment box",
            timeout=self._config.field_timeout,
        )
        self._actions.click_first(
            self._selectors.candidates(SelectorTarget.COMMENT_SUBMIT),
            target="comment button",
            timeout=self._config.selector_timeout,
        )
        self._actions.settle()

    def _update_status(self, status: str) -> None:
        self._actions.click_first(
            self._selectors.candidates(SelectorTarget.STATUS_CONTROL),
            target="status control",
            timeout=self._config.selector_timeout,
        )
        self._actions.click_first(
            self._selectors.candidates(SelectorTarget.STATUS_OPTION, status=status),
            target=f"status {status!r}",
            timeout=self._config.selector_timeout,
        )
        self._actions.settle()

    def _first_present(self, candidates: Sequence[str]) -> tuple[str, int]:
        """Return the first candidate matching any element and its match count."""

        for selector in candidates:
            try:
                count = self._page.locator(selector).count()
            except Error as exc:
                LOGGER.debug("Selector %r could not be counted: %s", selector, exc)
                continue
            if count:
                return selector, count
        return "", 0

    def _state(self) -> dict[str, str]:
        state = self._actions.state()
        return {"currentUrl": state.url or "", "title": state.title or ""}

    def _selector_ms(self) -> float:
        return _ms(self._config.selector_timeout)
