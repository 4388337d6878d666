"""Page-level helpers that classify Playwright failures."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from playwright.sync_api import Error, Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..artifacts import resolve_screenshot_path
from ..browser.base import BrowserState, ElementNotFoundError, PageLoadFailedError
from ..browser.selectors import AttemptCallback, FallbackOutcome, resolve_with_fallback
from ..config import BrowserConfig, WaitPolicy

LOGGER = logging.getLogger(__name__)


class PageActions:
    """Navigation, interaction and capture on a single page."""

    def __init__(self, page: Page, config: BrowserConfig, screenshots_dir: Path) -> None:
        self.page = page
        self._config = config
        self._screenshots_dir = screenshots_dir

    def navigate(self, url: str, *, wait_until: Optional[WaitPolicy] = None) -> str:
        policy = wait_until or self._config.wait_until
        LOGGER.info("Navigating to %s (wait_until=%s)", url, policy)
        try:
            self.page.goto(url, wait_until=policy, timeout=_ms(self._config.page_timeout))
        except Error as exc:
            raise PageLoadFailedError(f"Failed to navigate to {url}: {exc}") from exc
        self.settle()
        return self.page.url

    def settle(self) -> None:
        """Wait for client-side rendering to finish.

        Network idle is the readiness signal; the fixed sleep only runs when
        the page keeps the network busy past the budget and is a known source
        of flakiness.
        """

        if self._config.settle_timeout > 0:
            try:
                self.page.wait_for_load_state("networkidle", timeout=_ms(self._config.settle_timeout))
                return
            except PlaywrightTimeoutError:
                LOGGER.debug("Network did not go idle within %ss", self._config.settle_timeout)
        if self._config.settle_fallback > 0:
            self.page.wait_for_timeout(_ms(self._config.settle_fallback))

    def screenshot(self, path: str, *, full_page: bool = False) -> dict[str, str]:
        target = resolve_screenshot_path(path, self._screenshots_dir)
        target.parent.mkdir(parents=True, exist_ok=True)
        state = self.state()
        LOGGER.info("Saving screenshot of %s to %s", state.url, target)
        self.page.screenshot(path=str(target), full_page=full_page)
        return {"path": str(target), "currentUrl": state.url or "", "title": state.title or ""}

    def click(self, selector: str, *, timeout: Optional[float] = None) -> None:
        try:
            self.page.click(selector, timeout=self._timeout(timeout))
        except Error as exc:
            raise ElementNotFoundError(
                f"Could not click {selector}: {exc}", selectors=[selector]
            ) from exc

    def fill(self, selector: str, text: str, *, timeout: Optional[float] = None) -> None:
        try:
            self.page.fill(selector, text, timeout=self._timeout(timeout))
        except Error as exc:
            raise ElementNotFoundError(
                f"Could not type into {selector}: {exc}", selectors=[selector]
            ) from exc

    def press(self, selector: str, key: str, *, timeout: Optional[float] = None) -> None:
        try:
            self.page.press(selector, key, timeout=self._timeout(timeout))
        except Error as exc:
            raise ElementNotFoundError(
                f"Could not press {key} on {selector}: {exc}", selectors=[selector]
            ) from exc

    def wait_for_any(self, selectors: Sequence[str], *, timeout: float) -> None:
        """Wait until any of *selectors* is visible."""

        union = ", ".join(selectors)
        try:
            self.page.wait_for_selector(union, timeout=_ms(timeout), state="visible")
        except Error as exc:
            raise ElementNotFoundError(
                f"None of the selectors appeared within {timeout}s: {union}",
                selectors=list(selectors),
            ) from exc

    def click_first(
        self,
        candidates: Sequence[str],
        *,
        target: str,
        timeout: float,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> FallbackOutcome:
        return resolve_with_fallback(
            candidates,
            lambda selector: self.click(selector, timeout=timeout),
            target=target,
            on_attempt=on_attempt,
        )

    def fill_first(
        self,
        candidates: Sequence[str],
        text: str,
        *,
        target: str,
        timeout: float,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> FallbackOutcome:
        return resolve_with_fallback(
            candidates,
            lambda selector: self.fill(selector, text, timeout=timeout),
            target=target,
            on_attempt=on_attempt,
        )

    def state(self) -> BrowserState:
        return BrowserState(url=self.page.url, title=self.page.title())

    def _timeout(self, timeout: Optional[float]) -> float:
        return _ms(timeout if timeout is not None else self._config.page_timeout)


def _ms(seconds: float) -> float:
    return seconds * 1000
