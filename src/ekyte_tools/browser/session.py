"""Playwright-powered shared browser session."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from playwright.sync_api import Browser, Error, Page, sync_playwright

from ..config import BrowserConfig
from .base import BrowserLaunchError

LOGGER = logging.getLogger(__name__)

Launcher = Callable[[BrowserConfig], tuple[Any, Browser]]


def launch_chromium(config: BrowserConfig) -> tuple[Any, Browser]:
    """Start the Playwright driver and launch Chromium with *config*."""

    playwright = sync_playwright().start()
    try:
        browser = playwright.chromium.launch(
            headless=config.headless,
            args=list(config.launch_args),
        )
    except Exception:
        playwright.stop()
        raise
    return playwright, browser


@dataclass
class SessionStatus:
    """Point-in-time view of the session for health reporting."""

    live: bool
    launches: int
    idle_seconds: Optional[float]
    page_url: Optional[str]


class BrowserSessionManager:
    """Own a single reusable browser and primary page.

    Playwright's sync API is bound to the thread that started it, so every
    method must be called from the same thread (see :class:`BrowserWorker`).
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        *,
        launcher: Launcher = launch_chromium,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or BrowserConfig()
        self._launcher = launcher
        self._clock = clock
        self._playwright: Any = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None
        self._last_activity: Optional[float] = None
        self._launches = 0

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def is_live(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def page(self) -> Optional[Page]:
        return self._page

    def ensure_session(self) -> Page:
        """Return the primary page, launching or reattaching as needed."""

        if self.is_live and self._idle_expired():
            LOGGER.info("Browser idle for more than %ss; relaunching", self._config.idle_timeout)
            self.close()
        if not self.is_live:
            self._launch()
        else:
            LOGGER.debug("Reusing existing browser")
        if self._page is None or self._page.is_closed():
            self._page = self._acquire_page()
        else:
            LOGGER.debug("Reusing existing page")
        self._last_activity = self._clock()
        return self._page

    def touch(self) -> None:
        self._last_activity = self._clock()

    def reap_if_idle(self) -> bool:
        """Close an idle session, or stop a driver orphaned by a disconnect."""

        if self._browser is None:
            if self._playwright is None:
                return False
            LOGGER.info("Stopping the Playwright driver left after a disconnect")
            self.close()
            return True
        if not self._idle_expired():
            return False
        LOGGER.info("Closing browser after %ss of inactivity", self._config.idle_timeout)
        self.close()
        return True

    def close(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._page = None
        self._playwright = None
        self._last_activity = None
        try:
            if browser is not None and browser.is_connected():
                LOGGER.debug("Closing browser")
                browser.close()
        except Error as exc:
            LOGGER.warning("Browser close failed: %s", exc)
        finally:
            if playwright is not None:
                playwright.stop()

    def status(self) -> SessionStatus:
        idle = None
        if self._last_activity is not None:
            idle = self._clock() - self._last_activity
        page_url = None
        if self._page is not None and not self._page.is_closed():
            page_url = self._page.url
        return SessionStatus(
            live=self.is_live,
            launches=self._launches,
            idle_seconds=idle,
            page_url=page_url,
        )

    def _idle_expired(self) -> bool:
        if self._last_activity is None:
            return False
        return self._clock() - self._last_activity > self._config.idle_timeout

    def _launch(self) -> None:
        if self._playwright is not None:
            # Driver left running after an unexpected disconnect.
            self.close()
        LOGGER.info("Launching browser (headless=%s)", self._config.headless)
        try:
            playwright, browser = self._launcher(self._config)
        except Exception as exc:
            raise BrowserLaunchError(f"Failed to launch browser: {exc}") from exc
        browser.on("disconnected", self._handle_disconnect)
        self._playwright = playwright
        self._browser = browser
        self._page = None
        self._launches += 1

    def _handle_disconnect(self, *_: object) -> None:
        LOGGER.warning("Browser disconnected")
        self._browser = None
        self._page = None

    def _acquire_page(self) -> Page:
        assert self._browser is not None
        page: Optional[Page] = None
        for context in self._browser.contexts:
            open_pages = [candidate for candidate in context.pages if not candidate.is_closed()]
            if open_pages:
                page = open_pages[0]
                LOGGER.debug("Reattaching to existing page")
                break
        if page is None:
            context = self._browser.new_context(viewport=self._viewport())
            page = context.new_page()
            LOGGER.debug("Opened new page")
        self.configure_page(page)
        return page

    def configure_page(self, page: Page) -> None:
        """Apply the default viewport and timeouts to *page*."""

        timeout_ms = self._config.page_timeout * 1000
        page.set_viewport_size(self._viewport())
        page.set_default_timeout(timeout_ms)
        page.set_default_navigation_timeout(timeout_ms)

    def _viewport(self) -> dict[str, int]:
        return {"width": self._config.viewport_width, "height": self._config.viewport_height}
