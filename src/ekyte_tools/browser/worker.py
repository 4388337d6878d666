"""Single-thread executor that owns every Playwright call."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

from .session import BrowserSessionManager

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class BrowserWorker:
    """Serialize browser work onto one thread and reap idle sessions.

    Transports may receive requests on any thread; they hand the work to
    :meth:`call`, which blocks until the worker thread has run it.
    """

    def __init__(self, session: BrowserSessionManager, *, name: str = "browser-worker") -> None:
        self._session = session
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._stop = threading.Event()
        self._reaper: Optional[threading.Thread] = None

    @property
    def session(self) -> BrowserSessionManager:
        return self._session

    def call(self, func: Callable[..., T], *args: object, **kwargs: object) -> T:
        return self._executor.submit(func, *args, **kwargs).result()

    def start_reaper(self, interval: Optional[float] = None) -> None:
        if self._reaper is not None:
            return
        period = interval if interval is not None else self._session.config.reap_interval
        self._reaper = threading.Thread(
            target=self._reap_loop,
            args=(period,),
            name="browser-reaper",
            daemon=True,
        )
        self._reaper.start()

    def shutdown(self) -> None:
        """Stop the reaper, close the browser and release the worker thread."""

        self._stop.set()
        if self._reaper is not None:
            self._reaper.join(timeout=2)
            self._reaper = None
        try:
            self.call(self._session.close)
        finally:
            self._executor.shutdown(wait=True)

    def _reap_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            try:
                self.call(self._session.reap_if_idle)
            except RuntimeError:
                # Executor already shut down.
                return
            except Exception:  # pragma: no cover - keep the reaper alive
                LOGGER.exception("Idle reaper failed")
