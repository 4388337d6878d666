"""Session log collected while a scenario runs."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .artifacts import capture_timestamp

LOGGER = logging.getLogger(__name__)


class SessionStep(BaseModel):
    step: int
    action: str
    success: bool
    details: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionLog(BaseModel):
    """Everything a scenario run produced, persisted as one JSON document."""

    timestamp: str = Field(default_factory=capture_timestamp)
    scenario: Optional[str] = None
    steps: list[SessionStep] = Field(default_factory=list)
    screenshots: list[str] = Field(default_factory=list)
    learnings: list[str] = Field(default_factory=list)

    @property
    def failed_steps(self) -> list[SessionStep]:
        return [step for step in self.steps if not step.success]


class SessionRecorder:
    """Thread-safe builder for a :class:`SessionLog`."""

    def __init__(self, log: Optional[SessionLog] = None) -> None:
        self._log = log or SessionLog()
        self._lock = threading.Lock()

    @property
    def log(self) -> SessionLog:
        return self._log

    def add_step(
        self,
        action: str,
        success: bool,
        details: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> SessionStep:
        with self._lock:
            step = SessionStep(
                step=len(self._log.steps) + 1,
                action=action,
                success=success,
                details=details,
                error=error,
            )
            self._log.steps.append(step)
        LOGGER.info("Step %s %s: %s", step.step, "ok" if success else "failed", action)
        return step

    def add_screenshot(self, path: str) -> None:
        with self._lock:
            self._log.screenshots.append(path)

    def add_learning(self, text: str) -> None:
        with self._lock:
            if text not in self._log.learnings:
                self._log.learnings.append(text)

    def save(self, data_dir: Path) -> Path:
        """Write the log to ``<data_dir>/session-<timestamp>.json``."""

        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / f"session-{self._log.timestamp}.json"
        with self._lock:
            path.write_text(self._log.model_dump_json(indent=2), encoding="utf-8")
        LOGGER.info("Session log saved to %s", path)
        return path
