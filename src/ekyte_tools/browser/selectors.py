"""Selector candidate tables and first-match-wins resolution.

The markup of the target application is outside our control, so every
logical UI target carries an ordered list of plausible CSS selectors. The
list order is the priority: stable attributes (type, name, id) come first and
generic fallbacks such as ``input[type="text"]`` last, because the generic
ones can match unintended elements.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, Field

from .base import BrowserActionError, ElementNotFoundError, InternalToolError

LOGGER = logging.getLogger(__name__)


class SelectorTarget(str, enum.Enum):
    """Logical UI targets resolved through selector fallback."""

    EMAIL_INPUT = "email_input"
    PASSWORD_INPUT = "password_input"
    SUBMIT_BUTTON = "submit_button"
    SEARCH_INPUT = "search_input"
    NOTIFICATION_ITEM = "notification_item"
    TASK_ITEM = "task_item"
    TASK_LINK = "task_link"
    TASKS_NAVIGATION = "tasks_navigation"
    SECTION_LINK = "section_link"
    COMMENT_INPUT = "comment_input"
    COMMENT_SUBMIT = "comment_submit"
    STATUS_CONTROL = "status_control"
    STATUS_OPTION = "status_option"


class SelectorTable(BaseModel):
    """Ordered selector candidates for every :class:`SelectorTarget`.

    Entries may contain ``{placeholders}`` filled in by :meth:`candidates`.
    """

    email_input: list[str] = Field(
        default_factory=lambda: [
            'input[type="email"]',
            'input[name="email"]',
            'input[id="email"]',
            'input[placeholder*="email" i]',
            'input[placeholder*="e-mail" i]',
            'input[class*="email"]',
            '[data-testid="email"]',
            'input[type="text"]',
        ]
    )
    password_input: list[str] = Field(
        default_factory=lambda: [
            'input[type="password"]',
            'input[name="password"]',
            'input[id="password"]',
            'input[placeholder*="senha" i]',
            'input[placeholder*="password" i]',
            'input[class*="password"]',
            '[data-testid="password"]',
        ]
    )
    submit_button: list[str] = Field(
        default_factory=lambda: [
            'button[type="submit"].btn.btn-primary.btn-md',
            'button[type="submit"]',
            'input[type="submit"]',
            'button:has-text("Entrar")',
            'button:has-text("Login")',
            'button:has-text("Sign in")',
            ".login-button",
            ".btn-login",
            "#login-btn",
            '[data-testid="login"]',
            "form button",
        ]
    )
    search_input: list[str] = Field(
        default_factory=lambda: [
            'input[type="search"]',
            'input[placeholder*="buscar" i]',
            'input[placeholder*="search" i]',
            ".search-input",
            "#search",
        ]
    )
    notification_item: list[str] = Field(
        default_factory=lambda: [
            ".notification-item",
            '[class*="notification"]',
            ".task-item",
        ]
    )
    task_item: list[str] = Field(
        default_factory=lambda: [
            ".task-item",
            '[class*="task-item"]',
            '[class*="task"]',
        ]
    )
    task_link: list[str] = Field(
        default_factory=lambda: [
            '[data-id="{task_id}"]',
            'a[href*="{task_id}"]',
            '.task-item:has-text("{task_id}")',
        ]
    )
    tasks_navigation: list[str] = Field(
        default_factory=lambda: [
            'a[href*="tasks"]',
            'a[href*="tarefas"]',
            '.nav-link:has-text("Tarefas")',
            'a:has-text("Tarefas")',
        ]
    )
    section_link: list[str] = Field(
        default_factory=lambda: [
            'a[href*="{fragment}"]',
            '.nav-link:has-text("{label}")',
            'a:has-text("{label}")',
        ]
    )
    comment_input: list[str] = Field(
        default_factory=lambda: [
            'textarea[name="comment"]',
            'textarea[placeholder*="coment" i]',
            '[contenteditable="true"]',
            "textarea",
        ]
    )
    comment_submit: list[str] = Field(
        default_factory=lambda: [
            'button:has-text("Comentar")',
            'button:has-text("Enviar")',
            'button:has-text("Salvar")',
            'button[type="submit"]',
        ]
    )
    status_control: list[str] = Field(
        default_factory=lambda: [
            '[data-testid="task-status"]',
            ".task-status",
            'select[name="status"]',
            'button:has-text("Situação")',
        ]
    )
    status_option: list[str] = Field(
        default_factory=lambda: [
            '[role="option"]:has-text("{status}")',
            'li:has-text("{status}")',
            'a:has-text("{status}")',
        ]
    )

    def candidates(self, target: SelectorTarget, **values: str) -> list[str]:
        """Return the candidates for *target*, filling placeholders from *values*."""

        selectors: list[str] = getattr(self, target.value)
        if not values:
            return list(selectors)
        filled = []
        for selector in selectors:
            try:
                filled.append(selector.format(**values))
            except (KeyError, IndexError, ValueError) as exc:
                raise InternalToolError(
                    f"Invalid selector template for {target.value}: {selector!r} ({exc!r})"
                ) from exc
        return filled


@dataclass
class FallbackOutcome:
    """The candidate that worked and every selector tried to get there."""

    selector: str
    attempted: list[str] = field(default_factory=list)


AttemptCallback = Callable[[str, bool, Optional[BrowserActionError]], None]


def resolve_with_fallback(
    candidates: Sequence[str],
    attempt: Callable[[str], object],
    *,
    target: str = "element",
    on_attempt: Optional[AttemptCallback] = None,
) -> FallbackOutcome:
    """Try ``attempt(selector)`` for each candidate until one succeeds.

    ``attempt`` signals a miss by raising :class:`ElementNotFoundError`; any
    other exception, including other classified browser errors, propagates
    untouched. When every candidate misses an
    :class:`ElementNotFoundError` listing all attempted selectors is raised.
    """

    attempted: list[str] = []
    for selector in candidates:
        attempted.append(selector)
        try:
            attempt(selector)
        except ElementNotFoundError as exc:
            LOGGER.info("Selector %r for %s failed: %s", selector, target, exc)
            if on_attempt:
                on_attempt(selector, False, exc)
            continue
        LOGGER.info("Selector %r for %s succeeded", selector, target)
        if on_attempt:
            on_attempt(selector, True, None)
        return FallbackOutcome(selector=selector, attempted=attempted)
    raise ElementNotFoundError(
        f"No selector matched {target}; tried: {', '.join(attempted) or '(none)'}",
        selectors=attempted,
    )
