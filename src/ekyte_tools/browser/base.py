"""Browser error taxonomy and state snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..models import ErrorKind


@dataclass
class BrowserState:
    """Snapshot of the page a result refers to."""

    url: Optional[str] = None
    title: Optional[str] = None


class BrowserActionError(RuntimeError):
    """Raised when executing a browser action fails."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, *, selectors: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.selectors = list(selectors) if selectors is not None else None


class PageLoadFailedError(BrowserActionError):
    """Navigation failed (timeout, DNS failure, aborted load)."""

    kind = ErrorKind.PAGE_LOAD_FAILED


class ElementNotFoundError(BrowserActionError):
    """No selector could be located or acted upon."""

    kind = ErrorKind.ELEMENT_NOT_FOUND


class InternalToolError(BrowserActionError):
    """Unexpected failure outside page interaction."""

    kind = ErrorKind.INTERNAL_ERROR


class BrowserLaunchError(InternalToolError):
    """The browser process could not be started."""


class ArgumentValidationError(BrowserActionError):
    """Tool arguments were rejected before touching the browser."""

    kind = ErrorKind.VALIDATION_ERROR


_ERRORS_BY_KIND: dict[ErrorKind, type[BrowserActionError]] = {
    ErrorKind.PAGE_LOAD_FAILED: PageLoadFailedError,
    ErrorKind.ELEMENT_NOT_FOUND: ElementNotFoundError,
    ErrorKind.INTERNAL_ERROR: InternalToolError,
    ErrorKind.VALIDATION_ERROR: ArgumentValidationError,
}


def error_for_kind(
    kind: ErrorKind | str,
    message: str,
    *,
    selectors: Optional[Sequence[str]] = None,
) -> BrowserActionError:
    """Rebuild the exception matching a classified error received over a transport."""

    try:
        error_kind = ErrorKind(kind)
    except ValueError:
        error_kind = ErrorKind.INTERNAL_ERROR
    return _ERRORS_BY_KIND[error_kind](message, selectors=selectors)
