"""Shared models used across the eKyte tools."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class ToolName(str, enum.Enum):
    """Enumerated tools the dispatcher can execute."""

    NAVIGATE = "navigate"
    SCREENSHOT = "screenshot"
    CLICK = "click"
    TYPE = "type"
    GET_CONTENT = "getContent"
    NEW_TAB = "newTab"
    OPEN_IN_SYSTEM_BROWSER = "openInSystemBrowser"
    NAVIGATE_AND_SCREENSHOT = "navigateAndScreenshot"
    LOGIN = "login"
    LOGIN_AND_NAVIGATE = "loginAndNavigate"
    PROCESS_NOTIFICATIONS = "processNotifications"
    EXPLORE_SECTION = "exploreSection"
    MANAGE_TASK = "manageTask"
    ANALYZE_METRICS = "analyzeMetrics"
    SMART_SEARCH = "smartSearch"


class ErrorKind(str, enum.Enum):
    """Classification attached to every failed action."""

    PAGE_LOAD_FAILED = "PageLoadFailed"
    ELEMENT_NOT_FOUND = "ElementNotFound"
    INTERNAL_ERROR = "InternalError"
    VALIDATION_ERROR = "ValidationError"


class Section(str, enum.Enum):
    """Top-level sections of the eKyte navigation menu."""

    CONHECIMENTO = "conhecimento"
    ATENDIMENTO = "atendimento"
    CAMPANHAS = "campanhas"
    PROJETOS = "projetos"
    TAREFAS = "tarefas"
    PUBLICACOES = "publicacoes"
    BIBLIOTECA = "biblioteca"
    DATA_DRIVEN = "data-driven"

    @property
    def label(self) -> str:
        return _SECTION_LABELS[self]

    @property
    def href_fragment(self) -> str:
        if self is Section.DATA_DRIVEN:
            return "data"
        return self.value


_SECTION_LABELS = {
    Section.CONHECIMENTO: "Conhecimento",
    Section.ATENDIMENTO: "Atendimento",
    Section.CAMPANHAS: "Campanhas",
    Section.PROJETOS: "Projetos",
    Section.TAREFAS: "Tarefas",
    Section.PUBLICACOES: "Publicações",
    Section.BIBLIOTECA: "Biblioteca",
    Section.DATA_DRIVEN: "Data-Driven",
}


class TaskAction(str, enum.Enum):
    """Operations supported by the task manager flow."""

    LIST = "list"
    OPEN = "open"
    COMMENT = "comment"
    UPDATE_STATUS = "update_status"


RequestId = Union[int, str, None]


class ActionRequest(BaseModel):
    """A named tool invocation with its raw arguments."""

    tool: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    id: RequestId = None


class ActionErrorInfo(BaseModel):
    """Classified error returned for a failed action."""

    kind: ErrorKind
    message: str
    selectors: Optional[list[str]] = Field(
        default=None,
        description="Selectors attempted before the action gave up.",
    )


class ActionResult(BaseModel):
    """Uniform outcome of one dispatched action."""

    id: RequestId = None
    tool: str
    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: Optional[ActionErrorInfo] = None

    @classmethod
    def failure(
        cls,
        request: ActionRequest,
        kind: ErrorKind,
        message: str,
        selectors: Optional[list[str]] = None,
    ) -> "ActionResult":
        return cls(
            id=request.id,
            tool=request.tool,
            success=False,
            error=ActionErrorInfo(kind=kind, message=message, selectors=selectors),
        )


class NotificationLevel(str, enum.Enum):
    """Severity of notification events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class NotificationEvent(BaseModel):
    """Event emitted while a scenario runs."""

    type: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
