"""Argument schemas for every tool in the catalogue."""

from __future__ import annotations

from typing import Annotated, Optional
from urllib.parse import urlsplit

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..models import Section, TaskAction


def _require_url(value: str) -> str:
    parts = urlsplit(value.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid URL: {value!r}")
    return value.strip()


Url = Annotated[str, AfterValidator(_require_url)]


class ToolArguments(BaseModel):
    """Base for tool arguments; wire names are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NoArguments(ToolArguments):
    pass


class UrlArguments(ToolArguments):
    url: Url = Field(description="Absolute URL to load.")


class ScreenshotArguments(ToolArguments):
    path: str = Field(min_length=1, description="Path to save the screenshot.")
    full_page: bool = Field(default=False, description="Capture the full scrollable page.")


class ClickArguments(ToolArguments):
    selector: str = Field(min_length=1, description="CSS selector of the element to click.")
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the element; defaults to the page timeout.",
    )


class TypeArguments(ToolArguments):
    selector: str = Field(min_length=1, description="CSS selector of the field.")
    text: str = Field(description="Text to enter.")
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the field; defaults to the page timeout.",
    )


class NavigateAndScreenshotArguments(UrlArguments):
    path: str = Field(min_length=1, description="Path to save the screenshot.")
    full_page: bool = False


class CredentialArguments(ToolArguments):
    email: str = Field(min_length=1, description="Login email.")
    password: SecretStr = Field(description="Login password.")

    @field_validator("password")
    @classmethod
    def _password_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("Password must not be empty")
        return value


class LoginArguments(CredentialArguments):
    screenshot_path: Optional[str] = Field(
        default=None,
        description="Base path for before/after login screenshots.",
    )


class LoginAndNavigateArguments(CredentialArguments):
    target_url: Url = Field(description="URL to open after logging in.")
    screenshot_path: str = Field(min_length=1)
    full_page: bool = True


class ProcessNotificationsArguments(CredentialArguments):
    screenshot_path: str = Field(min_length=1, description="Base path for screenshots.")
    max_notifications: int = Field(default=5, ge=1)


class ExploreSectionArguments(CredentialArguments):
    section: Section
    screenshot_path: str = Field(min_length=1)


class ManageTaskArguments(CredentialArguments):
    action: TaskAction
    task_id: Optional[str] = None
    comment: Optional[str] = None
    status: Optional[str] = None
    screenshot_path: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_action_requirements(self) -> "ManageTaskArguments":
        if self.action != TaskAction.LIST and not self.task_id:
            raise ValueError(f"taskId is required for action '{self.action.value}'")
        if self.action == TaskAction.COMMENT and not self.comment:
            raise ValueError("comment is required for action 'comment'")
        if self.action == TaskAction.UPDATE_STATUS and not self.status:
            raise ValueError("status is required for action 'update_status'")
        return self


class AnalyzeMetricsArguments(CredentialArguments):
    screenshot_path: str = Field(min_length=1)


class SmartSearchArguments(CredentialArguments):
    search_term: str = Field(min_length=1)
    screenshot_path: str = Field(min_length=1)
