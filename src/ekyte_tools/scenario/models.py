"""Scripted sequences of tool calls."""

from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field


class ScenarioStep(BaseModel):
    """One tool call in a scenario.

    When ``selectors`` is set the step is retried with each candidate as its
    ``selector`` argument until one succeeds.
    """

    tool: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    selectors: Optional[list[str]] = Field(default=None, min_length=1)
    description: Optional[str] = None
    wait_seconds: float = Field(default=0.0, ge=0)
    analyze: bool = Field(default=False, description="Derive learnings from returned page content.")

    @property
    def label(self) -> str:
        return self.description or self.tool


class Scenario(BaseModel):
    name: str
    continue_on_failure: bool = True
    steps: list[ScenarioStep] = Field(min_length=1)

    @classmethod
    def from_yaml(cls, path: Path) -> "Scenario":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        data.setdefault("name", path.stem)
        return cls.model_validate(data)

    def render(self, variables: Mapping[str, str]) -> "Scenario":
        """Substitute ``${name}`` placeholders in step arguments and selectors."""

        return Scenario.model_validate(_substitute(self.model_dump(), variables))


def _substitute(value: Any, variables: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return Template(value).safe_substitute(variables)
    if isinstance(value, dict):
        return {key: _substitute(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute(item, variables) for item in value]
    return value
