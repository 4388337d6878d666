"""Configuration models for the eKyte tools."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .browser.selectors import SelectorTable

WaitPolicy = Literal["networkidle", "domcontentloaded", "load", "commit"]


class BrowserConfig(BaseModel):
    """Settings for the shared browser session."""

    headless: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720
    page_timeout: float = Field(default=30.0, description="Default action/navigation timeout (s).")
    wait_until: WaitPolicy = "networkidle"
    settle_timeout: float = Field(
        default=5.0,
        description="Budget (s) for the page to reach network idle after a load.",
    )
    settle_fallback: float = Field(
        default=1.0,
        description="Sleep (s) used only when the page never reaches network idle.",
    )
    idle_timeout: float = Field(default=30 * 60.0, description="Tear down after this idle time (s).")
    reap_interval: float = 60.0
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-accelerated-2d-canvas",
            "--no-first-run",
            "--no-zygote",
            "--disable-gpu",
        ]
    )


class AppConfig(BaseModel):
    """Settings describing the target application."""

    base_url: str = "https://app.ekyte.com"
    login_url: str = "https://app.ekyte.com/login"
    tasks_url: str = "https://app.ekyte.com/#/tasks/list"
    email: Optional[str] = None
    password: Optional[SecretStr] = None
    selector_timeout: float = Field(default=2.0, description="Per-candidate timeout (s).")
    field_timeout: float = Field(default=10.0, description="Wait for the login form (s).")
    post_submit_timeout: float = Field(default=15.0, description="Wait for login redirect (s).")
    selectors: SelectorTable = Field(default_factory=SelectorTable)


class ArtifactsConfig(BaseModel):
    """Where screenshots and session logs are written."""

    root: Path = Path("./ekyte")

    @property
    def screenshots_dir(self) -> Path:
        return self.root / "screenshots"

    @property
    def data_dir(self) -> Path:
        return self.root / "data"

    def ensure(self) -> None:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)


class TransportConfig(BaseModel):
    """Settings for reaching the tool server."""

    command: list[str] = Field(
        default_factory=lambda: [sys.executable, "-m", "ekyte_tools"],
        description="Command that starts the tool CLI; 'serve' or 'call' is appended.",
    )
    request_timeout: float = 30.0
    oneshot_timeout: float = Field(
        default=120.0,
        description="Budget (s) for a one-shot call, including browser start and login.",
    )
    host: str = "127.0.0.1"
    port: int = 8766


class ToolsConfig(BaseSettings):
    """Top-level configuration for the tool server and scenario runner."""

    model_config = SettingsConfigDict(
        env_prefix="EKYTE_TOOLS_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ToolsConfig:
    """Load configuration from an optional YAML file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = ToolsConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return ToolsConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
