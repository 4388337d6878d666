"""Command line interface for ekyte-tools."""

from __future__ import annotations

import json
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from . import __version__
from .artifacts import capture_timestamp
from .config import ToolsConfig, load_config
from .factory import ClientMode, build_client, build_dispatcher, build_notifier, build_worker
from .models import ActionRequest
from .scenario.models import Scenario
from .scenario.runner import ScenarioRunner
from .session_log import SessionRecorder
from .tools.dispatcher import describe_tools
from .transport.server import StdioToolServer

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="eKyte browser tools")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with default configuration values."),
]
HeadlessOption = Annotated[
    Optional[bool],
    typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
]
ArtifactsOption = Annotated[
    Optional[Path],
    typer.Option("--artifacts", help="Directory for screenshots and session logs."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(
    config_path: Optional[Path],
    env_file: Optional[Path],
    headless: Optional[bool] = None,
    artifacts: Optional[Path] = None,
) -> ToolsConfig:
    overrides: dict[str, Any] = {}
    if headless is not None:
        overrides["browser"] = {"headless": headless}
    if artifacts is not None:
        overrides["artifacts"] = {"root": str(artifacts)}
    return load_config(config_path, env_file=env_file, **overrides)


def _server_options(
    config_path: Optional[Path],
    env_file: Optional[Path],
    headless: Optional[bool] = None,
    artifacts: Optional[Path] = None,
) -> list[str]:
    """Repeat the configuration options for a spawned tool server."""

    options: list[str] = []
    if config_path is not None:
        options += ["--config", str(config_path.resolve())]
    if env_file is not None:
        options += ["--env-file", str(env_file.resolve())]
    if headless is not None:
        options.append("--headless" if headless else "--headed")
    if artifacts is not None:
        options += ["--artifacts", str(artifacts.resolve())]
    return options


def _interrupt(signum: int, _frame: object) -> None:
    raise KeyboardInterrupt(f"signal {signum}")


@app.command()
def version() -> None:
    """Print the package version."""

    typer.echo(__version__)


@app.command()
def tools(
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON schemas.")] = False,
) -> None:
    """List the tool catalogue."""

    catalogue = describe_tools()
    if as_json:
        typer.echo(json.dumps(catalogue, indent=2, ensure_ascii=False))
        return
    for entry in catalogue:
        typer.echo(f"{entry['name']}: {entry['description']}")


@app.command()
def serve(
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    headless: HeadlessOption = None,
    artifacts: ArtifactsOption = None,
) -> None:
    """Serve tool calls as JSON-RPC frames over stdin/stdout."""

    config = _load(config_path, env_file, headless, artifacts)
    worker = build_worker(config)
    server = StdioToolServer(build_dispatcher(worker, config))
    previous_handler = signal.signal(signal.SIGTERM, _interrupt)
    worker.start_reaper()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOGGER.info("Shutting down tool server")
    finally:
        worker.shutdown()
        signal.signal(signal.SIGTERM, previous_handler)


@app.command()
def call(
    name: Annotated[str, typer.Argument(help="Tool name, e.g. navigate.")],
    arguments: Annotated[
        str,
        typer.Argument(help="Tool arguments as a JSON object."),
    ] = "{}",
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    headless: HeadlessOption = None,
    artifacts: ArtifactsOption = None,
) -> None:
    """Run one tool in a fresh browser and print its result as JSON."""

    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Arguments are not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise typer.BadParameter("Arguments must be a JSON object")

    config = _load(config_path, env_file, headless, artifacts)
    worker = build_worker(config)
    try:
        result = build_dispatcher(worker, config)(ActionRequest(tool=name, arguments=parsed, id=1))
    finally:
        worker.shutdown()
    typer.echo(result.model_dump_json())
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def http(
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    headless: HeadlessOption = None,
    artifacts: ArtifactsOption = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Binding address.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="HTTP port.")] = None,
) -> None:
    """Serve the tool catalogue over HTTP."""

    import uvicorn

    from .transport.http import create_app

    config = _load(config_path, env_file, headless, artifacts)
    worker = build_worker(config)
    service = create_app(
        build_dispatcher(worker, config),
        status=lambda: asdict(worker.call(worker.session.status)),
    )
    worker.start_reaper()
    try:
        uvicorn.run(
            service,
            host=host or config.transport.host,
            port=port or config.transport.port,
        )
    finally:
        worker.shutdown()


@app.command()
def run(
    scenario_path: Annotated[Path, typer.Argument(help="YAML scenario file.", exists=True)],
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    headless: HeadlessOption = None,
    artifacts: ArtifactsOption = None,
    mode: Annotated[
        str,
        typer.Option("--mode", help="How to reach the tools: local, stdio, oneshot or http."),
    ] = "local",
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Hide step events.")] = False,
) -> None:
    """Run a scenario and save its session log."""

    if mode not in ("local", "stdio", "oneshot", "http"):
        raise typer.BadParameter(f"Unsupported mode: {mode}")
    config = _load(config_path, env_file, headless, artifacts)
    variables = {"timestamp": capture_timestamp()}
    if config.app.email:
        variables["email"] = config.app.email
    if config.app.password:
        variables["password"] = config.app.password.get_secret_value()
    scenario = Scenario.from_yaml(scenario_path).render(variables)

    worker = build_worker(config) if mode == "local" else None
    dispatch = build_dispatcher(worker, config) if worker else None
    client_mode: ClientMode = mode  # type: ignore[assignment]
    client = build_client(
        config.transport,
        client_mode,
        dispatch=dispatch,
        server_options=_server_options(config_path, env_file, headless, artifacts),
    )
    recorder = SessionRecorder()
    runner = ScenarioRunner(
        client,
        recorder=recorder,
        notifier=build_notifier(quiet),
        selector_timeout=config.app.selector_timeout,
    )
    try:
        log = runner.run(scenario)
    finally:
        client.close()
        if worker is not None:
            worker.shutdown()
    path = recorder.save(config.artifacts.data_dir)
    typer.echo(f"Session log saved to {path}")
    if log.failed_steps:
        typer.echo(f"{len(log.failed_steps)} step(s) failed.")
        raise typer.Exit(code=1)
    typer.echo("Scenario completed successfully.")


if __name__ == "__main__":
    app()
