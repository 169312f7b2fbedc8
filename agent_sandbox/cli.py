"""CLI entrypoint (Typer).

- `agent-sandbox serve -c configs/config.toml` runs the API server
- `agent-sandbox init` / `agent-sandbox exec` talk to a running server
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from agent_sandbox.api.main import create_app
from agent_sandbox.client import SandboxAPIError, SandboxClient
from agent_sandbox.config import APP_VERSION, load_settings
from agent_sandbox.errors import ConfigError
from agent_sandbox.logging_config import configure_logging

app = typer.Typer(help="Agent Sandbox API server and client.")

DEFAULT_URL = "http://localhost:8080"


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file path"),
):
    """Run the API server."""
    try:
        settings = load_settings(config)
    except ConfigError as e:
        typer.echo(f"Failed to load config: {e}", err=True)
        raise typer.Exit(code=1)

    configure_logging(settings.log.level, settings.log.format)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        timeout_keep_alive=int(settings.server.keep_alive_timeout),
        timeout_graceful_shutdown=int(settings.server.shutdown_timeout),
        log_config=None,
    )


@app.command()
def version():
    """Print the version."""
    typer.echo(APP_VERSION)


@app.command()
def init(url: str = typer.Option(DEFAULT_URL, "--url", help="Server base URL")):
    """Create a sandbox on a running server and print its credentials."""

    async def _init():
        async with SandboxClient(url) as client:
            return await client.init_sandbox()

    try:
        result = asyncio.run(_init())
    except SandboxAPIError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"sandbox_id: {result.sandbox_id}")
    typer.echo(f"api_key:    {result.api_key}")


@app.command(name="exec")
def exec_command(
    command: str,
    api_key: str = typer.Option(..., "--api-key", envvar="AGENT_SANDBOX_API_KEY"),
    url: str = typer.Option(DEFAULT_URL, "--url", help="Server base URL"),
):
    """Run a shell command in a sandbox and print its output."""

    async def _exec():
        async with SandboxClient(url, api_key=api_key) as client:
            return await client.execute(command)

    try:
        output = asyncio.run(_exec())
    except SandboxAPIError as e:
        if e.output:
            typer.echo(e.output)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(output)


if __name__ == "__main__":
    app()
