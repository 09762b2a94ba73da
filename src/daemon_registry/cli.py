"""Command-line interface for the daemon registry.

Example:
    >>> # From terminal:
    >>> # daemon-registry --version
    >>> # daemon-registry serve --port 8787
    >>> # daemon-registry sweep --minute 17
    >>> # daemon-registry derive-id https://daemon.example.com/ --owner Ada
    >>> # daemon-registry check-minute https://daemon.example.com/
    >>> # daemon-registry list
    >>> # daemon-registry search security --status mcp
"""

import asyncio
import json
from typing import Annotated, Optional

import typer
import uvicorn

from daemon_registry import __version__
from daemon_registry.config import RegistrySettings
from daemon_registry.discovery.health import check_minute as compute_check_minute
from daemon_registry.errors import ConfigurationError, StoreUnavailableError
from daemon_registry.identity import derive_daemon_id
from daemon_registry.models.enums import DaemonStatus
from daemon_registry.observability import configure_logging
from daemon_registry.registry.facade import DaemonRegistry
from daemon_registry.transport.server import create_app

app = typer.Typer(help="Daemon Registry CLI.")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show Daemon Registry version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(version: bool = VERSION_OPTION) -> None:
    """Daemon Registry CLI entrypoint."""


def _build_registry() -> tuple[RegistrySettings, DaemonRegistry]:
    try:
        settings = RegistrySettings.from_env()
        return settings, DaemonRegistry.from_settings(settings)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e.message}", err=True)
        raise typer.Exit(2) from e


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on.")] = DEFAULT_PORT,
) -> None:
    """Run the JSON-RPC server (and the health sweep unless disabled)."""
    configure_logging()
    settings, registry = _build_registry()
    uvicorn.run(create_app(registry, sweep_enabled=settings.sweep_enabled), host=host, port=port)


@app.command("sweep")
def sweep(
    minute: Annotated[
        Optional[int],
        typer.Option(
            "--minute", "-m", min=0, max=59, help="Slot to check (default: current minute)."
        ),
    ] = None,
) -> None:
    """Run one health sweep pass and print the report."""
    configure_logging()
    _, registry = _build_registry()
    try:
        report = asyncio.run(registry.run_sweep(minute))
    except StoreUnavailableError as e:
        typer.echo(f"Sweep failed: {e.message}", err=True)
        raise typer.Exit(1) from e
    typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))


@app.command("derive-id")
def derive_id(
    url: Annotated[str, typer.Argument(help="Daemon URL.")],
    owner: Annotated[Optional[str], typer.Option("--owner", "-o", help="Owner name.")] = None,
) -> None:
    """Print the namespaced identifier derived from URL."""
    typer.echo(derive_daemon_id(url, owner))


@app.command("check-minute")
def check_minute(
    url: Annotated[str, typer.Argument(help="Daemon URL.")],
) -> None:
    """Print the minute (0-59) at which URL is health-checked."""
    typer.echo(str(compute_check_minute(url)))


@app.command("list")
def list_daemons() -> None:
    """Print the merged registry as JSON."""
    _, registry = _build_registry()
    listing = asyncio.run(registry.list_entries())
    typer.echo(json.dumps(listing.model_dump(mode="json", exclude_none=True), indent=2))


@app.command("search")
def search(
    query: Annotated[Optional[str], typer.Argument(help="Free-text query.")] = None,
    tag: Annotated[Optional[str], typer.Option("--tag", "-t", help="Exact tag match.")] = None,
    status: Annotated[
        Optional[DaemonStatus], typer.Option("--status", "-s", help="Health status.")
    ] = None,
) -> None:
    """Search the registry and print matching entries as JSON."""
    _, registry = _build_registry()
    entries = asyncio.run(registry.search(query=query, tag=tag, status=status))
    typer.echo(
        json.dumps([e.model_dump(mode="json", exclude_none=True) for e in entries], indent=2)
    )


def main() -> None:
    """Run the Daemon Registry CLI."""
    app()


if __name__ == "__main__":
    main()
