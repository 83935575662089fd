"""Thin CLI wrapper for brewtroller_buildbot.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from brewtroller_buildbot import APP_NAME, __version__
from brewtroller_buildbot.config import Settings, get_settings, print_settings_json

app = typer.Typer(
    name="btbuild",
    help="BrewTroller Build Bot - compile BrewTroller firmware on request",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"brewtroller-buildbot version {__version__}")
        raise typer.Exit()


def configure_logging(settings: Settings) -> None:
    """Route log records through rich at the configured level."""
    level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """BrewTroller Build Bot - compile BrewTroller firmware on request."""


@app.command()
def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Address to listen on"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to listen on"),
    ] = None,
    debug: Annotated[
        bool | None,
        typer.Option("--debug/--no-debug", help="Enables server debug mode"),
    ] = None,
    poll: Annotated[
        float | None,
        typer.Option("--poll", help="Repository poll period in seconds"),
    ] = None,
    git_url: Annotated[
        str | None,
        typer.Option("--git", help="BrewTroller remote repository"),
    ] = None,
) -> None:
    """Run the build server."""
    import uvicorn

    from web.app import create_app

    settings = get_settings(
        host=host, port=port, debug=debug, poll_period=poll, git_url=git_url
    )
    configure_logging(settings)
    if settings.debug:
        console.print("[yellow]Debug mode enabled[/yellow]")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else settings.log_level.lower(),
    )


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    workspace_display = (
        str(settings.workspace_root) if settings.workspace_root else "(system default)"
    )
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Server:[/bold]")
    console.print(f"  Listen address:      {settings.host}:{settings.port}")
    console.print(f"  Debug mode:          {settings.debug}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Repository:[/bold]")
    console.print(f"  Upstream URL:        {settings.git_url}")
    console.print(f"  Mirror directory:    {settings.mirror_dir}")
    console.print(f"  Options file:        {settings.options_file_name}")
    console.print(f"  Poll period:         {settings.poll_period}s")
    console.print()
    console.print("[bold]Builds:[/bold]")
    console.print(f"  Workspace root:      {workspace_display}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Git timeout:         {settings.git_timeout}")
    console.print(f"  Configure timeout:   {settings.configure_timeout}")
    console.print(f"  Build timeout:       {settings.build_timeout}")
    console.print(f"  Request timeout:     {settings.request_timeout}")


@app.command()
def refresh(
    git_url: Annotated[
        str | None,
        typer.Option("--git", help="BrewTroller remote repository"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the options manifest as JSON"),
    ] = False,
) -> None:
    """Clone the upstream repository and list the buildable versions.

    Runs a single refresh cycle against a fresh mirror and reports which
    versions declare a valid options file.
    """
    from brewtroller_buildbot.mirror.git import GitError
    from brewtroller_buildbot.mirror.refresher import (
        MirrorBootstrapError,
        RepositoryRefresher,
    )
    from brewtroller_buildbot.options.cache import OptionsCache
    from brewtroller_buildbot.process import CommandError

    settings = get_settings(git_url=git_url)
    configure_logging(settings)

    cache = OptionsCache()
    refresher = RepositoryRefresher(settings, cache)
    try:
        refresher.bootstrap()
        refresher.refresh_once()
    except (MirrorBootstrapError, GitError, CommandError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(cache.snapshot(), indent=2))
        return

    versions = cache.versions()
    if not versions:
        console.print(f"No buildable versions found in {settings.git_url}")
        return
    console.print(f"[bold]{APP_NAME}: buildable versions[/bold]")
    manifest = cache.snapshot()
    for version in versions:
        console.print(f"  {version}  ({len(manifest[version])} options)")
