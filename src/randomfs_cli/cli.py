"""CLI for randomfs-cli."""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import Settings, load_settings
from .display import (
    display_download_result,
    display_locator,
    display_retrieve_result,
    display_stats,
    display_store_result,
)
from .errors import ConfigError
from .ops import download_file, get_stats, parse_url, retrieve_file, run, store_file
from .service_types import CommandResult
from .storage import StorageEngine, make_engine


app = typer.Typer(help="""\
RandomFS CLI - Owner Free File System command line interface.

Store and retrieve files using randomized blocks with rd:// URLs.""")

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


def _configure_logging(debug: bool) -> None:
    """Send log records to stderr through rich."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=debug)],
        force=True,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"randomfs-cli {__version__}")
        raise typer.Exit()


def fail(message: str) -> None:
    """Report a fatal error on stderr and exit 1.

    Raises:
        typer.Exit: Always
    """
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def require_settings(ctx: typer.Context) -> Settings:
    """Resolve settings from the global options, file and environment.

    Raises:
        typer.Exit: If configuration is invalid
    """
    options = ctx.obj or {}
    try:
        return load_settings(**options)
    except ConfigError as e:
        fail(str(e))


def engine_factory(settings: Settings):
    """Build the engine for this invocation on first use."""
    def get_engine() -> StorageEngine:
        return make_engine(settings.engine)
    return get_engine


def unwrap(result: CommandResult):
    """Return a command's value, or report its error and exit 1."""
    if not result.ok:
        fail(str(result.error))
    return result.value


@app.callback()
def main_callback(
    ctx: typer.Context,
    ipfs: Optional[str] = typer.Option(None, "--ipfs", help="IPFS API endpoint [default: http://localhost:5001]"),
    data: Optional[Path] = typer.Option(None, "--data", help="Data directory [default: ./data]"),
    cache: Optional[int] = typer.Option(None, "--cache", help="Cache size in bytes [default: 524288000]"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    config: Optional[Path] = typer.Option(None, "--config", help="Config file path"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Global options shared by every command."""
    _configure_logging(debug or os.environ.get("RANDOMFS_DEBUG") == "1")
    ctx.obj = {
        "ipfs_endpoint": ipfs,
        "data_directory": data,
        "cache_size_bytes": cache,
        "verbose": verbose or None,
        "config_path": config,
    }


@app.command()
def store(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="File to store"),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content type (default: detect from name and content)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also show system stats"),
):
    """Store a file in RandomFS.

    Examples:
        randomfs-cli store report.pdf
        randomfs-cli store notes --content-type text/markdown
    """
    settings = require_settings(ctx)
    verbose = verbose or settings.verbose
    result = unwrap(run(
        store_file, engine_factory(settings), file, content_type=content_type, verbose=verbose
    ))
    display_store_result(result, console)


@app.command()
def retrieve(
    ctx: typer.Context,
    rep_hash: str = typer.Argument(..., metavar="HASH", help="Representation hash"),
    output_file: Path = typer.Argument(..., help="Where to write the file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also show cache stats"),
):
    """Retrieve a file from RandomFS by representation hash."""
    settings = require_settings(ctx)
    verbose = verbose or settings.verbose
    result = unwrap(run(
        retrieve_file, engine_factory(settings), rep_hash, output_file, verbose=verbose
    ))
    display_retrieve_result(result, console)


@app.command()
def download(
    ctx: typer.Context,
    rd_url: str = typer.Argument(..., metavar="RD_URL", help="rd:// URL"),
    output_file: Path = typer.Argument(..., help="Where to write the file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show representation details"),
):
    """Download a file using its rd:// URL.

    The URL is validated before the storage engine is contacted.
    """
    settings = require_settings(ctx)
    verbose = verbose or settings.verbose
    result = unwrap(run(download_file, engine_factory(settings), rd_url, output_file))
    display_download_result(result, console, verbose=verbose)


@app.command()
def parse(
    rd_url: str = typer.Argument(..., metavar="RD_URL", help="rd:// URL"),
):
    """Parse a rd:// URL and show its components.

    Works offline; no storage engine is involved.
    """
    locator = unwrap(run(parse_url, rd_url))
    display_locator(locator, console)


@app.command()
def stats(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Dump statistics as JSON"),
):
    """Show RandomFS system statistics."""
    settings = require_settings(ctx)
    verbose = verbose or settings.verbose
    snapshot = unwrap(run(get_stats, engine_factory(settings)))
    display_stats(snapshot, console, verbose=verbose)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
