"""Display logic for command results."""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from .core import Statistics
from .locator import Locator
from .service_types import RetrieveResult, StoreResult
from .utils import format_timestamp, humanize_size

UNKNOWN = "[dim]unknown[/dim]"


def _or_unknown(value: Optional[object]) -> str:
    return UNKNOWN if value is None else escape(str(value))


def _bytes(size: Optional[int]) -> str:
    if size is None:
        return UNKNOWN
    if size < 1024:
        return f"{size} bytes"
    return f"{size} bytes ({humanize_size(size)})"


def display_store_result(result: StoreResult, console: Console) -> None:
    """Show the locator produced by a store."""
    locator = result.locator
    console.print("[green]✓[/green] File stored successfully!")
    console.print(f"rd:// URL: [cyan]{escape(result.url)}[/cyan]")
    console.print(f"Rep Hash:  {escape(locator.rep_hash)}")
    console.print(f"File Size: {_bytes(locator.file_size)}")

    if result.stats:
        console.print("\n[bold]System Stats:[/bold]")
        console.print(f"  Files Stored: {result.stats.files_stored}")
        console.print(f"  Blocks Generated: {result.stats.blocks_generated}")
        console.print(f"  Total Size: {_bytes(result.stats.total_size)}")


def display_retrieve_result(result: RetrieveResult, console: Console) -> None:
    """Show the representation behind a retrieved file."""
    rep = result.representation
    console.print("[green]✓[/green] File retrieved successfully!")
    console.print(f"Original Name: {escape(rep.file_name)}")
    console.print(f"Content Type:  {escape(rep.content_type)}")
    console.print(f"File Size:     {_bytes(rep.file_size)}")
    console.print(f"Block Count:   {rep.block_count}")
    console.print(f"Output File:   {escape(result.output_path)}")

    if result.stats:
        console.print("\n[bold]System Stats:[/bold]")
        console.print(f"  Cache Hits: {result.stats.cache_hits}")
        console.print(f"  Cache Misses: {result.stats.cache_misses}")


def display_download_result(result: RetrieveResult, console: Console, verbose: bool = False) -> None:
    """Show a download; verbose adds the representation details."""
    rep = result.representation
    console.print("[green]✓[/green] File downloaded successfully!")
    console.print(f"Original Name: {escape(rep.file_name)}")
    console.print(f"File Size:     {_bytes(rep.file_size)}")
    if verbose:
        console.print(f"Content Type:  {escape(rep.content_type)}")
        console.print(f"Block Count:   {rep.block_count}")
    console.print(f"Output File:   {escape(result.output_path)}")


def display_locator(locator: Locator, console: Console) -> None:
    """Show every decoded field of an rd:// URL."""
    timestamp = UNKNOWN
    if locator.timestamp is not None:
        timestamp = f"{locator.timestamp} ({format_timestamp(locator.timestamp)})"

    console.print("[bold]Parsed rd:// URL:[/bold]")
    console.print(f"  Scheme:       {locator.scheme}")
    console.print(f"  Host:         {escape(locator.host)}")
    console.print(f"  Version:      {_or_unknown(locator.version)}")
    console.print(f"  File Name:    {escape(locator.file_name) or UNKNOWN}")
    console.print(f"  Content Type: {_or_unknown(locator.content_type)}")
    console.print(f"  File Size:    {_bytes(locator.file_size)}")
    console.print(f"  Rep Hash:     {escape(locator.rep_hash)}")
    console.print(f"  Timestamp:    {timestamp}")


def display_stats(stats: Statistics, console: Console, verbose: bool = False) -> None:
    """Show engine statistics, as indented JSON when verbose."""
    console.print("[bold]RandomFS Statistics:[/bold]")
    if verbose:
        console.print_json(data=stats.model_dump())
        return

    console.print(f"  Files Stored:     {stats.files_stored}")
    console.print(f"  Blocks Generated: {stats.blocks_generated}")
    console.print(f"  Total Size:       {_bytes(stats.total_size)}")
    console.print(f"  Cache Hits:       {stats.cache_hits}")
    console.print(f"  Cache Misses:     {stats.cache_misses}")
