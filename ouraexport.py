#!/usr/bin/env python3
"""
Oura Exporter CLI

Polls the Oura API for registered persons and exports the data to InfluxDB
and pub/sub.

Usage:
    ouraexport run --config configuration.yaml
    ouraexport poll --since 2d --dry-run
    ouraexport config
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from oura_exporter import __version__
from oura_exporter.config import Config, load_config, resolve_config_path
from oura_exporter.exceptions import ConfigurationError
from oura_exporter.pipeline import pipeline_from_config
from oura_exporter.records import ErrorRecord

console = Console()

app = typer.Typer(
    name="ouraexport",
    help="Oura Exporter - poll the Oura API and export to InfluxDB and pub/sub",
    no_args_is_help=True,
)

def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"[bold cyan]Oura Exporter[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()

@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    )
):
    """Oura Exporter - poll the Oura API and export to InfluxDB and pub/sub."""
    pass


# ============================================================================
# Helper Functions
# ============================================================================

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config_or_exit(config_path: Optional[str]) -> Config:
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]❌ {escape(e.message)}[/red]")
        raise typer.Exit(1)


def parse_since(since: str, now: Optional[datetime] = None) -> datetime:
    """
    Parse a --since value into a UTC datetime.

    Accepts relative spans (``12h``, ``2d``, ``1w``) or an ISO8601 date or
    timestamp; a bare date means midnight UTC.

    Raises:
        typer.BadParameter: If the value cannot be parsed
    """
    now = now or datetime.now(timezone.utc)
    value = since.strip().lower()
    spans = {"h": "hours", "d": "days", "w": "weeks"}

    if value[-1:] in spans and value[:-1].isdigit():
        return now - timedelta(**{spans[value[-1]]: int(value[:-1])})

    try:
        parsed = datetime.fromisoformat(value.upper().replace("Z", "+00:00"))
    except ValueError:
        raise typer.BadParameter(f"Cannot parse '{since}' (use e.g. 12h, 2d, 1w, 2024-01-01)")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def run(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    cycles: Optional[int] = typer.Option(None, "--cycles", "-n", min=1, help="Stop after N poll cycles"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
):
    """
    Run the poll-and-export loop.

    Example:
        ouraexport run
        ouraexport run --config /etc/oura/configuration.yaml --cycles 3
    """
    _configure_logging(verbose)
    config = _load_config_or_exit(config_path)

    console.print(
        f"🚀 Polling [cyan]{len(config.persons)}[/cyan] persons "
        f"every [cyan]{config.poller_interval}s[/cyan]"
    )

    async def _run():
        async with pipeline_from_config(config) as pipeline:
            return await pipeline.run(max_cycles=cycles)

    try:
        summary = asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        raise typer.Exit(0)

    console.print(
        f"[green]✓[/green] {summary.records} records exported, "
        f"{summary.points_written}/{summary.points} points written, "
        f"{summary.messages_published}/{summary.messages} messages published"
    )


@app.command()
def poll(
    since: Optional[str] = typer.Option(None, "--since", "-s", help="Window start (e.g., 12h, 2d, 1w, 2024-01-01)"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Fetch and convert, but skip all sinks"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
):
    """
    Run a single poll cycle and show what was fetched.

    Examples:
        ouraexport poll --since 2d
        ouraexport poll --since 2024-01-01 --dry-run
    """
    _configure_logging(verbose)
    config = _load_config_or_exit(config_path)

    end_time = datetime.now(timezone.utc)
    if since:
        start_time = parse_since(since, now=end_time)
    else:
        start_time = end_time - timedelta(
            seconds=config.poller_interval, hours=config.initial_lookback_hours
        )

    console.print(f"📥 Polling from [cyan]{start_time.isoformat()}[/cyan] to [cyan]{end_time.isoformat()}[/cyan]")
    if dry_run:
        console.print("[yellow]Dry run: sinks are skipped[/yellow]")
    console.print()

    async def _poll():
        async with pipeline_from_config(config, dry_run=dry_run) as pipeline:
            return await pipeline.poll_once(start_time, end_time)

    records, summary = asyncio.run(_poll())

    counts = Counter((record.person_name or "-", type(record).__name__) for record in records)
    table = Table(title=f"Records ({len(records)})")
    table.add_column("Person", style="cyan")
    table.add_column("Kind", style="yellow")
    table.add_column("Count", justify="right", style="green")
    for (person, kind), count in sorted(counts.items()):
        table.add_row(person, kind, str(count))
    console.print(table)

    errors = [record for record in records if isinstance(record, ErrorRecord)]
    for record in errors:
        console.print(f"[red]✗[/red] {record.person_name or '-'}: {escape(record.message)}")

    if not dry_run:
        console.print(
            f"Points written: [cyan]{summary.points_written}/{summary.points}[/cyan]  "
            f"Messages published: [cyan]{summary.messages_published}/{summary.messages}[/cyan]"
        )


@app.command("config")
def show_config(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file path"),
):
    """
    Show the resolved configuration with access tokens masked.

    Example:
        ouraexport config --config configuration.yaml
    """
    config = _load_config_or_exit(config_path)

    console.print(f"📄 Configuration: [dim]{resolve_config_path(config_path)}[/dim]")
    console.print(f"⏱  Poller interval: [cyan]{config.poller_interval}s[/cyan]")
    console.print()

    table = Table(title=f"Persons ({len(config.persons)})")
    table.add_column("Name", style="cyan")
    table.add_column("Access Token", style="dim")
    for person in config.persons:
        table.add_row(person.name, person.masked_token)
    console.print(table)
    console.print()

    if config.influxdb:
        console.print(
            f"InfluxDB: [green]{config.influxdb.url}[/green] "
            f"(org {config.influxdb.organization}, bucket {config.influxdb.bucket})"
        )
    else:
        console.print("InfluxDB: [yellow]not configured[/yellow]")

    if config.pubsub:
        console.print(f"Pub/sub: [green]SNS {config.pubsub.topic_arn_prefix}*[/green] ({config.pubsub.region})")
    else:
        console.print("Pub/sub: [yellow]not configured, messages are logged[/yellow]")


@app.command()
def version():
    """Show version information."""
    console.print("[bold]Oura Exporter[/bold]")
    console.print(f"Version: [cyan]{__version__}[/cyan]")


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    app()
