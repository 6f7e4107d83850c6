"""Agent commands for memora CLI.

Commands:
- run: Mirror a directory continuously, one scan every --interval seconds
- once: Run a single scan and exit
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from memora.client.api import HTTPClient
from memora.client.cli.config import get_index_path, load_config, setup_logging
from memora.client.index import IndexStoreError, LocalIndex
from memora.client.sync import SyncScheduler, TickResult, UploadPipeline
from memora.core.config import (
    DEFAULT_INTERVAL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SERVER_URL,
    AgentSettings,
    ServerConfig,
)


def agent_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by the run and once commands."""
    options = [
        click.option(
            "--dir", "-d", "directory",
            type=click.Path(path_type=Path),
            default=None,
            help="Directory to mirror (default: sync_folder from config, else ./data).",
        ),
        click.option(
            "--token", "-t",
            envvar="MEMORA_TOKEN",
            default=None,
            help="Bearer token for the metadata service.",
        ),
        click.option(
            "--server",
            envvar="MEMORA_SERVER",
            default=None,
            help=f"Service API URL (default: {DEFAULT_SERVER_URL}).",
        ),
        click.option(
            "--workers", "-w",
            type=click.IntRange(min=1),
            default=None,
            help=f"Concurrent file uploads (default: {DEFAULT_MAX_WORKERS}).",
        ),
        click.option(
            "--timeout",
            type=click.FloatRange(min=0, min_open=True),
            default=30.0,
            show_default=True,
            help="Request timeout in seconds.",
        ),
        click.option(
            "--index", "index_path",
            type=click.Path(path_type=Path),
            default=None,
            help="Location of the local index database.",
        ),
        click.option("--verbose", "-v", is_flag=True, help="Enable debug logging."),
        click.option(
            "--log-file",
            type=click.Path(path_type=Path),
            default=None,
            help="Also write logs to this file.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_root(directory: Path | None, config: dict[str, Any]) -> Path:
    """Resolve and validate the directory to mirror.

    Exits with status 1 if it is not a listable directory.
    """
    if directory is None:
        directory = Path(config.get("sync_folder") or "./data")
    root = directory.expanduser().resolve()

    if not root.is_dir():
        click.echo(f"Error: The specified directory does not exist: {root}", err=True)
        sys.exit(1)
    if not os.access(root, os.R_OK | os.X_OK):
        click.echo(f"Error: The specified directory is not readable: {root}", err=True)
        sys.exit(1)
    return root


@contextmanager
def build_scheduler(
    directory: Path | None,
    token: str | None,
    server: str | None,
    workers: int | None,
    timeout: float,
    index_path: Path | None,
    interval: float | None = None,
) -> Iterator[SyncScheduler]:
    """Assemble the shared client, index and pipeline into a scheduler.

    Values come from options first, then the config file, then defaults.
    Everything is closed when the context exits.
    """
    config = load_config()
    root = resolve_root(directory, config)

    token = token or config.get("auth_token")
    if not token:
        click.echo(
            "Error: No token given. Use --token, MEMORA_TOKEN or 'memora configure'.",
            err=True,
        )
        sys.exit(1)

    try:
        settings = AgentSettings(
            root=root,
            interval=interval or float(config.get("interval") or DEFAULT_INTERVAL),
            max_workers=workers or int(config.get("max_workers") or DEFAULT_MAX_WORKERS),
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    server_config = ServerConfig(
        server_url=server or config.get("server_url") or DEFAULT_SERVER_URL,
        token=token,
        timeout=timeout,
    )

    try:
        index = LocalIndex(index_path or get_index_path())
    except IndexStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    client = HTTPClient(server_config)
    scheduler = SyncScheduler(settings, index, UploadPipeline(client, index))
    try:
        yield scheduler
    finally:
        scheduler.close()
        client.close()
        index.close()


def display_summary(result: TickResult) -> None:
    """Display scan results summary."""
    if result.failed:
        click.echo(click.style("\nFailed (will be retried):", fg="red"))
        for path in result.failed:
            click.echo(f"  ✗ {path}")

    if result.aborted:
        click.echo(click.style(f"\nScan aborted: {result.aborted}", fg="red"))

    if not result.registered and not result.uploaded and result.ok:
        click.echo("Everything is up to date.")
    else:
        click.echo(
            f"\nScan complete: {len(result.uploaded)} uploaded, "
            f"{len(result.registered)} directories, "
            f"{result.skipped} already synced, "
            f"{len(result.failed)} failed"
        )


@click.command()
@agent_options
@click.option(
    "--interval", "-i",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help=f"Seconds between scans (default: {DEFAULT_INTERVAL:g}).",
)
def run(
    directory: Path | None,
    token: str | None,
    server: str | None,
    workers: int | None,
    timeout: float,
    index_path: Path | None,
    verbose: bool,
    log_file: Path | None,
    interval: float | None,
) -> None:
    """Mirror a directory to the service, rescanning periodically.

    Entries already in the local index are skipped; failed entries are
    retried on the next scan. Stop with Ctrl+C.
    """
    setup_logging(logging.DEBUG if verbose else logging.INFO, log_file)

    with build_scheduler(
        directory, token, server, workers, timeout, index_path, interval
    ) as scheduler:
        click.echo("Scanning... (Ctrl+C to stop)")
        scheduler.run_forever()


@click.command()
@agent_options
def once(
    directory: Path | None,
    token: str | None,
    server: str | None,
    workers: int | None,
    timeout: float,
    index_path: Path | None,
    verbose: bool,
    log_file: Path | None,
) -> None:
    """Run a single scan and exit.

    Exits with status 1 if the scan was aborted or any entry failed.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)

    with build_scheduler(
        directory, token, server, workers, timeout, index_path
    ) as scheduler:
        result = scheduler.run_tick()

    display_summary(result)
    if not result.ok:
        sys.exit(1)
