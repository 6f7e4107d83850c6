"""Command-line interface for memora.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save service URL, token and sync folder
- run: Mirror a directory continuously
- once: Run a single scan and exit
- index: List entries in the local index
"""

from __future__ import annotations

import click

from memora import __version__
from memora.client.cli.agent import once, run
from memora.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_index_path,
    load_config,
    save_config,
    setup_logging,
)
from memora.client.cli.configure import configure
from memora.client.cli.index import index_cmd


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """memora - mirror a local directory to the memora file service."""


cli.add_command(configure)
cli.add_command(run)
cli.add_command(once)
cli.add_command(index_cmd)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_index_path",
    "load_config",
    "save_config",
    "setup_logging",
]
