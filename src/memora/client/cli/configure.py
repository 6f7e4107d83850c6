"""Configuration command for memora CLI.

Commands:
- configure: Save service URL, token and sync folder to the config file
"""

from __future__ import annotations

from pathlib import Path

import click

from memora.client.cli.config import get_config_file, load_config, save_config
from memora.core.config import DEFAULT_SERVER_URL


@click.command()
@click.option(
    "--server",
    default=DEFAULT_SERVER_URL,
    show_default=True,
    help="Service API URL.",
)
@click.option("--token", required=True, help="Bearer token for the metadata service.")
@click.option(
    "--dir", "-d", "directory",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Default directory to mirror.",
)
def configure(server: str, token: str, directory: Path | None) -> None:
    """Save connection settings used by the run and once commands."""
    config = load_config()
    config["server_url"] = server.rstrip("/")
    config["auth_token"] = token
    if directory is not None:
        config["sync_folder"] = str(directory.expanduser().resolve())
    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")
