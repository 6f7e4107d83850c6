"""Index inspection command for memora CLI.

Commands:
- index: List paths already mirrored to the service
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from memora.client.cli.config import get_index_path
from memora.client.index import IndexStoreError, LocalIndex
from memora.core.types import EntryKind


@click.command("index")
@click.option(
    "--index", "index_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Location of the local index database.",
)
@click.option(
    "--kind",
    type=click.Choice(["file", "directory"], case_sensitive=False),
    default=None,
    help="Only list entries of this kind.",
)
def index_cmd(index_path: Path | None, kind: str | None) -> None:
    """List entries recorded in the local index."""
    db_path = index_path or get_index_path()
    if not db_path.exists():
        click.echo(f"No index at {db_path}. Run 'memora once' or 'memora run' first.")
        return

    try:
        with LocalIndex(db_path) as index:
            entries = index.list_entries(EntryKind(kind.upper()) if kind else None)
    except IndexStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for entry in entries:
        marker = "d" if entry.kind == EntryKind.DIRECTORY else "f"
        click.echo(f"{marker} {entry.record_id}  {entry.path}")
    click.echo(f"\n{len(entries)} entries")
