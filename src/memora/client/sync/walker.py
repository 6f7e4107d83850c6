"""Iterative directory traversal.

This module provides:
- DirectoryWalker: stack-based pre-order walk of a directory tree

A directory is yielded before any of its children: children are only
listed once the consumer has handled the directory and asked for more.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from memora.client.sync.types import WalkEntry, WalkError
from memora.core.types import EntryKind

logger = logging.getLogger(__name__)


class DirectoryWalker:
    """Walks a directory tree with an explicit stack of pending directories.

    Usage:
        walker = DirectoryWalker()
        for path, kind in walker.walk(root):
            ...
    """

    def walk(self, root: Path | str) -> Iterator[WalkEntry]:
        """Yield every file and directory below root.

        Symbolic links and special files are neither yielded nor followed.
        Children of a directory are yielded in name order.

        Args:
            root: Directory to traverse.

        Yields:
            WalkEntry with the absolute path and its kind.

        Raises:
            WalkError: If root or any subdirectory cannot be listed.
        """
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise WalkError(f"Not a directory: {root_path}")

        stack = [root_path]
        while stack:
            directory = stack.pop()
            for entry in self._list(directory):
                path = Path(entry.path)
                try:
                    if entry.is_symlink():
                        logger.debug(f"Skipping symlink: {path}")
                        continue
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(path)
                        yield WalkEntry(str(path), EntryKind.DIRECTORY)
                    elif entry.is_file(follow_symlinks=False):
                        yield WalkEntry(str(path), EntryKind.FILE)
                    else:
                        logger.debug(f"Skipping special file: {path}")
                except OSError as e:
                    raise WalkError(f"Cannot stat {path}: {e}") from e

    @staticmethod
    def _list(directory: Path) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise WalkError(f"Cannot list {directory}: {e}") from e
