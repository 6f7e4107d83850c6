"""Local dedup index using SQLite.

This module provides:
- LocalIndex: persistent map from absolute path to the remote record
- IndexEntry: one indexed path

Architecture:
    An entry for a path means the path was fully mirrored and is skipped
    by later scans. Entries are written once, after the whole upload
    pipeline succeeded, and are never updated or deleted by the agent.
    A path that failed partway has no entry and is retried next tick.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from memora.client.api import SyncRecord
from memora.core.types import EntryKind, RecordStatus

logger = logging.getLogger(__name__)


class IndexStoreError(Exception):
    """The local index could not be read or written."""


@dataclass
class IndexEntry:
    """Represents a path that has been mirrored to the service.

    Attributes:
        path: Absolute local path (unique key).
        record_id: Identifier assigned by the service.
        name: Entry name as registered.
        directory: Parent directory as registered.
        kind: FILE or DIRECTORY.
        status: Remote status at the time of the write.
        created_at: Remote creation timestamp.
        modified_at: Remote modification timestamp.
        synced_at: Local time the entry was written.
    """

    path: str
    record_id: str
    name: str
    directory: str
    kind: EntryKind
    status: RecordStatus
    created_at: datetime
    modified_at: datetime
    synced_at: float

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> IndexEntry:
        """Create IndexEntry from database row."""
        return cls(
            path=os.fsdecode(row["path"]),
            record_id=row["record_id"],
            name=row["name"],
            directory=row["directory"],
            kind=EntryKind(row["kind"]),
            status=RecordStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            modified_at=datetime.fromisoformat(row["modified_at"]),
            synced_at=row["synced_at"],
        )


class LocalIndex:
    """SQLite-based dedup index.

    A single connection is shared by every pipeline thread; access is
    serialized with a lock.
    Paths are keyed by their filesystem bytes, so names that are not
    valid UTF-8 are stored and looked up like any other.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the index database.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            IndexStoreError: If the database cannot be opened.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except (OSError, sqlite3.Error) as e:
            raise IndexStoreError(f"Cannot open index {self._db_path}: {e}") from e

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS entries (
                path BLOB PRIMARY KEY,
                record_id TEXT NOT NULL,
                name TEXT NOT NULL,
                directory TEXT NOT NULL,
                kind TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                modified_at TEXT NOT NULL,
                synced_at REAL NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_entries_kind ON entries(kind);
        """)

    @property
    def db_path(self) -> Path:
        """Get the database location."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> LocalIndex:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def has(self, path: str) -> bool:
        """Check whether a path was already mirrored.

        Raises:
            IndexStoreError: On database failure.
        """
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT 1 FROM entries WHERE path = ?",
                    (os.fsencode(path),),
                ).fetchone()
        except (sqlite3.Error, UnicodeError) as e:
            raise IndexStoreError(f"Lookup failed for {path}: {e}") from e
        return row is not None

    def get(self, path: str) -> IndexEntry | None:
        """Get the entry for a path.

        Args:
            path: Absolute local path.

        Returns:
            IndexEntry if found, None otherwise.

        Raises:
            IndexStoreError: On database failure.
        """
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT * FROM entries WHERE path = ?",
                    (os.fsencode(path),),
                ).fetchone()
        except (sqlite3.Error, UnicodeError) as e:
            raise IndexStoreError(f"Lookup failed for {path}: {e}") from e
        if row is None:
            return None
        return IndexEntry.from_row(row)

    def put(self, path: str, record: SyncRecord) -> None:
        """Record that a path was fully mirrored.

        The first write for a path wins; later writes are ignored.

        Args:
            path: Absolute local path.
            record: Record returned by the service.

        Raises:
            IndexStoreError: On database failure.
        """
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT OR IGNORE INTO entries (
                        path, record_id, name, directory, kind, status,
                        created_at, modified_at, synced_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        os.fsencode(path),
                        record.id,
                        record.name,
                        record.directory,
                        record.kind.value,
                        record.status.value,
                        record.created_at.isoformat(),
                        record.modified_at.isoformat(),
                        time.time(),
                    ),
                )
        except (sqlite3.Error, UnicodeError) as e:
            raise IndexStoreError(f"Write failed for {path}: {e}") from e

    def list_entries(self, kind: EntryKind | None = None) -> list[IndexEntry]:
        """List indexed entries ordered by path.

        Args:
            kind: Optional kind filter.

        Raises:
            IndexStoreError: On database failure.
        """
        query = "SELECT * FROM entries"
        params: list[str] = []
        if kind is not None:
            query += " WHERE kind = ?"
            params.append(kind.value)
        query += " ORDER BY path"

        try:
            with self._lock:
                rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise IndexStoreError(f"Listing failed: {e}") from e
        return [IndexEntry.from_row(row) for row in rows]

    def count(self) -> int:
        """Get number of indexed paths."""
        try:
            with self._lock:
                row = self._conn.execute("SELECT COUNT(*) AS n FROM entries").fetchone()
        except sqlite3.Error as e:
            raise IndexStoreError(f"Count failed: {e}") from e
        return int(row["n"])
