"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, WalkError: Exception classes
- WalkEntry: One entry produced by the directory walk
- PipelinePhase, PipelineResult: Outcome of one upload pipeline run
- TickResult: Summary of one scan tick
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, NamedTuple

from memora.core.types import EntryKind

if TYPE_CHECKING:
    from memora.client.api import SyncRecord


class SyncError(Exception):
    """Base exception for sync errors."""


class WalkError(SyncError):
    """The directory tree could not be traversed."""


class WalkEntry(NamedTuple):
    """A filesystem entry found by the walker."""

    path: str
    kind: EntryKind


class PipelinePhase(Enum):
    """Phase at which a pipeline run stopped."""

    CREATE = auto()
    TRANSFER = auto()
    FINALIZE = auto()
    INDEX = auto()
    DONE = auto()


@dataclass
class PipelineResult:
    """Result of moving one entry through the upload pipeline.

    Attributes:
        path: Absolute local path.
        kind: FILE or DIRECTORY.
        success: Whether the entry is now indexed.
        phase: DONE on success, otherwise the phase that failed.
        record: Record returned on creation, if creation succeeded.
        error: Error message if failed.
    """

    path: str
    kind: EntryKind
    success: bool
    phase: PipelinePhase
    record: SyncRecord | None = None
    error: str | None = None


@dataclass
class TickResult:
    """Summary of one scan tick."""

    scanned: int = 0
    skipped: int = 0
    registered: list[str] = field(default_factory=list)
    uploaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: str | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        """True if the walk completed and no path failed."""
        return self.aborted is None and not self.failed

    def record(self, result: PipelineResult) -> None:
        """Account for a finished pipeline run."""
        if not result.success:
            self.failed.append(result.path)
        elif result.kind == EntryKind.DIRECTORY:
            self.registered.append(result.path)
        else:
            self.uploaded.append(result.path)
