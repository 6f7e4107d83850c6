"""Sync agent: mirror a local tree to the memora service.

Architecture:
    SyncScheduler → DirectoryWalker → LocalIndex check → UploadPipeline

Components:
- **DirectoryWalker**: Stack-based pre-order walk yielding files and directories
- **UploadPipeline**: Directory registration; file create → transfer → finalize
- **SyncScheduler**: Runs scan ticks on an interval, bounds file uploads
  with a WorkerBudget and joins them before the tick ends
"""

from memora.client.sync.pipeline import UploadPipeline
from memora.client.sync.scheduler import SyncScheduler, WorkerBudget
from memora.client.sync.types import (
    PipelinePhase,
    PipelineResult,
    SyncError,
    TickResult,
    WalkEntry,
    WalkError,
)
from memora.client.sync.walker import DirectoryWalker

__all__ = [
    # Types
    "PipelinePhase",
    "PipelineResult",
    "SyncError",
    "TickResult",
    "WalkEntry",
    "WalkError",
    # Components
    "DirectoryWalker",
    "SyncScheduler",
    "UploadPipeline",
    "WorkerBudget",
]
