"""Upload pipeline for a single filesystem entry.

This module provides:
- UploadPipeline: drives one path to its final remote state

Directories are registered in one call. Files go through three phases,
strictly in order:

    CREATE    POST /files, obtain an upload target
    TRANSFER  PUT the raw content to the upload target
    FINALIZE  PUT /files/{id} with status CLOSED

The index entry is written only after the last phase returned success,
from the record the service returned last.
A failure at any point leaves no entry, so the whole sequence is retried
on the next tick. Records created by a failed run stay OPEN on the
service and are not cleaned up.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from memora.client.api import APIError, SyncRecord
from memora.client.index import IndexStoreError
from memora.client.sync.types import PipelinePhase, PipelineResult
from memora.core.types import EntryKind, RecordStatus

if TYPE_CHECKING:
    from memora.client.api import HTTPClient
    from memora.client.index import LocalIndex

logger = logging.getLogger(__name__)


class UploadPipeline:
    """Moves local entries to their registered/CLOSED state on the service.

    One instance is shared by every worker thread; it holds no per-path
    state.

    Usage:
        pipeline = UploadPipeline(client, index)
        result = pipeline.run(path, EntryKind.FILE)
    """

    def __init__(self, client: HTTPClient, index: LocalIndex) -> None:
        """Initialize the pipeline.

        Args:
            client: Shared HTTP client.
            index: Shared local index.
        """
        self._client = client
        self._index = index

    def run(self, path: str, kind: EntryKind) -> PipelineResult:
        """Process one entry, never raising for per-path failures.

        Args:
            path: Absolute local path.
            kind: FILE or DIRECTORY.

        Returns:
            PipelineResult describing the outcome.
        """
        try:
            if kind == EntryKind.DIRECTORY:
                return self.register_directory(path)
            return self.upload_file(path)
        except Exception as e:
            logger.exception(f"Unexpected error processing {path}")
            return PipelineResult(
                path=path,
                kind=kind,
                success=False,
                phase=PipelinePhase.CREATE,
                error=str(e),
            )

    def register_directory(self, path: str) -> PipelineResult:
        """Register a directory with the service.

        Args:
            path: Absolute path of the directory.

        Returns:
            PipelineResult; success means the directory is indexed.
        """
        try:
            record = self._create(path, EntryKind.DIRECTORY)
        except APIError as e:
            return self._failed(path, EntryKind.DIRECTORY, PipelinePhase.CREATE, e)

        return self._commit(path, EntryKind.DIRECTORY, record)

    def upload_file(self, path: str) -> PipelineResult:
        """Create, transfer and finalize one file.

        Args:
            path: Absolute path of the file.

        Returns:
            PipelineResult; success means the file is CLOSED and indexed.
        """
        kind = EntryKind.FILE
        local_path = Path(path)
        logger.info(f"Uploading: {local_path.name}")

        # Phase 1: create
        try:
            record = self._create(path, kind)
        except APIError as e:
            return self._failed(path, kind, PipelinePhase.CREATE, e)

        if not record.upload_target:
            logger.warning(f"No upload target returned for {local_path.name}")
            return PipelineResult(
                path=path,
                kind=kind,
                success=False,
                phase=PipelinePhase.CREATE,
                record=record,
                error="No upload target returned",
            )

        # Phase 2: transfer
        try:
            data = local_path.read_bytes()
        except OSError as e:
            return self._failed(path, kind, PipelinePhase.TRANSFER, e, record)

        try:
            self._client.upload_content(record.upload_target, data)
        except APIError as e:
            return self._failed(path, kind, PipelinePhase.TRANSFER, e, record)
        logger.info(f"Uploaded: {local_path.name} ({len(data)} bytes)")

        # Phase 3: finalize
        try:
            closed = self._client.update_record(
                record.id, record.to_update(RecordStatus.CLOSED)
            )
        except APIError as e:
            return self._failed(path, kind, PipelinePhase.FINALIZE, e, record)
        logger.info(f"Updated: {local_path.name} -> {RecordStatus.CLOSED.value}")

        return self._commit(path, kind, closed)

    def _create(self, path: str, kind: EntryKind) -> SyncRecord:
        local_path = Path(path)
        record = self._client.create_record(
            name=local_path.name,
            directory=str(local_path.parent),
            kind=kind,
            status=RecordStatus.OPEN,
        )
        logger.info(f"Created: {local_path.name} ({kind.value}, id={record.id})")
        return record

    def _commit(self, path: str, kind: EntryKind, record: SyncRecord) -> PipelineResult:
        try:
            self._index.put(path, record)
        except IndexStoreError as e:
            return self._failed(path, kind, PipelinePhase.INDEX, e, record)
        return PipelineResult(
            path=path,
            kind=kind,
            success=True,
            phase=PipelinePhase.DONE,
            record=record,
        )

    @staticmethod
    def _failed(
        path: str,
        kind: EntryKind,
        phase: PipelinePhase,
        error: Exception,
        record: SyncRecord | None = None,
    ) -> PipelineResult:
        status = getattr(error, "status_code", None)
        detail = f"HTTP {status}: {error}" if status else str(error)
        logger.warning(f"{phase.name.lower()} failed for {path}: {detail}")
        return PipelineResult(
            path=path,
            kind=kind,
            success=False,
            phase=phase,
            record=record,
            error=detail,
        )
