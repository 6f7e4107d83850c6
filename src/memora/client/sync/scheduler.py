"""Periodic scan driver for the sync agent.

This module provides:
- WorkerBudget: counting limiter for concurrent file uploads
- SyncScheduler: runs scan ticks, alone or on a fixed interval

One tick walks the tree on the calling thread. Directories are registered
inline, so a directory's record exists before anything below it is
dispatched. Files are handed to a thread pool once a budget unit is free;
when none is free the walk blocks. A tick returns only after every file
it dispatched has finished.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from memora.client.index import IndexStoreError
from memora.client.sync.types import PipelineResult, TickResult, WalkError
from memora.client.sync.walker import DirectoryWalker
from memora.core.types import EntryKind

if TYPE_CHECKING:
    from memora.client.index import LocalIndex
    from memora.client.sync.pipeline import UploadPipeline
    from memora.core.config import AgentSettings

logger = logging.getLogger(__name__)


class WorkerBudget:
    """Fixed number of units bounding in-flight file pipelines."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_use = 0

    @property
    def capacity(self) -> int:
        """Get the total number of units."""
        return self._capacity

    @property
    def in_use(self) -> int:
        """Get the number of units currently held."""
        with self._lock:
            return self._in_use

    def acquire(self) -> None:
        """Take one unit, blocking until one is free."""
        self._semaphore.acquire()
        with self._lock:
            self._in_use += 1

    def release(self) -> None:
        """Return one unit."""
        with self._lock:
            if self._in_use == 0:
                raise ValueError("release() called more times than acquire()")
            self._in_use -= 1
        self._semaphore.release()


class SyncScheduler:
    """Runs scan ticks over one root directory.

    Usage:
        scheduler = SyncScheduler(settings, index, pipeline)
        result = scheduler.run_tick()  # one pass

        scheduler.run_forever()        # every settings.interval seconds
    """

    def __init__(
        self,
        settings: AgentSettings,
        index: LocalIndex,
        pipeline: UploadPipeline,
        walker: DirectoryWalker | None = None,
        budget: WorkerBudget | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            settings: Root, interval and worker count.
            index: Shared local index.
            pipeline: Shared upload pipeline.
            walker: Directory walker (default: a new DirectoryWalker).
            budget: Worker budget (default: settings.max_workers units).
        """
        self._settings = settings
        self._index = index
        self._pipeline = pipeline
        self._walker = walker or DirectoryWalker()
        self._budget = budget or WorkerBudget(settings.max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=self._budget.capacity,
            thread_name_prefix="memora-upload",
        )
        self._tick_lock = threading.Lock()
        self._stopped = threading.Event()
        self._scheduler: BackgroundScheduler | None = None
        self._tick_count = 0
        self._last_result: TickResult | None = None

    @property
    def budget(self) -> WorkerBudget:
        """Get the worker budget."""
        return self._budget

    @property
    def tick_count(self) -> int:
        """Get number of ticks run so far."""
        return self._tick_count

    @property
    def last_result(self) -> TickResult | None:
        """Get the result of the most recent tick."""
        return self._last_result

    # === Single tick ===

    def run_tick(self, raise_on_abort: bool = False) -> TickResult:
        """Run one complete scan tick.

        Args:
            raise_on_abort: Re-raise the walk error after joining workers.

        Returns:
            TickResult summarizing the tick.

        Raises:
            WalkError: If the walk failed and raise_on_abort is set.
        """
        with self._tick_lock:
            self._tick_count += 1
            started = time.monotonic()
            result = TickResult()
            futures: list[Future[PipelineResult]] = []
            walk_error: WalkError | None = None

            try:
                for path, kind in self._walker.walk(self._settings.root):
                    result.scanned += 1
                    if self._is_indexed(path):
                        result.skipped += 1
                        continue

                    if kind == EntryKind.DIRECTORY:
                        result.record(self._pipeline.run(path, kind))
                    else:
                        futures.append(self._dispatch(path, kind))
            except WalkError as e:
                walk_error = e
                result.aborted = str(e)
                logger.error(f"Scan aborted: {e}")
            finally:
                # Join even when the walk failed
                done, _ = wait(futures)
                for future in done:
                    result.record(future.result())

            result.elapsed = time.monotonic() - started
            self._last_result = result
            logger.info(
                f"Tick {self._tick_count} finished in {result.elapsed:.2f}s: "
                f"{result.scanned} scanned, {result.skipped} skipped, "
                f"{len(result.registered)} directories, {len(result.uploaded)} files, "
                f"{len(result.failed)} failed"
            )

        if walk_error is not None and raise_on_abort:
            raise walk_error
        return result

    def _is_indexed(self, path: str) -> bool:
        """Check the index, treating lookup failures as 'skip for now'."""
        try:
            if self._index.has(path):
                logger.debug(f"Already synced: {path}")
                return True
            return False
        except IndexStoreError as e:
            logger.warning(f"Index lookup failed, skipping {path} this tick: {e}")
            return True

    def _dispatch(self, path: str, kind: EntryKind) -> Future[PipelineResult]:
        self._budget.acquire()
        try:
            return self._executor.submit(self._run_with_budget, path, kind)
        except BaseException:
            self._budget.release()
            raise

    def _run_with_budget(self, path: str, kind: EntryKind) -> PipelineResult:
        try:
            return self._pipeline.run(path, kind)
        finally:
            self._budget.release()

    # === Timer ===

    def _tick_job(self) -> None:
        """Job function for the interval trigger."""
        try:
            self.run_tick()
        except Exception:
            logger.exception("Error during scheduled scan")

    def start(self) -> None:
        """Start ticking in the background, first tick immediately."""
        if self._scheduler is not None:
            return  # Already running

        self._stopped.clear()
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._tick_job,
            trigger=IntervalTrigger(seconds=self._settings.interval),
            id="scan_tick",
            name="Directory scan",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"Scanner started on {self._settings.root} "
            f"(every {self._settings.interval}s, {self._budget.capacity} workers)"
        )

    def stop(self) -> None:
        """Stop ticking; waits for a running tick to finish."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("Scanner stopped")
        self._stopped.set()

    def run_forever(self) -> None:
        """Start ticking and block until stop() is called or Ctrl+C."""
        self.start()
        try:
            while not self._stopped.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.stop()

    def close(self) -> None:
        """Stop ticking and release the worker threads."""
        self.stop()
        self._executor.shutdown(wait=True)
