# ==============================================================================
# Batch Buffer
# ==============================================================================
"""
In-memory accumulation of consumed posts with size- and time-triggered
bulk flushes to the repository.

Two triggers call the same flush():

    1. enqueue()  - pending batch grew past max_batch_size
    2. tick()     - recurring FlushTimer fired and the batch is non-empty

At most one flush runs at a time. A flush detaches the pending batch under
the lock and inserts it with the lock released, so enqueue() never waits on
the database. If the insert fails, the detached batch is put back at the
front of the pending batch, ahead of anything that arrived in the meantime,
and is retried by the next trigger. There is no retry ceiling and no
backoff: records stay pending for as long as the repository is failing.

Usage:
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="flush")
    buffer = BatchBuffer(repository, max_batch_size=100, executor=executor)
    timer = FlushTimer(buffer, interval_seconds=5.0)
    timer.start()

    buffer.enqueue(post)   # from the poll loop

    timer.stop()
    executor.shutdown(wait=True)
    buffer.close()         # final inline flush
"""

import logging
import threading
import time
from concurrent.futures import Executor

from postpipe.base.repositories import PostRepository
from postpipe.consumers.flush_metrics import FlushMetrics
from postpipe.core.models import Post

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0


class BatchBuffer:
    """
    Pending batch of posts owned by one consumer process.

    The lock guards only the in-progress flag and the list swap/requeue.
    It is never held while the repository is called.
    """

    def __init__(
        self,
        repository: PostRepository,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        executor: Executor | None = None,
        metrics: FlushMetrics | None = None,
    ):
        """
        Initialize the buffer.

        Args:
            repository: Sink receiving bulk writes
            max_batch_size: A flush is requested once the pending batch holds
                more than this many records
            executor: Runs size-triggered flushes off the caller's thread.
                If None, size-triggered flushes run inline in enqueue().
            metrics: Optional FlushMetrics to record flush outcomes
        """
        if max_batch_size < 1:
            raise ValueError(f"max_batch_size must be at least 1, got {max_batch_size}")

        self._repository = repository
        self._max_batch_size = max_batch_size
        self._executor = executor
        self._metrics = metrics

        self._lock = threading.Lock()
        self._pending: list[Post] = []
        self._flushing = False
        self._flush_requested = False
        self._closed = False

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @property
    def pending(self) -> list[Post]:
        """Snapshot copy of the pending batch, in arrival order."""
        with self._lock:
            return list(self._pending)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def is_flushing(self) -> bool:
        with self._lock:
            return self._flushing

    def enqueue(self, record: Post) -> None:
        """
        Append a record and request a flush if the batch is over the threshold.

        No validation: records were validated before they were published.
        """
        with self._lock:
            self._pending.append(record)
            over_threshold = len(self._pending) > self._max_batch_size

        if over_threshold:
            self._request_flush()

    def tick(self) -> None:
        """Timer entry point. Flushes if anything is pending."""
        with self._lock:
            has_pending = bool(self._pending)

        if has_pending:
            self.flush()

    def flush(self) -> int:
        """
        Bulk-write the pending batch.

        No-op if another flush is in progress or nothing is pending; the
        records wait for the next trigger.

        Returns:
            Number of records persisted (0 on no-op or failure)
        """
        with self._lock:
            self._flush_requested = False
            if self._flushing:
                logger.debug("Flush already in progress, skipping")
                return 0
            if not self._pending:
                return 0
            self._flushing = True
            batch = self._pending
            self._pending = []

        try:
            t0 = time.monotonic()
            try:
                self._repository.save(batch)
            except Exception as e:
                with self._lock:
                    self._pending[:0] = batch
                logger.error(
                    "Error saving %d posts, requeued for next flush: %s", len(batch), e
                )
                if self._metrics:
                    self._metrics.record_failure(len(batch))
                return 0

            duration_ms = (time.monotonic() - t0) * 1000
            if self._metrics:
                self._metrics.record_flush(len(batch), duration_ms)
            return len(batch)
        finally:
            with self._lock:
                self._flushing = False

    def close(self) -> int:
        """
        Run a last inline flush. Call after the poll loop and timer have stopped.

        Returns:
            Number of records persisted by the final flush
        """
        with self._lock:
            self._closed = True

        flushed = self.flush()
        remaining = self.pending_count
        if remaining:
            logger.error("%d posts were not persisted before shutdown", remaining)
        return flushed

    def _request_flush(self) -> None:
        """Run flush() on the executor, or inline without one."""
        with self._lock:
            if self._flush_requested:
                return
            background = self._executor is not None and not self._closed
            if background:
                self._flush_requested = True

        if not background:
            self.flush()
            return

        try:
            self._executor.submit(self.flush)
        except RuntimeError:
            # Executor already shut down
            with self._lock:
                self._flush_requested = False
            self.flush()


class FlushTimer(threading.Thread):
    """
    Recurring timer calling BatchBuffer.tick() every interval.

    Runs for the lifetime of the consumer, independent of message arrival.
    An error raised by a tick is logged and the timer keeps running.
    """

    def __init__(
        self,
        buffer: BatchBuffer,
        interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        super().__init__(name="flush-timer", daemon=True)
        self._buffer = buffer
        self._interval = interval_seconds
        self._stop_event = threading.Event()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._buffer.tick()
            except Exception:
                logger.exception("Flush timer tick failed")

    def stop(self, timeout: float | None = None) -> None:
        """Stop the timer and wait for an in-progress tick to finish."""
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)
