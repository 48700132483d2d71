# ==============================================================================
# Flush Metrics
# ==============================================================================
"""
Instrumentation for batch buffer flushes.

FlushMetrics is a composition object handed to the BatchBuffer and the
consume loop. It tracks:

- Per-flush INFO log with record count and insert duration
- Failed flushes (batch requeued) and dropped (unparseable) messages
- Periodic throughput summary (configurable interval, default 30s)
- Final summary on shutdown

Usage:
    metrics = FlushMetrics(summary_interval_seconds=30.0)
    buffer = BatchBuffer(repository, metrics=metrics)
    ...
    metrics.log_final_summary()

All record_* methods may be called from the flush worker, the timer thread
and the poll loop concurrently, so counters are updated under a lock.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class FlushMetrics:
    """
    Counters and timing for the batch buffer.

    Cumulative counters cover the lifetime of the instance. Period counters
    reset after every periodic summary.
    """

    def __init__(
        self,
        summary_interval_seconds: float = 30.0,
        log: logging.Logger | None = None,
    ):
        """
        Initialize the flush metrics.

        Args:
            summary_interval_seconds: How often to log throughput summaries
            log: Optional logger override. Defaults to this module's logger.
        """
        self._summary_interval = summary_interval_seconds
        self._log = log or logger
        self._lock = threading.Lock()

        # Cumulative stats
        self.records_flushed = 0
        self.flushes = 0
        self.failed_flushes = 0
        self.records_requeued = 0
        self.dropped = 0
        self._cum_flush_ms = 0.0
        self._start_time = time.monotonic()

        # Period stats (reset each summary interval)
        self._period_records = 0
        self._period_flushes = 0
        self._period_failures = 0
        self._period_flush_ms = 0.0
        self._last_summary_time = time.monotonic()

    def record_flush(self, num_records: int, duration_ms: float) -> None:
        """
        Record a successful flush.

        Logs the flush at INFO level and triggers the periodic summary when
        the configured interval has elapsed.
        """
        self._log.info(
            "Flush: %s records | insert=%.*fms",
            f"{num_records:,}",
            _precision(duration_ms),
            duration_ms,
        )
        with self._lock:
            self.records_flushed += num_records
            self.flushes += 1
            self._cum_flush_ms += duration_ms
            self._period_records += num_records
            self._period_flushes += 1
            self._period_flush_ms += duration_ms
        self._maybe_log_summary()

    def record_failure(self, num_records: int) -> None:
        """Record a failed flush whose batch was put back in the buffer."""
        with self._lock:
            self.failed_flushes += 1
            self.records_requeued += num_records
            self._period_failures += 1

    def record_dropped(self, count: int = 1) -> None:
        """Record messages dropped because they could not be parsed."""
        with self._lock:
            self.dropped += count

    def _maybe_log_summary(self) -> None:
        now = time.monotonic()
        if now - self._last_summary_time >= self._summary_interval:
            self._log_summary(now)

    def _log_summary(self, now: float) -> None:
        """Log periodic throughput summary and reset period counters."""
        with self._lock:
            elapsed = now - self._last_summary_time
            if elapsed <= 0:
                return
            records_per_sec = self._period_records / elapsed
            avg_flush_ms = (
                self._period_flush_ms / self._period_flushes if self._period_flushes else 0.0
            )

            self._log.info(
                "Throughput (%.1fs): %s records/sec | flushes=%d failed=%d | avg_insert=%.*fms",
                elapsed,
                f"{records_per_sec:,.0f}",
                self._period_flushes,
                self._period_failures,
                _precision(avg_flush_ms),
                avg_flush_ms,
            )
            if self.dropped:
                self._log.warning("Dropped %d unparseable messages so far", self.dropped)

            self._period_records = 0
            self._period_flushes = 0
            self._period_failures = 0
            self._period_flush_ms = 0.0
            self._last_summary_time = now

    def log_final_summary(self, pending: int = 0) -> None:
        """
        Log final summary on shutdown.

        Args:
            pending: Records still in the buffer (not persisted)
        """
        total_elapsed = time.monotonic() - self._start_time
        if self.flushes == 0:
            self._log.info(
                "Final: no flushes completed (%.1fs elapsed) | failed=%d dropped=%d pending=%d",
                total_elapsed,
                self.failed_flushes,
                self.dropped,
                pending,
            )
            return

        overall_rps = self.records_flushed / total_elapsed if total_elapsed > 0 else 0
        avg_flush_ms = self._cum_flush_ms / self.flushes
        self._log.info(
            "Final: %s records in %d flushes over %.1fs (%s records/sec) | "
            "avg_insert=%.*fms | failed=%d requeued=%d dropped=%d pending=%d",
            f"{self.records_flushed:,}",
            self.flushes,
            total_elapsed,
            f"{overall_rps:,.0f}",
            _precision(avg_flush_ms),
            avg_flush_ms,
            self.failed_flushes,
            self.records_requeued,
            self.dropped,
            pending,
        )


def _precision(ms: float) -> int:
    """Return decimal precision for millisecond values.

    >= 10ms  → 0 decimals (e.g., 85ms)
    >= 1ms   → 1 decimal  (e.g., 3.2ms)
    < 1ms    → 2 decimals (e.g., 0.45ms)
    """
    if ms >= 10:
        return 0
    elif ms >= 1:
        return 1
    else:
        return 2
