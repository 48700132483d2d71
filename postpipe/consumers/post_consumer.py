# ==============================================================================
# Post Consumer
# ==============================================================================
"""
Consume loop bridging the Kafka post channel to the batch buffer.

This consumer:
1. Subscribes to the posts topic with the configured consumer group
2. Parses each message into a Post (unparseable messages are logged,
   counted as dropped and skipped)
3. Enqueues every Post into a BatchBuffer, which flushes to PostgreSQL
   on size (flush worker thread) or on a recurring FlushTimer
4. On shutdown, stops the timer, drains the flush worker and runs a
   final flush before closing connections
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from postpipe.base.repositories import PostRepository
from postpipe.consumers.batch_buffer import BatchBuffer, FlushTimer
from postpipe.consumers.flush_metrics import FlushMetrics
from postpipe.core.models import parse_post
from postpipe.infrastructure.kafka import KafkaPostSubscriber
from postpipe.utils.config import Settings, get_settings

if TYPE_CHECKING:
    from kafka.consumer.fetcher import ConsumerRecord

logger = logging.getLogger(__name__)


class PostConsumer:
    """
    Wires one subscriber, one repository, one buffer and one timer.

    Collaborators are injected so tests can substitute mocks; run() expects
    them to be connected already (see ConsumerRunner).
    """

    def __init__(
        self,
        subscriber: KafkaPostSubscriber,
        repository: PostRepository,
        settings: Settings | None = None,
        metrics: FlushMetrics | None = None,
    ):
        self._settings = settings or get_settings()
        consumer_settings = self._settings.consumer

        self._subscriber = subscriber
        self._repository = repository
        self._metrics = metrics or FlushMetrics(
            summary_interval_seconds=consumer_settings.summary_interval_seconds,
            log=logger,
        )
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="flush")
        self._buffer = BatchBuffer(
            repository,
            max_batch_size=consumer_settings.max_batch_size,
            executor=self._executor,
            metrics=self._metrics,
        )
        self._timer = FlushTimer(
            self._buffer, interval_seconds=consumer_settings.flush_interval_seconds
        )
        self._stop_requested = False

    @property
    def buffer(self) -> BatchBuffer:
        return self._buffer

    @property
    def metrics(self) -> FlushMetrics:
        return self._metrics

    def handle_message(self, message: "ConsumerRecord") -> None:
        """Parse one message and enqueue it. Parse failures are dropped."""
        try:
            post = parse_post(message.value)
        except ValueError as e:
            logger.warning(
                "Dropping unparseable message [partition=%s offset=%s]: %s",
                message.partition,
                message.offset,
                e,
            )
            self._metrics.record_dropped()
            return

        logger.debug("Message added to queue: %s", post.title)
        self._buffer.enqueue(post)

    def stop(self) -> None:
        """Ask the poll loop to exit after the current poll."""
        self._stop_requested = True

    def run(self) -> None:
        """
        Subscribe, start the flush timer and poll until stop() is called.

        Always runs the shutdown sequence, including on error.
        """
        consumer_settings = self._settings.consumer
        self._subscriber.subscribe()
        self._timer.start()

        logger.info("Starting post consumer...")
        logger.info("Consumer group: %s", consumer_settings.group_id)
        logger.info("Topic: %s", self._settings.kafka.posts_topic)
        logger.info(
            "Flush triggers: > %d records or every %.1fs",
            consumer_settings.max_batch_size,
            consumer_settings.flush_interval_seconds,
        )

        try:
            self._subscriber.consume(self.handle_message, lambda: self._stop_requested)
        finally:
            self._shutdown()

    def _shutdown(self) -> None:
        self._timer.stop(timeout=self._settings.consumer.shutdown_timeout_seconds)
        self._executor.shutdown(wait=True)
        self._buffer.close()
        self._metrics.log_final_summary(pending=self._buffer.pending_count)
        logger.info("Post consumer shutdown complete.")
