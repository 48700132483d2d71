#!/usr/bin/env python3
"""
Consumer runner - drains the posts topic into PostgreSQL in batches.

Startup ensures the database schema, connects to PostgreSQL and connects
the Kafka consumer. Any of these failing after retries is fatal: the
process exits with status 1.

Usage:
    postpipe consumer start
    python -m postpipe.consumer_runner
"""

import logging

import psycopg2
from kafka.errors import KafkaError

from postpipe.base.runner import BaseRunner, StartupError
from postpipe.consumers.post_consumer import PostConsumer
from postpipe.infrastructure.kafka import KafkaPostSubscriber
from postpipe.infrastructure.repositories.postgresql import PostgreSQLPostRepository
from postpipe.utils.config import Settings, get_settings
from postpipe.utils.db import ensure_schema
from postpipe.utils.versions import get_package_version, get_postpipe_version

logger = logging.getLogger(__name__)


class ConsumerRunner(BaseRunner):
    """Builds the consumer's collaborators and runs the consume loop."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        super().__init__(log_level=self._settings.log_level)
        self._repository: PostgreSQLPostRepository | None = None
        self._subscriber: KafkaPostSubscriber | None = None
        self._consumer: PostConsumer | None = None

    def _run(self) -> None:
        logger.info(
            "Consumer started | kafka-python v%s | postpipe v%s",
            get_package_version("kafka-python"),
            get_postpipe_version(),
        )

        self._repository = PostgreSQLPostRepository(self._settings)
        try:
            ensure_schema()
            self._repository.connect()
        except (psycopg2.Error, RuntimeError) as e:
            raise StartupError(f"Error connecting to PostgreSQL: {e}") from e

        self._subscriber = KafkaPostSubscriber(self._settings)
        try:
            self._subscriber.connect()
        except KafkaError as e:
            raise StartupError(f"Error connecting to Kafka: {e}") from e

        self._consumer = PostConsumer(self._subscriber, self._repository, self._settings)
        if self.shutdown_requested:
            return
        self._consumer.run()

    def _on_shutdown_requested(self) -> None:
        if self._consumer is not None:
            self._consumer.stop()

    def _cleanup(self) -> None:
        if self._subscriber is not None:
            self._subscriber.close()
        if self._repository is not None:
            self._repository.close()
        logger.info("Consumer shutdown complete.")


def main() -> None:
    ConsumerRunner().run()


if __name__ == "__main__":
    main()
