#!/usr/bin/env python3
"""
Producer runner - serves the HTTP ingress that publishes posts to Kafka.

Startup connects the Kafka producer and creates the posts topic
(idempotent, single partition). Either failing after retries is fatal:
the process exits with status 1 before it starts accepting requests.

Usage:
    postpipe producer start
    python -m postpipe.producer_runner
"""

import logging

from kafka.errors import KafkaError

from postpipe.base.runner import BaseRunner, GracefulShutdown, StartupError
from postpipe.infrastructure.kafka import KafkaPostPublisher, ensure_topic
from postpipe.ingress.api import create_app
from postpipe.utils.config import Settings, get_settings
from postpipe.utils.versions import get_package_version, get_postpipe_version

logger = logging.getLogger(__name__)


class IngressRunner(BaseRunner):
    """Runs the Flask ingress on a werkzeug server until signalled."""

    def __init__(
        self,
        settings: Settings | None = None,
        host: str | None = None,
        port: int | None = None,
    ):
        self._settings = settings or get_settings()
        super().__init__(log_level=self._settings.log_level)
        self._host = host or self._settings.ingress.host
        self._port = port or self._settings.ingress.port
        self._publisher: KafkaPostPublisher | None = None

    def _run(self) -> None:
        from werkzeug.serving import make_server

        logger.info(
            "Producer started | kafka-python v%s | postpipe v%s",
            get_package_version("kafka-python"),
            get_postpipe_version(),
        )

        self._publisher = KafkaPostPublisher(self._settings)
        try:
            self._publisher.connect()
            ensure_topic(self._settings)
        except KafkaError as e:
            raise StartupError(f"Error initializing Kafka: {e}") from e

        app = create_app(self._publisher)
        server = make_server(self._host, self._port, app, threaded=True)
        logger.info("Ingress listening on http://%s:%d", self._host, self._port)
        try:
            server.serve_forever()
        finally:
            server.server_close()

    def _on_shutdown_requested(self) -> None:
        # serve_forever() blocks this thread; unwind it from the signal handler
        raise GracefulShutdown()

    def _cleanup(self) -> None:
        if self._publisher is not None:
            self._publisher.close()
        logger.info("Producer shutdown complete.")


def main(host: str | None = None, port: int | None = None) -> None:
    IngressRunner(host=host, port=port).run()


if __name__ == "__main__":
    main()
