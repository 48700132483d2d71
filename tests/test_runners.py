# ==============================================================================
# Tests for process runners — consumer_runner.py, producer_runner.py
# ==============================================================================
"""
Tests for startup, shutdown and exit codes of the two processes.

Every external dependency is patched on the runner module; signal handler
installation is patched out so the test process keeps its own handlers.
"""

import signal
from unittest.mock import MagicMock, patch

import psycopg2
import pytest
from kafka.errors import KafkaError, NoBrokersAvailable

from postpipe import consumer_runner, producer_runner
from postpipe.base.runner import BaseRunner, GracefulShutdown
from postpipe.consumer_runner import ConsumerRunner
from postpipe.producer_runner import IngressRunner


@pytest.fixture(autouse=True)
def no_signal_handlers():
    with patch.object(BaseRunner, "_setup_signal_handlers"):
        yield


# ==============================================================================
# ConsumerRunner
# ==============================================================================


class TestConsumerRunner:
    """Tests for the consumer process lifecycle."""

    @pytest.fixture()
    def deps(self):
        with (
            patch.object(consumer_runner, "ensure_schema") as ensure_schema,
            patch.object(consumer_runner, "PostgreSQLPostRepository") as repository_cls,
            patch.object(consumer_runner, "KafkaPostSubscriber") as subscriber_cls,
            patch.object(consumer_runner, "PostConsumer") as consumer_cls,
        ):
            yield {
                "ensure_schema": ensure_schema,
                "repository": repository_cls.return_value,
                "subscriber_cls": subscriber_cls,
                "subscriber": subscriber_cls.return_value,
                "consumer": consumer_cls.return_value,
            }

    def test_runs_consumer_and_cleans_up(self, settings, deps):
        ConsumerRunner(settings).run()

        deps["ensure_schema"].assert_called_once()
        deps["repository"].connect.assert_called_once()
        deps["subscriber"].connect.assert_called_once()
        deps["consumer"].run.assert_called_once()
        deps["subscriber"].close.assert_called_once()
        deps["repository"].close.assert_called_once()

    def test_database_unreachable_exits_1(self, settings, deps):
        deps["ensure_schema"].side_effect = psycopg2.OperationalError("connection refused")

        with pytest.raises(SystemExit) as exc_info:
            ConsumerRunner(settings).run()

        assert exc_info.value.code == 1
        deps["subscriber_cls"].assert_not_called()
        deps["consumer"].run.assert_not_called()

    def test_broker_unreachable_exits_1(self, settings, deps):
        deps["subscriber"].connect.side_effect = NoBrokersAvailable()

        with pytest.raises(SystemExit) as exc_info:
            ConsumerRunner(settings).run()

        assert exc_info.value.code == 1
        deps["consumer"].run.assert_not_called()
        deps["repository"].close.assert_called_once()

    def test_unexpected_error_exits_1(self, settings, deps):
        deps["consumer"].run.side_effect = ValueError("boom")

        with pytest.raises(SystemExit) as exc_info:
            ConsumerRunner(settings).run()

        assert exc_info.value.code == 1
        deps["subscriber"].close.assert_called_once()

    def test_signal_stops_consumer(self, settings, deps):
        runner = ConsumerRunner(settings)
        deps["consumer"].run.side_effect = lambda: runner._handle_signal(signal.SIGTERM, None)

        runner.run()

        assert runner.shutdown_requested
        deps["consumer"].stop.assert_called_once()


# ==============================================================================
# IngressRunner
# ==============================================================================


class TestIngressRunner:
    """Tests for the producer process lifecycle."""

    @pytest.fixture()
    def deps(self):
        server = MagicMock()
        with (
            patch.object(producer_runner, "KafkaPostPublisher") as publisher_cls,
            patch.object(producer_runner, "ensure_topic") as ensure_topic,
            patch("werkzeug.serving.make_server", return_value=server) as make_server,
        ):
            yield {
                "publisher": publisher_cls.return_value,
                "ensure_topic": ensure_topic,
                "make_server": make_server,
                "server": server,
            }

    def test_serves_until_shutdown(self, settings, deps):
        deps["server"].serve_forever.side_effect = GracefulShutdown()

        IngressRunner(settings, port=8080).run()

        deps["publisher"].connect.assert_called_once()
        deps["ensure_topic"].assert_called_once_with(settings)
        host, port = deps["make_server"].call_args.args[:2]
        assert (host, port) == ("0.0.0.0", 8080)
        deps["server"].server_close.assert_called_once()
        deps["publisher"].close.assert_called_once()

    def test_broker_unreachable_exits_1(self, settings, deps):
        deps["publisher"].connect.side_effect = NoBrokersAvailable()

        with pytest.raises(SystemExit) as exc_info:
            IngressRunner(settings).run()

        assert exc_info.value.code == 1
        deps["make_server"].assert_not_called()

    def test_topic_creation_failure_exits_1(self, settings, deps):
        deps["ensure_topic"].side_effect = KafkaError("not authorized")

        with pytest.raises(SystemExit) as exc_info:
            IngressRunner(settings).run()

        assert exc_info.value.code == 1
        deps["make_server"].assert_not_called()
        deps["publisher"].close.assert_called_once()

    def test_signal_unwinds_server(self, settings):
        runner = IngressRunner(settings)
        with pytest.raises(GracefulShutdown):
            runner._handle_signal(signal.SIGINT, None)
        assert runner.shutdown_requested
