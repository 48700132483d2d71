# ==============================================================================
# Tests for PostConsumer — post_consumer.py
# ==============================================================================
"""
Tests for the consume loop: message parsing, dropped messages, timer and
size-triggered flushes, the shutdown drain, and the end-to-end path from
the HTTP ingress to the repository through an in-memory channel.
"""

import json
import queue
import threading
import time
from types import SimpleNamespace

import pytest

from conftest import make_post, saved_batches
from postpipe.consumers.post_consumer import PostConsumer
from postpipe.core.models import Post
from postpipe.ingress.api import create_app

# ==============================================================================
# Helpers
# ==============================================================================


def _message(value: bytes | None, offset: int = 0) -> SimpleNamespace:
    """A stand-in for kafka-python's ConsumerRecord."""
    return SimpleNamespace(value=value, partition=0, offset=offset)


def _encode(post: Post) -> bytes:
    return json.dumps(post.to_kafka_message()).encode("utf-8")


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class InMemoryChannel:
    """
    Publisher and subscriber over a queue.Queue.

    Mirrors KafkaPostPublisher.publish and KafkaPostSubscriber's
    subscribe/consume contract.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._offset = 0
        self.subscribed = False

    def publish(self, post: Post) -> None:
        self.send_raw(_encode(post))

    def send_raw(self, value: bytes | None) -> None:
        self._queue.put(_message(value, self._offset))
        self._offset += 1

    def subscribe(self, topic=None) -> None:
        self.subscribed = True

    def consume(self, callback, should_stop) -> None:
        while not should_stop():
            try:
                message = self._queue.get(timeout=0.01)
            except queue.Empty:
                continue
            callback(message)


@pytest.fixture()
def channel():
    return InMemoryChannel()


@pytest.fixture()
def consumer(channel, repository, settings):
    return PostConsumer(channel, repository, settings)


def _run_in_thread(consumer: PostConsumer) -> threading.Thread:
    thread = threading.Thread(target=consumer.run, daemon=True)
    thread.start()
    return thread


# ==============================================================================
# handle_message
# ==============================================================================


class TestHandleMessage:
    """Tests for per-message parsing and enqueueing."""

    def test_valid_message_enqueued(self, consumer):
        post = make_post(1)
        consumer.handle_message(_message(_encode(post)))

        assert consumer.buffer.pending == [post]

    def test_unparseable_message_dropped(self, consumer, caplog):
        consumer.handle_message(_message(b"{broken", offset=42))

        assert consumer.buffer.pending_count == 0
        assert consumer.metrics.dropped == 1
        assert any("offset=42" in r.message for r in caplog.records)

    def test_invalid_post_dropped(self, consumer):
        consumer.handle_message(_message(b'{"title": "x", "content": "short"}'))

        assert consumer.buffer.pending_count == 0
        assert consumer.metrics.dropped == 1

    def test_null_value_dropped(self, consumer):
        """A tombstone (value None) is dropped, not raised."""
        consumer.handle_message(_message(None, offset=7))

        assert consumer.buffer.pending_count == 0
        assert consumer.metrics.dropped == 1

    def test_delivery_order_kept(self, consumer):
        posts = [make_post(i) for i in range(5)]
        for i, post in enumerate(posts):
            consumer.handle_message(_message(_encode(post), offset=i))

        assert consumer.buffer.pending == posts


# ==============================================================================
# run
# ==============================================================================


class TestRun:
    """Tests for the full consume loop."""

    def test_timer_flushes_small_batch(self, consumer, channel, repository):
        thread = _run_in_thread(consumer)
        posts = [make_post(i) for i in range(3)]
        for post in posts:
            channel.publish(post)

        try:
            assert _wait_for(lambda: repository.save.called)
        finally:
            consumer.stop()
            thread.join(5)

        assert channel.subscribed
        flushed = [p for batch in saved_batches(repository) for p in batch]
        assert flushed == posts

    def test_size_threshold_flushes_without_timer(self, channel, repository, settings):
        settings.consumer.flush_interval_seconds = 3600
        settings.consumer.max_batch_size = 10
        consumer = PostConsumer(channel, repository, settings)
        thread = _run_in_thread(consumer)
        posts = [make_post(i) for i in range(11)]
        for post in posts:
            channel.publish(post)

        try:
            assert _wait_for(lambda: repository.save.called)
        finally:
            consumer.stop()
            thread.join(5)

        assert saved_batches(repository)[0] == posts

    def test_shutdown_drains_pending(self, channel, repository, settings):
        settings.consumer.flush_interval_seconds = 3600
        consumer = PostConsumer(channel, repository, settings)
        thread = _run_in_thread(consumer)
        post = make_post(7)
        channel.publish(post)
        assert _wait_for(lambda: consumer.buffer.pending_count == 1)

        consumer.stop()
        thread.join(5)

        assert not thread.is_alive()
        assert saved_batches(repository) == [[post]]

    def test_unparseable_message_does_not_stop_loop(self, consumer, channel, repository):
        thread = _run_in_thread(consumer)
        channel.send_raw(b"garbage")
        channel.send_raw(None)
        post = make_post(1)
        channel.publish(post)

        try:
            assert _wait_for(lambda: repository.save.called)
        finally:
            consumer.stop()
            thread.join(5)

        assert consumer.metrics.dropped == 2
        assert saved_batches(repository) == [[post]]

    def test_repository_outage_then_recovery(self, consumer, channel, repository):
        """Records survive failed flushes and land once the store recovers."""
        outage = threading.Event()
        outage.set()

        def flaky_save(posts):
            if outage.is_set():
                raise RuntimeError("connection refused")
            return len(posts)

        repository.save.side_effect = flaky_save
        thread = _run_in_thread(consumer)
        posts = [make_post(i) for i in range(4)]
        for post in posts:
            channel.publish(post)

        try:
            assert _wait_for(lambda: consumer.metrics.failed_flushes >= 2)
            outage.clear()
            assert _wait_for(lambda: consumer.metrics.records_flushed == 4)
        finally:
            consumer.stop()
            thread.join(5)

        assert consumer.buffer.pending_count == 0
        assert saved_batches(repository)[-1] == posts


# ==============================================================================
# End to end
# ==============================================================================


class TestEndToEnd:
    """POST /create-post through the channel to the repository."""

    def test_created_post_is_flushed(self, channel, repository, settings):
        app = create_app(channel)
        app.config["TESTING"] = True
        client = app.test_client()
        consumer = PostConsumer(channel, repository, settings)
        thread = _run_in_thread(consumer)

        try:
            response = client.post(
                "/create-post",
                json={"title": "Hello World", "content": "This is a test body"},
            )
            assert response.status_code == 201
            assert response.get_json() == {"message": "Post created successfully"}

            # Flush interval elapses
            assert _wait_for(lambda: repository.save.called)
        finally:
            consumer.stop()
            thread.join(5)

        assert saved_batches(repository) == [
            [Post(title="Hello World", content="This is a test body")]
        ]
