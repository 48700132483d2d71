# ==============================================================================
# Kafka Infrastructure
# ==============================================================================
"""
Kafka client configuration, admin operations, and the post channel clients.

This module consolidates all Kafka-related functionality:
- Client configuration (SSL, PLAINTEXT, retries)
- Admin operations (idempotent topic creation)
- KafkaPostPublisher: producer side of the post channel
- KafkaPostSubscriber: consumer side of the post channel
- Connection health checks

Supports both PLAINTEXT (local Docker) and SSL (mTLS) security protocols.
"""

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from kafka.errors import KafkaError

from postpipe.core.models import Post
from postpipe.utils.config import Settings, get_settings
from postpipe.utils.paths import get_project_root
from postpipe.utils.retry import retry_light, retry_standard

if TYPE_CHECKING:
    from kafka.consumer.fetcher import ConsumerRecord

    from postpipe.utils.config import KafkaSettings

logger = logging.getLogger(__name__)


# ==============================================================================
# Configuration
# ==============================================================================


def build_kafka_config(
    settings: "KafkaSettings | None" = None,
    request_timeout_ms: int | None = None,
    include_retry_config: bool = True,
    include_producer_retries: bool = False,
) -> dict:
    """
    Build Kafka client configuration from settings.

    Supports PLAINTEXT (local) and SSL (mTLS) security protocols.
    Includes retry and reconnection parameters for network resilience.

    Args:
        settings: KafkaSettings instance. If None, loads from get_settings().
        request_timeout_ms: Optional request timeout in milliseconds
        include_retry_config: If True, add connection retry/reconnect parameters (default: True)
        include_producer_retries: If True, add producer-specific retry settings (default: False)
            Note: 'retries' and 'retry_backoff_ms' are only valid for KafkaProducer,
            not for KafkaConsumer or KafkaAdminClient.

    Returns:
        Dict with Kafka client configuration
    """
    if settings is None:
        settings = get_settings().kafka

    config: dict = {
        "bootstrap_servers": settings.bootstrap_servers,
        "security_protocol": settings.security_protocol,
    }

    # Valid for all Kafka clients (producer, consumer, admin)
    if include_retry_config:
        config.update(
            {
                "reconnect_backoff_ms": 1000,
                "reconnect_backoff_max_ms": 32000,
                "request_timeout_ms": request_timeout_ms or 30000,
                "connections_max_idle_ms": 540000,  # 9 minutes
            }
        )
    elif request_timeout_ms is not None:
        config["request_timeout_ms"] = request_timeout_ms

    # Only valid for KafkaProducer, not Consumer or AdminClient
    if include_producer_retries:
        config.update(
            {
                "retries": 10,
                "retry_backoff_ms": 1000,
                "linger_ms": 5,
            }
        )

    if settings.security_protocol == "SSL":
        project_root = get_project_root()

        if settings.ssl_ca_file:
            ca_path = project_root / settings.ssl_ca_file
            if ca_path.exists():
                config["ssl_cafile"] = str(ca_path)

        if settings.ssl_cert_file:
            cert_path = project_root / settings.ssl_cert_file
            if cert_path.exists():
                config["ssl_certfile"] = str(cert_path)

        if settings.ssl_key_file:
            key_path = project_root / settings.ssl_key_file
            if key_path.exists():
                config["ssl_keyfile"] = str(key_path)

    return config


# ==============================================================================
# Admin Client
# ==============================================================================


def get_admin_client(settings: Settings | None = None, timeout_ms: int = 10000):
    """
    Get a Kafka admin client with current settings.

    Args:
        settings: Application settings. If None, uses get_settings().
        timeout_ms: Request timeout in milliseconds (default: 10000)

    Returns:
        KafkaAdminClient instance
    """
    from kafka import KafkaAdminClient

    settings = settings or get_settings()
    config = build_kafka_config(settings.kafka, request_timeout_ms=timeout_ms)
    return KafkaAdminClient(**config)


@retry_standard((KafkaError,), logger)
def ensure_topic(settings: Settings | None = None) -> bool:
    """
    Create the posts topic if it does not exist.

    Idempotent: an existing topic (or a concurrent creator winning the race)
    counts as success. Retries on broker errors with exponential backoff.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if the topic was created, False if it already existed
    """
    from kafka.admin import NewTopic
    from kafka.errors import TopicAlreadyExistsError

    settings = settings or get_settings()
    topic = settings.kafka.posts_topic
    admin = get_admin_client(settings)
    try:
        if topic in admin.list_topics():
            logger.info("Topic exists: %s", topic)
            return False
        admin.create_topics(
            [
                NewTopic(
                    name=topic,
                    num_partitions=settings.kafka.posts_topic_partitions,
                    replication_factor=1,
                )
            ]
        )
        logger.info(
            "Topic created: %s (%d partitions)", topic, settings.kafka.posts_topic_partitions
        )
        return True
    except TopicAlreadyExistsError:
        logger.info("Topic exists: %s", topic)
        return False
    finally:
        admin.close()


@retry_light((KafkaError,), logger)
def _list_topics(settings: Settings | None) -> list[str]:
    admin_client = get_admin_client(settings)
    try:
        return admin_client.list_topics()
    finally:
        admin_client.close()


def check_kafka_connection(settings: Settings | None = None) -> bool:
    """
    Check if Kafka is reachable.

    Light retry (3 attempts, ~7 seconds) on broker errors.

    Returns:
        True if Kafka responds to list_topics(), False otherwise
    """
    try:
        _list_topics(settings)
        return True
    except Exception:
        return False


# ==============================================================================
# Producer Side
# ==============================================================================


class KafkaPostPublisher:
    """
    Publishes posts to the posts topic.

    One KafkaProducer per process, created by connect() and shared by every
    request. publish() blocks until the broker acknowledges the write, so a
    caller that sees publish() return knows the post is on the topic.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._topic = self._settings.kafka.posts_topic
        self._timeout = self._settings.ingress.publish_timeout_seconds
        self._producer = None

    @property
    def topic(self) -> str:
        return self._topic

    @retry_standard((KafkaError,), logger)
    def connect(self) -> None:
        """
        Create the KafkaProducer.

        Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
        """
        from kafka import KafkaProducer

        kafka_config = build_kafka_config(self._settings.kafka, include_producer_retries=True)
        self._producer = KafkaProducer(
            **kafka_config,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        )
        logger.info("Connected to Kafka %s", self._settings.kafka.bootstrap_servers)

    def publish(self, post: Post) -> None:
        """
        Send one post and wait for the broker acknowledgement.

        Args:
            post: Validated post

        Raises:
            RuntimeError: If connect() has not been called
            KafkaError: If the send fails or times out
        """
        if self._producer is None:
            raise RuntimeError("Kafka producer not connected. Call connect() first.")

        future = self._producer.send(self._topic, value=post.to_kafka_message())
        metadata = future.get(timeout=self._timeout)
        logger.debug(
            "Message sent to %s [partition=%d offset=%d]",
            self._topic,
            metadata.partition,
            metadata.offset,
        )

    def close(self) -> None:
        """Flush pending sends and close the producer."""
        if self._producer is not None:
            try:
                self._producer.flush()
                self._producer.close()
                logger.info("Disconnected from Kafka")
            except Exception as e:
                logger.warning("Error disconnecting from Kafka: %s", e)
            finally:
                self._producer = None


# ==============================================================================
# Consumer Side
# ==============================================================================


class KafkaPostSubscriber:
    """
    Reads raw post messages from the posts topic.

    Offsets are auto-committed by kafka-python. Message values are handed
    over undecoded; parsing is the caller's job so a bad payload can be
    logged with its partition and offset.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._consumer_settings = self._settings.consumer
        self._consumer = None

    @retry_standard((KafkaError,), logger)
    def connect(self) -> None:
        """
        Create the KafkaConsumer.

        Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
        """
        from kafka import KafkaConsumer

        kafka_config = build_kafka_config(self._settings.kafka)
        self._consumer = KafkaConsumer(
            **kafka_config,
            group_id=self._consumer_settings.group_id,
            auto_offset_reset=self._consumer_settings.auto_offset_reset,
            enable_auto_commit=True,
            api_version=(2, 6, 0),  # Skip auto-detection for faster/more reliable startup
        )
        logger.info("Connected to Kafka %s", self._settings.kafka.bootstrap_servers)

    def subscribe(self, topic: str | None = None) -> None:
        """Subscribe to the posts topic (or an explicit topic)."""
        if self._consumer is None:
            raise RuntimeError("Kafka consumer not connected. Call connect() first.")
        topic = topic or self._settings.kafka.posts_topic
        self._consumer.subscribe([topic])
        logger.info("Subscribed to topic: %s", topic)

    def poll(self) -> list["ConsumerRecord"]:
        """
        Poll once and return messages in delivery order.

        Returns:
            Flattened list of ConsumerRecord (may be empty)
        """
        raw_messages = self._consumer.poll(
            timeout_ms=self._consumer_settings.poll_timeout_ms,
            max_records=self._consumer_settings.poll_max_records,
        )
        messages = []
        for partition_messages in raw_messages.values():
            messages.extend(partition_messages)
        return messages

    def consume(
        self,
        callback: Callable[["ConsumerRecord"], None],
        should_stop: Callable[[], bool],
    ) -> None:
        """
        Deliver every message to callback until should_stop() returns True.

        Args:
            callback: Called once per message, in delivery order
            should_stop: Checked between polls
        """
        while not should_stop():
            for message in self.poll():
                callback(message)

    def close(self) -> None:
        """Close the consumer."""
        if self._consumer is not None:
            try:
                self._consumer.close()
                logger.info("Disconnected from Kafka")
            except Exception as e:
                logger.warning("Error disconnecting from Kafka: %s", e)
            finally:
                self._consumer = None
